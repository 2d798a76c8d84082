# Environment variable prefix for all settings (dotted keys map to `_`)
ENV_PREFIX = "AWS_ECR_SCANNER_"

# Logging defaults
DEFAULT_LOG_FORMAT = "logfmt"
DEFAULT_LOG_LEVEL = "info"
LOG_FORMATS = ("json", "logfmt", "text")

# Scheduler defaults
DEFAULT_CRON_SCHEDULE = "0 35 */3 * * *"  # sec min hour dom month dow

# Metrics endpoint defaults
DEFAULT_WEB_HOST = "127.0.0.1"
DEFAULT_WEB_PORT = 2112
DEFAULT_METRICS_PATH = "/metrics"

# Scan dispatch
DEFAULT_SCAN_CONCURRENCY = 10  # Max in-flight StartImageScan calls

# ECR API
ECR_RATE_LIMIT_ERROR_CODE = "LimitExceededException"  # One scan per image per 24h
ECR_PAGE_SIZE = 1000  # maxResults upper bound for DescribeRepositories/ListImages

# Prometheus counter names (exposed with a `_total` suffix, no `_created` series)
METRIC_SCANS_REQUESTED = "aws_ecr_scans_requested"
METRIC_SCAN_REQUEST_ERRORS = "aws_ecr_scans_requested_errors"
METRIC_SCANS_RATE_LIMITED = "aws_ecr_scans_rate_limited"
