"""Scan counters and the metrics HTTP endpoint."""

from ecr_scanner.metrics.scan_counters import ScanCounters
from ecr_scanner.metrics.server import MetricsServer, MetricsServerError, build_metrics_app

__all__ = [
    "MetricsServer",
    "MetricsServerError",
    "ScanCounters",
    "build_metrics_app",
]
