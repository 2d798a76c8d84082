"""Prometheus counters for scan request outcomes."""

from prometheus_client import CollectorRegistry, Counter, disable_created_metrics

from ecr_scanner.consts import (
    METRIC_SCAN_REQUEST_ERRORS,
    METRIC_SCANS_RATE_LIMITED,
    METRIC_SCANS_REQUESTED,
)
from ecr_scanner.models.model_scanner import ScanOutcome

# Expose only the `_total` series, without per-counter `_created` timestamps
disable_created_metrics()


class ScanCounters:
    """Monotonic counters for requested, errored and rate-limited scans.

    Counters are registered on their own CollectorRegistry rather than the
    process-global default, so each instance (and each test) starts at zero.
    Increments are lock-protected by prometheus_client and safe from any
    number of concurrent tasks or threads.
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """Initialize ScanCounters.

        Args:
            registry: Registry to register counters on. Defaults to a fresh one.
        """
        self.registry = registry or CollectorRegistry(auto_describe=True)

        self.scans_requested = Counter(
            METRIC_SCANS_REQUESTED,
            "The total count of AWS ECR image scan requests sent.",
            registry=self.registry,
        )
        self.scan_request_errors = Counter(
            METRIC_SCAN_REQUEST_ERRORS,
            "The total count of AWS ECR image scan requests that results in an error.",
            registry=self.registry,
        )
        self.scans_rate_limited = Counter(
            METRIC_SCANS_RATE_LIMITED,
            "The total count of AWS ECR image scan requests rejected due to rate-limiting.",
            registry=self.registry,
        )

        self._by_outcome = {
            ScanOutcome.REQUESTED: (self.scans_requested, METRIC_SCANS_REQUESTED),
            ScanOutcome.RATE_LIMITED: (self.scans_rate_limited, METRIC_SCANS_RATE_LIMITED),
            ScanOutcome.FAILED: (self.scan_request_errors, METRIC_SCAN_REQUEST_ERRORS),
        }

    def record(self, outcome: ScanOutcome) -> None:
        """Increment the counter matching a scan outcome."""
        counter, _ = self._by_outcome[outcome]
        counter.inc()

    def value(self, outcome: ScanOutcome) -> int:
        """Read the current value of an outcome's counter."""
        _, name = self._by_outcome[outcome]
        sample = self.registry.get_sample_value(f"{name}_total")
        return int(sample or 0)

    def snapshot(self) -> dict[ScanOutcome, int]:
        """Read all three counters at once."""
        return {outcome: self.value(outcome) for outcome in ScanOutcome}
