"""Data models for scan request operations."""

from dataclasses import dataclass, field
from enum import Enum

from ecr_scanner.models.model_registry import Image


class ScanOutcome(str, Enum):
    """Classification of a single StartImageScan request."""

    REQUESTED = "requested"
    # Expected steady state: ECR allows one scan per image per 24 hours
    RATE_LIMITED = "rate_limited"
    FAILED = "failed"


@dataclass
class ScanResult:
    """Result of requesting a scan for one image."""

    repository: str
    image: Image
    outcome: ScanOutcome
    error: str | None = None


@dataclass
class CycleResult:
    """Result of one reconciliation cycle."""

    repositories: int = 0
    images: int = 0
    requested: int = 0
    rate_limited: int = 0
    failed: int = 0
    failed_repositories: dict[str, str] = field(default_factory=dict)  # name → error
    failures: dict[str, str] = field(default_factory=dict)  # image ref → error
    duration_seconds: float = 0.0

    def add(self, result: ScanResult) -> None:
        """Tally a single image's scan result."""
        self.images += 1
        if result.outcome == ScanOutcome.REQUESTED:
            self.requested += 1
        elif result.outcome == ScanOutcome.RATE_LIMITED:
            self.rate_limited += 1
        else:
            self.failed += 1
            # One digest may appear once per tag
            self.failures[result.image.reference(result.repository)] = result.error or "Unknown error"

    @property
    def total(self) -> int:
        return self.requested + self.rate_limited + self.failed
