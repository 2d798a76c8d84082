"""Models for registry entities and scan results."""

from ecr_scanner.models.model_registry import Image, Repository
from ecr_scanner.models.model_scanner import CycleResult, ScanOutcome, ScanResult

__all__ = [
    # Registry models
    "Image",
    "Repository",
    # Scan models
    "CycleResult",
    "ScanOutcome",
    "ScanResult",
]
