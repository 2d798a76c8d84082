"""Scan reconciliation workflow and its cron scheduler."""

from ecr_scanner.scanner.reconciler import ScanReconciler
from ecr_scanner.scanner.scheduler import CronScheduler, ScheduleError

__all__ = [
    "CronScheduler",
    "ScanReconciler",
    "ScheduleError",
]
