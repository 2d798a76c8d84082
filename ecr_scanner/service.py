"""Service wiring: builds the components from settings and runs them together."""

import asyncio
import logging
from dataclasses import dataclass

from ecr_scanner.config import Settings
from ecr_scanner.metrics.scan_counters import ScanCounters
from ecr_scanner.metrics.server import MetricsServer, build_metrics_app
from ecr_scanner.models.model_scanner import CycleResult
from ecr_scanner.registry.base_gateway import RegistryGateway
from ecr_scanner.registry.ecr_gateway import EcrGateway
from ecr_scanner.scanner.reconciler import ScanReconciler
from ecr_scanner.scanner.scheduler import CronScheduler

logger = logging.getLogger(__name__)


@dataclass
class ScanService:
    """All long-lived components of a running service."""

    settings: Settings
    counters: ScanCounters
    reconciler: ScanReconciler
    scheduler: CronScheduler
    server: MetricsServer


def build_service(
    settings: Settings,
    gateway: RegistryGateway | None = None,
    counters: ScanCounters | None = None,
) -> ScanService:
    """Build the service components.

    Args:
        settings: Reconciled settings
        gateway: Registry gateway. Defaults to ECR from the ambient AWS environment.
        counters: Outcome counters. Defaults to a fresh set.

    Raises:
        RegistryConfigurationError: If AWS credentials/region cannot be resolved
        ScheduleError: If the cron expression is invalid
    """
    if gateway is None:
        gateway = EcrGateway.from_environment(
            region=settings.aws_region,
            registry_id=settings.aws_registry_id,
        )
    counters = counters or ScanCounters()

    reconciler = ScanReconciler(gateway, counters, concurrency=settings.scan_concurrency)

    logger.debug("initializing cron scheduler")
    scheduler = CronScheduler(
        settings.cron_schedule,
        reconciler.run_cycle,
        allow_overlap=settings.cron_allow_overlap,
    )

    logger.debug("adding Prometheus metrics handler")
    app = build_metrics_app(counters.registry, settings.metrics_path)
    server = MetricsServer(app, settings.web_host, settings.web_port)

    return ScanService(
        settings=settings,
        counters=counters,
        reconciler=reconciler,
        scheduler=scheduler,
        server=server,
    )


async def run_service(service: ScanService, shutdown_timeout: float = 30.0) -> None:
    """Serve metrics and fire cycles on schedule until the server exits.

    Raises:
        MetricsServerError: If the metrics listener cannot be bound
    """
    service.server.bind()

    scheduler_task = asyncio.create_task(service.scheduler.run(), name="scheduler")
    try:
        await service.server.serve()
    finally:
        scheduler_task.cancel()
        await asyncio.gather(scheduler_task, return_exceptions=True)
        await service.scheduler.shutdown(timeout=shutdown_timeout)
        logger.info("service stopped")


async def run_once(gateway: RegistryGateway, settings: Settings) -> tuple[CycleResult, ScanCounters]:
    """Run a single cycle in the foreground.

    Raises:
        RegistryError: If listing repositories fails
    """
    counters = ScanCounters()
    reconciler = ScanReconciler(gateway, counters, concurrency=settings.scan_concurrency)
    result = await reconciler.run_cycle()
    return result, counters
