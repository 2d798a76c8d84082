"""Reconciles registry contents into scan requests with bounded concurrency."""

import asyncio
import logging
import time

from ecr_scanner.consts import DEFAULT_SCAN_CONCURRENCY
from ecr_scanner.metrics.scan_counters import ScanCounters
from ecr_scanner.models.model_registry import Image, Repository
from ecr_scanner.models.model_scanner import CycleResult, ScanOutcome, ScanResult
from ecr_scanner.registry.base_gateway import RegistryError, RegistryGateway, ScanRateLimitedError

logger = logging.getLogger(__name__)


class ScanReconciler:
    """Enumerates repositories and images, then requests a scan per image.

    One task per repository enumerates its images; one task per image
    requests its scan. Image tasks are gated by a semaphore shared across
    cycles, so overlapping cycles never exceed `concurrency` in-flight
    scan requests between them.
    """

    def __init__(
        self,
        gateway: RegistryGateway,
        counters: ScanCounters,
        concurrency: int = DEFAULT_SCAN_CONCURRENCY,
    ):
        """Initialize ScanReconciler.

        Args:
            gateway: Registry gateway, shared read-only by all tasks
            counters: Outcome counters
            concurrency: Maximum concurrent scan requests
        """
        if concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {concurrency}")

        self.gateway = gateway
        self.counters = counters
        self.concurrency = concurrency
        self._semaphore = asyncio.Semaphore(concurrency)

    async def run_cycle(self) -> CycleResult:
        """Run one reconciliation cycle and wait for every spawned task.

        Returns:
            CycleResult with per-cycle tallies

        Raises:
            RegistryError: If listing repositories fails (aborts the cycle)
        """
        start_time = time.time()
        result = CycleResult()
        repository_tasks: list[asyncio.Task[list[ScanResult]]] = []

        logger.debug("describing AWS ECR repositories")
        try:
            async for repository in self.gateway.iter_repositories():
                result.repositories += 1
                repository_tasks.append(
                    asyncio.create_task(
                        self.reconcile_repository(repository, result),
                        name=f"reconcile:{repository.name}",
                    )
                )
        except RegistryError as e:
            logger.error("failed to retrieve next page of repositories", extra={"err": str(e)})
            # Repositories already dispatched keep running; the cycle still reports the abort
            if repository_tasks:
                await asyncio.gather(*repository_tasks)
            raise

        for scan_results in await asyncio.gather(*repository_tasks):
            for scan_result in scan_results:
                result.add(scan_result)

        result.duration_seconds = time.time() - start_time
        logger.info(
            "reconciliation cycle complete",
            extra={
                "repositories": result.repositories,
                "images": result.images,
                "requested": result.requested,
                "rate_limited": result.rate_limited,
                "failed": result.failed,
                "duration_seconds": round(result.duration_seconds, 3),
            },
        )
        return result

    async def reconcile_repository(
        self,
        repository: Repository,
        cycle: CycleResult | None = None,
    ) -> list[ScanResult]:
        """Enumerate a repository's images and request a scan for each.

        A failed page fetch stops this repository only. Images yielded
        before the failure are still scanned.

        Args:
            repository: Repository to reconcile
            cycle: Cycle to record an enumeration failure on

        Returns:
            ScanResult per dispatched image
        """
        log_fields = {"repository": repository.name}
        logger.info("reconciling repository", extra=log_fields)

        image_tasks: list[asyncio.Task[ScanResult]] = []
        try:
            async for image in self.gateway.iter_images(repository):
                image_tasks.append(asyncio.create_task(self.reconcile_image(repository, image)))
        except RegistryError as e:
            logger.error(
                "failed to retrieve next page of images",
                extra={**log_fields, "err": str(e)},
            )
            if cycle is not None:
                cycle.failed_repositories[repository.name] = str(e)

        return list(await asyncio.gather(*image_tasks))

    async def reconcile_image(self, repository: Repository, image: Image) -> ScanResult:
        """Request a scan for one image and classify the response.

        Never raises: every outcome is counted and returned so that one bad
        image cannot abort its siblings.
        """
        log_fields = {"image": image.log_fields(), "repository": repository.name}

        async with self._semaphore:
            logger.info("requesting image scan", extra=log_fields)
            try:
                await self.gateway.start_image_scan(repository, image)

            except ScanRateLimitedError:
                self.counters.record(ScanOutcome.RATE_LIMITED)
                logger.info("rate-limiting error detected, skipping image for now", extra=log_fields)
                return ScanResult(repository.name, image, ScanOutcome.RATE_LIMITED)

            except RegistryError as e:
                self.counters.record(ScanOutcome.FAILED)
                logger.error("image scan request failed", extra={**log_fields, "err": str(e)})
                return ScanResult(repository.name, image, ScanOutcome.FAILED, error=str(e))

            except Exception as e:
                self.counters.record(ScanOutcome.FAILED)
                logger.exception("unexpected error requesting image scan", extra=log_fields)
                return ScanResult(repository.name, image, ScanOutcome.FAILED, error=repr(e))

        self.counters.record(ScanOutcome.REQUESTED)
        logger.info("scan successfully requested", extra=log_fields)
        return ScanResult(repository.name, image, ScanOutcome.REQUESTED)
