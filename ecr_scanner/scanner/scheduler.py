"""Cron-driven scheduler dispatching reconciliation cycles as background tasks."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Any

from croniter import croniter

logger = logging.getLogger(__name__)


class ScheduleError(ValueError):
    """Raised when a cron expression cannot be parsed."""


class CronScheduler:
    """Fires a job on a six-field cron cadence (seconds first).

    Each firing runs the job as a background task, so `trigger()` returns
    immediately. Unless `allow_overlap` is set, a firing is skipped while the
    previous run is still in flight.
    """

    def __init__(
        self,
        expression: str,
        job: Callable[[], Awaitable[Any]],
        allow_overlap: bool = False,
        clock: Callable[[], datetime] | None = None,
    ):
        """Initialize CronScheduler.

        Args:
            expression: Cron expression, e.g. '0 35 */3 * * *'
            job: Coroutine function to run on every firing
            allow_overlap: Start a new run even if the previous is still running
            clock: Returns the current aware datetime (default: UTC now)

        Raises:
            ScheduleError: If the expression is invalid
        """
        self.expression = expression
        self.job = job
        self.allow_overlap = allow_overlap
        self._clock = clock or (lambda: datetime.now(UTC))
        self._tasks: set[asyncio.Task] = set()
        self._skipped = 0

        # Validate eagerly so a bad expression fails at startup
        self.next_fire_time(self._clock())

    def next_fire_time(self, after: datetime) -> datetime:
        """Compute the first fire time strictly after `after`."""
        if len(self.expression.split()) != 6:
            raise ScheduleError(
                f"invalid cron expression '{self.expression}': expected 6 fields "
                "(second minute hour day-of-month month day-of-week)"
            )
        try:
            itr = croniter(self.expression, after, second_at_beginning=True)
            return itr.get_next(datetime)
        except (ValueError, KeyError) as e:
            raise ScheduleError(f"invalid cron expression '{self.expression}': {e}") from e

    def upcoming(self, count: int, after: datetime | None = None) -> list[datetime]:
        """List the next `count` fire times."""
        times: list[datetime] = []
        current = after or self._clock()
        for _ in range(count):
            current = self.next_fire_time(current)
            times.append(current)
        return times

    @property
    def running(self) -> int:
        """Number of job runs currently in flight."""
        return len(self._tasks)

    @property
    def skipped(self) -> int:
        """Number of firings skipped because a run was still in flight."""
        return self._skipped

    def trigger(self) -> asyncio.Task | None:
        """Dispatch one run in the background.

        Returns:
            The task running the job, or None if the firing was skipped
        """
        if self._tasks and not self.allow_overlap:
            self._skipped += 1
            logger.warning(
                "previous cycle still running, skipping this firing",
                extra={"running": len(self._tasks)},
            )
            return None

        task = asyncio.create_task(self._run_job())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run_job(self) -> None:
        logger.debug("scheduled job starting")
        try:
            await self.job()
        except Exception:
            logger.exception("scheduled job failed, cycle aborted")

    async def run(self) -> None:
        """Fire the job on schedule until cancelled."""
        logger.info("scheduler started", extra={"schedule": self.expression})
        last_fire = self._clock()
        while True:
            now = self._clock()
            # Timers may wake marginally early; never fire the same slot twice
            fire_at = self.next_fire_time(max(now, last_fire))
            delay = (fire_at - now).total_seconds()
            logger.debug("next cycle scheduled", extra={"fire_at": fire_at.isoformat()})

            await asyncio.sleep(max(delay, 0))
            last_fire = fire_at
            self.trigger()

    async def shutdown(self, timeout: float | None = None) -> None:
        """Wait for in-flight runs, cancelling any still running after `timeout`."""
        if not self._tasks:
            return

        pending = set(self._tasks)
        logger.info("waiting for in-flight cycles", extra={"running": len(pending)})
        _, still_running = await asyncio.wait(pending, timeout=timeout)

        for task in still_running:
            task.cancel()
        if still_running:
            await asyncio.gather(*still_running, return_exceptions=True)
