"""SchedulerEngine — APScheduler lifecycle for the periodic tick and log cleanup."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from src.config import settings
from src.scheduler.rules import crontab_trigger

if TYPE_CHECKING:
    from src.scheduler.logs import LogStore
    from src.scheduler.models import ExecutionResult
    from src.scheduler.tick import SchedulerTick, TickSummary

logger = logging.getLogger(__name__)

TICK_JOB_ID = "tick"
CLEANUP_JOB_ID = "log_cleanup"


class SchedulerEngine:
    """Drives :class:`SchedulerTick` from an APScheduler cron job.

    Args:
        tick: SchedulerTick to invoke on every trigger.
        logs: LogStore whose old rows are cleaned up daily.
        timezone: IANA timezone string (default from settings).
    """

    def __init__(
        self,
        tick: SchedulerTick,
        logs: LogStore,
        timezone: str | None = None,
    ) -> None:
        self._tick = tick
        self._logs = logs
        self._timezone = timezone or settings.scheduler_timezone
        self._scheduler = AsyncIOScheduler(timezone=self._timezone)
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    # -- Lifecycle -------------------------------------------------------------

    async def start(self) -> None:
        """Register the tick and cleanup jobs and start the scheduler."""
        self._scheduler.add_job(
            self.run_tick,
            trigger=crontab_trigger(settings.tick_cron, self._timezone),
            id=TICK_JOB_ID,
            name="Scheduler tick",
            max_instances=settings.tick_max_instances,
            coalesce=True,
            replace_existing=True,
        )
        self._scheduler.add_job(
            self._cleanup_logs,
            trigger=crontab_trigger(settings.log_cleanup_cron, self._timezone),
            id=CLEANUP_JOB_ID,
            name="Execution log cleanup",
            coalesce=True,
            replace_existing=True,
        )
        self._scheduler.start()
        self._running = True
        logger.info(
            "Scheduler started (tick=%r, tz=%s)", settings.tick_cron, self._timezone
        )

    async def stop(self) -> None:
        """Shut down the scheduler."""
        if self._running:
            self._scheduler.shutdown(wait=False)
            self._running = False
            logger.info("Scheduler stopped")

    # -- On demand -------------------------------------------------------------

    async def run_now(self, task_id: str) -> ExecutionResult | None:
        """Execute one task immediately through the normal pipeline."""
        return await self._tick.run_now(task_id)

    # -- Internal --------------------------------------------------------------

    async def run_tick(self) -> TickSummary:
        """Callback invoked by APScheduler on every tick."""
        summary = await self._tick.run()
        if summary.errors:
            logger.warning(
                "Tick finished with %d error(s): %s", len(summary.errors), summary.errors
            )
        return summary

    async def _cleanup_logs(self) -> int:
        try:
            return await self._logs.cleanup_old_logs(settings.log_retention_days)
        except Exception:
            logger.exception("Execution log cleanup failed")
            return 0
