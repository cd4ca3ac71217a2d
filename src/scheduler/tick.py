"""SchedulerTick — one pass of evaluate, execute, record, notify."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import zoneinfo
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

from src.config import settings
from src.scheduler.rules import is_due, matches_schedule

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from src.notifications.settings_store import SettingsStore
    from src.scheduler.alerts import FailureRecoveryNotifier
    from src.scheduler.executor import TaskExecutor
    from src.scheduler.models import ExecutionResult, Task
    from src.scheduler.recorder import ExecutionRecorder
    from src.scheduler.store import TaskStore

logger = logging.getLogger(__name__)


@dataclass
class TickSummary:
    processed: int = 0
    errors: list[str] = field(default_factory=list)


class SchedulerTick:
    """Runs due tasks through Executor → Recorder → Notifier.

    Execution of one task id is serialized by a per-task lock shared by every
    tick and ``run_now`` call on this instance; different tasks run
    concurrently, bounded by *concurrency*.

    Args:
        tasks: TaskStore to load tasks from.
        settings_store: SettingsStore for the owners' allowed time slots.
        executor: TaskExecutor that dispatches by task kind.
        recorder: ExecutionRecorder for logs and run state.
        notifier: FailureRecoveryNotifier for alerts.
        timezone: IANA zone the tick time is expressed in (default from settings).
        concurrency: Max due tasks processed at once (default from settings).
    """

    def __init__(
        self,
        tasks: TaskStore,
        settings_store: SettingsStore,
        executor: TaskExecutor,
        recorder: ExecutionRecorder,
        notifier: FailureRecoveryNotifier,
        timezone: str | None = None,
        concurrency: int | None = None,
    ) -> None:
        self._tasks = tasks
        self._settings_store = settings_store
        self._executor = executor
        self._recorder = recorder
        self._notifier = notifier
        self._tz = zoneinfo.ZoneInfo(timezone or settings.scheduler_timezone)
        self._semaphore = asyncio.Semaphore(concurrency or settings.tick_concurrency)
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: Counter[str] = Counter()

    def now(self) -> datetime:
        return datetime.now(self._tz)

    # -- Tick --------------------------------------------------------------------

    async def run(self, now: datetime | None = None) -> TickSummary:
        """Evaluate all enabled tasks at *now* and process the due ones."""
        now = (now or self.now()).astimezone(self._tz)
        summary = TickSummary()

        try:
            tasks = await self._tasks.list_enabled_tasks()
        except Exception as exc:
            logger.exception("Failed to load enabled tasks")
            summary.errors.append(f"Failed to load enabled tasks: {exc}")
            return summary

        due: list[Task] = []
        for task in tasks:
            try:
                if await self._is_due(task, now):
                    due.append(task)
            except Exception as exc:
                logger.exception("Failed to evaluate task '%s' (%s)", task.name, task.id)
                summary.errors.append(f"Task {task.name} ({task.id}) failed: {exc}")
        logger.info("Tick at %s: %d enabled, %d due", now.isoformat(), len(tasks), len(due))

        outcomes = await asyncio.gather(*(self._guarded(task, now) for task in due))
        for task, outcome in zip(due, outcomes, strict=True):
            if isinstance(outcome, Exception):
                summary.errors.append(f"Task {task.name} ({task.id}) failed: {outcome}")
            elif outcome is not None:
                summary.processed += 1

        logger.info(
            "Tick complete: processed %d task(s), %d error(s)",
            summary.processed,
            len(summary.errors),
        )
        return summary

    async def run_now(self, task_id: str) -> ExecutionResult | None:
        """Run one task immediately, ignoring its rule and schedule."""
        async with self._task_lock(task_id):
            task = await self._tasks.get_task(task_id)
            if task is None:
                logger.warning("Run-now requested for unknown task: %s", task_id)
                return None
            return await self._process(task, self.now())

    # -- Internal ------------------------------------------------------------------

    @contextlib.asynccontextmanager
    async def _task_lock(self, task_id: str) -> AsyncIterator[None]:
        """Hold the lock for *task_id*; the entry is dropped once nobody holds or awaits it."""
        lock = self._locks.setdefault(task_id, asyncio.Lock())
        self._lock_users[task_id] += 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[task_id] -= 1
            if not self._lock_users[task_id]:
                del self._lock_users[task_id]
                del self._locks[task_id]

    async def _is_due(self, task: Task, now: datetime) -> bool:
        rule = task.execution_rule
        if rule is None:
            # The task's crontab is the external signal for rule-less tasks.
            return matches_schedule(task.schedule, now) and is_due(task, now)
        user_settings = None
        if rule.has_reminder_window:
            user_settings = await self._settings_store.get_settings_for_user(task.owner_id)
        return is_due(task, now, user_settings)

    async def _guarded(self, task: Task, now: datetime) -> ExecutionResult | Exception | None:
        """Process one due task under its lock. Returns None when skipped."""
        async with self._semaphore, self._task_lock(task.id):
            try:
                fresh = await self._tasks.get_task(task.id)
                if fresh is None or not fresh.enabled:
                    logger.info("Task %s disappeared or was disabled; skipping", task.id)
                    return None
                if fresh.execution_rule is not None and not await self._is_due(fresh, now):
                    logger.info("Task '%s' is no longer due; skipping", fresh.name)
                    return None
                return await self._process(fresh, now)
            except Exception as exc:
                logger.exception("Task '%s' (%s) failed", task.name, task.id)
                return exc

    async def _process(self, task: Task, now: datetime) -> ExecutionResult:
        result = await self._executor.execute(task)
        await self._recorder.record(task, result, executed_at=now)
        await self._notifier.after_execution(task, result)
        return result
