"""ExecutionRecorder — persists outcomes and advances recurrence state."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from src.scheduler.models import ExecutionLog
from src.scheduler.rules import advance_rule

if TYPE_CHECKING:
    from datetime import datetime

    from src.scheduler.logs import LogStore
    from src.scheduler.models import ExecutionResult, Task
    from src.scheduler.store import TaskStore

logger = logging.getLogger(__name__)


def renewed_config(
    task: Task, result: ExecutionResult, executed_at: datetime
) -> dict[str, Any] | None:
    """Config with the execution rule moved one interval forward, if it should move.

    Only a successful execution of an auto-renew rule at or after the due
    date advances it.  A reminder that fires early leaves the rule due.
    """
    if not result.success:
        return None
    rule = task.execution_rule
    if rule is None or not rule.auto_renew:
        return None
    if executed_at < rule.end_date:
        logger.info(
            "Task '%s' (%s) ran before its due date %s; not renewing",
            task.name,
            task.id,
            rule.end_date.isoformat(),
        )
        return None
    return {**task.config, "executionRule": advance_rule(rule).to_config()}


class ExecutionRecorder:
    """Writes one log row and the task's run state per execution attempt.

    Persistence is best-effort: failures are logged and swallowed so that
    alerting still runs afterwards.
    """

    def __init__(self, tasks: TaskStore, logs: LogStore) -> None:
        self._tasks = tasks
        self._logs = logs

    async def record(
        self,
        task: Task,
        result: ExecutionResult,
        executed_at: datetime | None = None,
    ) -> dict[str, Any] | None:
        """Persist *result* for *task*.

        *executed_at* defaults to the result's timestamp.  The in-memory task
        is updated to match what was written.  Returns the new config when
        the execution rule was advanced, else None.
        """
        executed_at = executed_at or result.timestamp
        try:
            await self._logs.append_execution_log(
                ExecutionLog.from_result(task.id, result, executed_at)
            )
        except Exception:
            logger.exception(
                "Failed to append execution log for task '%s' (%s)", task.name, task.id
            )

        new_config = None
        try:
            new_config = renewed_config(task, result, executed_at)
        except Exception:
            logger.exception("Failed to compute renewal for task '%s' (%s)", task.name, task.id)

        try:
            await self._tasks.update_run_state(
                task.id,
                last_executed_at=executed_at,
                last_status=result.status,
                config=new_config,
            )
        except Exception:
            logger.exception("Failed to update run state for task '%s' (%s)", task.name, task.id)
            return None

        task.last_executed_at = executed_at
        task.last_status = result.status
        if new_config is not None:
            task.config = new_config
            logger.info(
                "Advanced due date of task '%s' (%s) to %s",
                task.name,
                task.id,
                new_config["executionRule"]["endDate"],
            )
        return new_config
