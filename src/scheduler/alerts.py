"""FailureRecoveryNotifier — consecutive-failure and recovery alerting."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from src.config import settings
from src.scheduler.models import FAILURE, SUCCESS

if TYPE_CHECKING:
    from src.notifications.dispatcher import NotificationDispatcher
    from src.notifications.models import DeliveryResult
    from src.notifications.settings_store import SettingsStore
    from src.scheduler.logs import LogStore
    from src.scheduler.models import ExecutionLog, ExecutionResult, Task

logger = logging.getLogger(__name__)


def count_consecutive_failures(logs: list[ExecutionLog]) -> int:
    """Count trailing failures in newest-first *logs*, stopping at the first success."""
    count = 0
    for log in logs:
        if log.status != FAILURE:
            break
        count += 1
    return count


def is_recovery(logs: list[ExecutionLog]) -> bool:
    """True when the newest row is a success directly following a failure."""
    return len(logs) >= 2 and logs[0].status == SUCCESS and logs[1].status == FAILURE


def build_failure_message(task: Task, error: str, failures: int, now: datetime) -> str:
    return "\n".join([
        "Task execution failed",
        "",
        f"Task: {task.name}",
        f"Kind: {task.kind}",
        f"Task ID: {task.id}",
        f"Consecutive failures: {failures}",
        f"Error: {error}",
        f"Time: {now.isoformat()}",
        "",
        "Please check the task configuration and the target service.",
    ])


def build_recovery_message(task: Task, now: datetime) -> str:
    return "\n".join([
        "Task recovered",
        "",
        f"Task: {task.name}",
        f"Kind: {task.kind}",
        f"Task ID: {task.id}",
        f"Time: {now.isoformat()}",
        "",
        "The task is executing successfully again.",
    ])


class FailureRecoveryNotifier:
    """Raises failure and recovery alerts from a task's execution history.

    Runs after the recorder, so the history already includes the execution
    being reported.  Never raises: alerting problems are logged only.
    """

    def __init__(
        self,
        logs: LogStore,
        settings_store: SettingsStore,
        dispatcher: NotificationDispatcher,
    ) -> None:
        self._logs = logs
        self._settings_store = settings_store
        self._dispatcher = dispatcher

    async def after_execution(self, task: Task, result: ExecutionResult) -> DeliveryResult | None:
        """Send an alert if one is warranted. Returns the delivery result, or None."""
        try:
            if result.success:
                return await self._maybe_send_recovery(task)
            return await self._maybe_send_failure(task, result)
        except Exception:
            logger.exception("Alerting failed for task '%s' (%s)", task.name, task.id)
            return None

    async def _maybe_send_failure(
        self, task: Task, result: ExecutionResult
    ) -> DeliveryResult | None:
        user_settings = await self._settings_store.get_settings_for_user(task.owner_id)
        if user_settings is None:
            logger.info(
                "User %s has no notification settings; skipping failure alert", task.owner_id
            )
            return None

        logs = await self._logs.recent_logs_for_task(task.id, settings.failure_lookback)
        failures = count_consecutive_failures(logs)
        if failures < user_settings.failure_threshold:
            logger.info(
                "Task '%s' has %d consecutive failure(s), below threshold %d",
                task.name,
                failures,
                user_settings.failure_threshold,
            )
            return None
        if not self._dispatcher.available_channels(user_settings):
            logger.info("No available channels for user %s; skipping failure alert", task.owner_id)
            return None

        error = result.error or "Unknown error"
        delivery = await self._dispatcher.send(
            user_settings,
            f"Task failed: {task.name}",
            build_failure_message(task, error, failures, datetime.now(UTC)),
            metadata={
                "type": "task_failure",
                "task_id": task.id,
                "task_name": task.name,
                "task_kind": task.kind,
                "error": error,
                "failure_count": failures,
            },
        )
        if not delivery.success:
            logger.warning(
                "Failure alert for task '%s' was not delivered: %s", task.name, delivery.error
            )
        return delivery

    async def _maybe_send_recovery(self, task: Task) -> DeliveryResult | None:
        logs = await self._logs.recent_logs_for_task(task.id, 2)
        if not is_recovery(logs):
            return None

        user_settings = await self._settings_store.get_settings_for_user(task.owner_id)
        if user_settings is None:
            logger.info(
                "User %s has no notification settings; skipping recovery alert", task.owner_id
            )
            return None
        if not self._dispatcher.available_channels(user_settings):
            logger.info("No available channels for user %s; skipping recovery alert", task.owner_id)
            return None

        delivery = await self._dispatcher.send(
            user_settings,
            f"Task recovered: {task.name}",
            build_recovery_message(task, datetime.now(UTC)),
            metadata={
                "type": "task_recovery",
                "task_id": task.id,
                "task_name": task.name,
                "task_kind": task.kind,
            },
        )
        if not delivery.success:
            logger.warning(
                "Recovery alert for task '%s' was not delivered: %s", task.name, delivery.error
            )
        return delivery
