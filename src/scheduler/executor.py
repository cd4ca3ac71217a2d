"""Task executors — run one task and return a normalized ExecutionResult."""

from __future__ import annotations

import logging
import time
import zoneinfo
from datetime import datetime
from typing import TYPE_CHECKING

from pydantic import ValidationError

from src.config import settings
from src.scheduler.models import KEEPALIVE, NOTIFICATION, ExecutionResult
from src.scheduler.render import render_notification
from src.scheduler.transport import HttpTransport

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from src.notifications.dispatcher import NotificationDispatcher
    from src.notifications.models import NotificationSettings
    from src.scheduler.models import Task

    SettingsLookup = Callable[[str], Awaitable[NotificationSettings | None]]

logger = logging.getLogger(__name__)

_BODY_METHODS = ("POST", "PUT")


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


def _describe(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


def _config_error(exc: ValidationError) -> str:
    problems = "; ".join(
        f"{'.'.join(str(p) for p in err['loc']) or 'config'}: {err['msg']}"
        for err in exc.errors()
    )
    return f"Invalid task config: {problems}"


class KeepaliveExecutor:
    """Pings the task's URL once."""

    def __init__(self, transport: HttpTransport | None = None) -> None:
        self._transport = transport or HttpTransport()

    async def run(self, task: Task) -> ExecutionResult:
        try:
            config = task.keepalive_config()
        except ValidationError as exc:
            return ExecutionResult(success=False, response_time_ms=0, error=_config_error(exc))

        timeout_ms = config.timeout or settings.keepalive_default_timeout_ms
        body = config.body if config.method in _BODY_METHODS else None
        logger.info(
            "Keepalive %s %s for task '%s' (%s)", config.method, config.url, task.name, task.id
        )
        started = time.monotonic()
        try:
            resp = await self._transport.fetch(
                config.url,
                method=config.method,
                headers=config.headers,
                body=body,
                timeout_ms=timeout_ms,
            )
        except Exception as exc:
            logger.warning("Keepalive request failed for task '%s': %s", task.name, exc)
            return ExecutionResult(
                success=False,
                response_time_ms=_elapsed_ms(started),
                error=_describe(exc),
            )

        result = ExecutionResult(
            success=resp.ok,
            response_time_ms=_elapsed_ms(started),
            status_code=resp.status,
        )
        if not resp.ok:
            result.error = f"HTTP {resp.status}: {resp.status_text}"
        return result


class NotificationExecutor:
    """Renders the task's message and hands it to the notification dispatcher."""

    def __init__(
        self,
        dispatcher: NotificationDispatcher,
        settings_lookup: SettingsLookup,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._dispatcher = dispatcher
        self._settings_lookup = settings_lookup
        self._clock = clock or (
            lambda: datetime.now(zoneinfo.ZoneInfo(settings.scheduler_timezone))
        )

    async def run(self, task: Task) -> ExecutionResult:
        started = time.monotonic()
        try:
            config = task.notification_config()
        except ValidationError as exc:
            return ExecutionResult(success=False, response_time_ms=0, error=_config_error(exc))

        try:
            user_settings = await self._settings_lookup(task.owner_id)
            if user_settings is None:
                return ExecutionResult(
                    success=False,
                    response_time_ms=_elapsed_ms(started),
                    error=f"No notification settings found for user {task.owner_id}",
                )

            now = self._clock()
            message = render_notification(config.message, config.execution_rule, now)
            title = config.title or settings.default_notification_title
            delivery = await self._dispatcher.send(
                user_settings,
                title,
                message,
                metadata={"type": "notification_task", "task_id": task.id, "task_name": task.name},
                now=now,
                respect_time_slots=True,
            )
        except Exception as exc:
            logger.exception("Notification task '%s' (%s) raised", task.name, task.id)
            return ExecutionResult(
                success=False, response_time_ms=_elapsed_ms(started), error=_describe(exc)
            )

        return ExecutionResult(
            success=delivery.success,
            response_time_ms=_elapsed_ms(started),
            status_code=200 if delivery.success else 500,
            error=delivery.error,
        )


class TaskExecutor:
    """Routes a task to the executor for its kind."""

    def __init__(
        self,
        keepalive: KeepaliveExecutor,
        notification: NotificationExecutor,
    ) -> None:
        self._executors = {KEEPALIVE: keepalive, NOTIFICATION: notification}

    async def execute(self, task: Task) -> ExecutionResult:
        """Run *task*. Raises ValueError for an unknown kind."""
        executor = self._executors.get(task.kind)
        if executor is None:
            msg = f"Unknown task kind: {task.kind}"
            raise ValueError(msg)

        logger.info("Executing task: '%s' (%s) kind=%s", task.name, task.id, task.kind)
        result = await executor.run(task)
        if result.success:
            logger.info(
                "Task succeeded: '%s' (%s) in %dms", task.name, task.id, result.response_time_ms
            )
        else:
            logger.warning("Task failed: '%s' (%s): %s", task.name, task.id, result.error)
        return result
