"""TaskPulse entry point."""

import argparse
import asyncio
import logging

from src.config import settings
from src.notifications.dispatcher import NotificationDispatcher
from src.notifications.email_channel import EmailChannel
from src.notifications.notifyx_channel import NotifyXChannel
from src.notifications.settings_store import SettingsStore
from src.notifications.webhook_channel import WebhookChannel
from src.scheduler.alerts import FailureRecoveryNotifier
from src.scheduler.engine import SchedulerEngine
from src.scheduler.executor import KeepaliveExecutor, NotificationExecutor, TaskExecutor
from src.scheduler.logs import LogStore
from src.scheduler.recorder import ExecutionRecorder
from src.scheduler.store import TaskStore
from src.scheduler.tick import SchedulerTick

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=settings.log_level,
)
logger = logging.getLogger(__name__)


def _init_dispatcher() -> NotificationDispatcher:
    dispatcher = NotificationDispatcher.get()
    for channel in (EmailChannel(), WebhookChannel(), NotifyXChannel()):
        if dispatcher.get_channel(channel.name) is None:
            dispatcher.register_channel(channel)
    return dispatcher


def build_engine() -> SchedulerEngine:
    """Wire stores, executors, recorder and notifier into a SchedulerEngine."""
    tasks = TaskStore.get()
    logs = LogStore.get()
    settings_store = SettingsStore.get()
    dispatcher = _init_dispatcher()

    executor = TaskExecutor(
        keepalive=KeepaliveExecutor(),
        notification=NotificationExecutor(
            dispatcher=dispatcher,
            settings_lookup=settings_store.get_settings_for_user,
        ),
    )
    tick = SchedulerTick(
        tasks=tasks,
        settings_store=settings_store,
        executor=executor,
        recorder=ExecutionRecorder(tasks, logs),
        notifier=FailureRecoveryNotifier(logs, settings_store, dispatcher),
    )
    logger.info("Channels registered: %s", dispatcher.list_channels())
    return SchedulerEngine(tick=tick, logs=logs)


async def _serve(engine: SchedulerEngine) -> None:
    await engine.start()
    try:
        await asyncio.Event().wait()
    finally:
        await engine.stop()


async def _run_once(engine: SchedulerEngine, task_id: str | None) -> None:
    if task_id:
        result = await engine.run_now(task_id)
        if result is None:
            logger.error("No task with id %s", task_id)
        return
    summary = await engine.run_tick()
    logger.info("Processed %d task(s), %d error(s)", summary.processed, len(summary.errors))


def main() -> None:
    """Run the scheduler until interrupted, or a single pass with ``--once``."""
    parser = argparse.ArgumentParser(prog="taskpulse")
    parser.add_argument("--once", action="store_true", help="run a single tick and exit")
    parser.add_argument("--run-task", metavar="TASK_ID", help="execute one task now and exit")
    args = parser.parse_args()

    engine = build_engine()
    if args.once or args.run_task:
        asyncio.run(_run_once(engine, args.run_task))
        return

    logger.info("Starting TaskPulse scheduler (tz=%s)...", settings.scheduler_timezone)
    try:
        asyncio.run(_serve(engine))
    except KeyboardInterrupt:
        logger.info("Shutting down")


if __name__ == "__main__":
    main()
