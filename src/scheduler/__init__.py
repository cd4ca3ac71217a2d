"""Scheduled execution engine — rules, executors, recording, alerting, and ticks."""

from src.scheduler.alerts import FailureRecoveryNotifier
from src.scheduler.engine import SchedulerEngine
from src.scheduler.executor import KeepaliveExecutor, NotificationExecutor, TaskExecutor
from src.scheduler.logs import LogStore
from src.scheduler.models import ExecutionResult, RecurrenceRule, Task
from src.scheduler.recorder import ExecutionRecorder
from src.scheduler.rules import is_due
from src.scheduler.store import TaskStore
from src.scheduler.tick import SchedulerTick, TickSummary

__all__ = [
    "ExecutionRecorder",
    "ExecutionResult",
    "FailureRecoveryNotifier",
    "KeepaliveExecutor",
    "LogStore",
    "NotificationExecutor",
    "RecurrenceRule",
    "SchedulerEngine",
    "SchedulerTick",
    "Task",
    "TaskExecutor",
    "TaskStore",
    "TickSummary",
    "is_due",
]
