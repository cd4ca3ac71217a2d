"""Tests for ExecutionRecorder — logs, run state, and due-date renewal."""

from unittest.mock import AsyncMock, MagicMock

from conftest import make_rule, make_task, utc

from src.scheduler.logs import LogStore
from src.scheduler.models import ExecutionResult, RecurrenceRule
from src.scheduler.recorder import ExecutionRecorder, renewed_config
from src.scheduler.store import TaskStore

OK = ExecutionResult(success=True, response_time_ms=80, status_code=200)
FAILED = ExecutionResult(
    success=False, response_time_ms=80, status_code=503, error="HTTP 503: Service Unavailable"
)


def _ruled_task(**rule):
    return make_task(config={"url": "https://example.com", "executionRule": make_rule(**rule)})


# -- renewed_config ------------------------------------------------------------


def test_renewal_on_success_after_due_date() -> None:
    config = renewed_config(_ruled_task(), OK, utc(2025, 1, 10, 0, 5))
    assert config is not None
    rule = RecurrenceRule.model_validate(config["executionRule"])
    assert rule.end_date == utc(2025, 2, 9)
    assert config["url"] == "https://example.com"


def test_no_renewal_on_failure() -> None:
    assert renewed_config(_ruled_task(), FAILED, utc(2025, 1, 10, 0, 5)) is None


def test_no_renewal_without_auto_renew() -> None:
    assert renewed_config(_ruled_task(autoRenew=False), OK, utc(2025, 1, 10, 0, 5)) is None


def test_no_renewal_without_rule() -> None:
    assert renewed_config(make_task(), OK, utc(2025, 1, 10)) is None


def test_no_renewal_for_early_reminder() -> None:
    task = _ruled_task(reminderAdvanceValue=3, reminderAdvanceUnit="day")
    assert renewed_config(task, OK, utc(2025, 1, 8, 9)) is None


# -- ExecutionRecorder -------------------------------------------------------------


async def test_record_writes_log_and_run_state(
    task_store: TaskStore, log_store: LogStore
) -> None:
    task = await task_store.add_task(make_task("t1"))
    recorder = ExecutionRecorder(task_store, log_store)

    new_config = await recorder.record(task, FAILED, executed_at=utc(2025, 1, 10, 0, 5))
    assert new_config is None

    logs = await log_store.recent_logs_for_task("t1", 10)
    assert len(logs) == 1
    assert logs[0].status == "failure"
    assert logs[0].execution_time == utc(2025, 1, 10, 0, 5)

    stored = await task_store.get_task("t1")
    assert stored.last_status == "failure"
    assert stored.last_executed_at == utc(2025, 1, 10, 0, 5)
    assert task.last_status == "failure"


async def test_record_advances_due_date(task_store: TaskStore, log_store: LogStore) -> None:
    task = await task_store.add_task(_ruled_task())
    recorder = ExecutionRecorder(task_store, log_store)

    await recorder.record(task, OK, executed_at=utc(2025, 1, 10, 0, 5))

    stored = await task_store.get_task(task.id)
    assert stored.execution_rule.end_date == utc(2025, 2, 9)
    assert stored.last_status == "success"
    assert task.execution_rule.end_date == utc(2025, 2, 9)


async def test_record_early_success_keeps_due_date(
    task_store: TaskStore, log_store: LogStore
) -> None:
    task = await task_store.add_task(
        _ruled_task(reminderAdvanceValue=3, reminderAdvanceUnit="day")
    )
    recorder = ExecutionRecorder(task_store, log_store)

    await recorder.record(task, OK, executed_at=utc(2025, 1, 8, 9))

    stored = await task_store.get_task(task.id)
    assert stored.execution_rule.end_date == utc(2025, 1, 10)
    assert stored.last_status == "success"


async def test_record_defaults_to_result_timestamp(
    task_store: TaskStore, log_store: LogStore
) -> None:
    task = await task_store.add_task(make_task("t1"))
    result = ExecutionResult(success=True, response_time_ms=1, timestamp=utc(2025, 3, 1, 12))

    await ExecutionRecorder(task_store, log_store).record(task, result)

    stored = await task_store.get_task("t1")
    assert stored.last_executed_at == utc(2025, 3, 1, 12)


async def test_record_log_failure_still_updates_task(task_store: TaskStore) -> None:
    task = await task_store.add_task(make_task("t1"))
    logs = MagicMock(append_execution_log=AsyncMock(side_effect=RuntimeError("disk full")))

    await ExecutionRecorder(task_store, logs).record(task, OK, executed_at=utc(2025, 1, 10))

    stored = await task_store.get_task("t1")
    assert stored.last_status == "success"


async def test_record_task_update_failure_is_swallowed(log_store: LogStore) -> None:
    task = make_task("t1", config={"url": "https://x", "executionRule": make_rule()})
    tasks = MagicMock(update_run_state=AsyncMock(side_effect=RuntimeError("locked")))

    new_config = await ExecutionRecorder(tasks, log_store).record(
        task, OK, executed_at=utc(2025, 1, 10)
    )

    assert new_config is None
    assert task.last_status is None
    assert len(await log_store.recent_logs_for_task("t1", 10)) == 1
