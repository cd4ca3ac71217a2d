"""Tests for application wiring in the entry point."""

import pytest

from src.notifications.dispatcher import NotificationDispatcher
from src.notifications.settings_store import SettingsStore
from src.scheduler.engine import SchedulerEngine
from src.scheduler.logs import LogStore
from src.scheduler.store import TaskStore


@pytest.fixture(autouse=True)
def _reset_singletons():
    """Reset singletons before and after each test."""
    for cls in (TaskStore, LogStore, SettingsStore, NotificationDispatcher):
        cls._reset()
    yield
    for cls in (TaskStore, LogStore, SettingsStore, NotificationDispatcher):
        cls._reset()


def test_build_engine_wires_pipeline() -> None:
    from src.main import build_engine

    engine = build_engine()

    assert isinstance(engine, SchedulerEngine)
    assert engine._logs is LogStore.get()
    assert engine._tick._tasks is TaskStore.get()
    assert engine._tick._settings_store is SettingsStore.get()


def test_build_engine_registers_channels() -> None:
    from src.main import build_engine

    build_engine()
    assert NotificationDispatcher.get().list_channels() == ["email", "webhook", "notifyx"]


def test_build_engine_twice_does_not_duplicate_channels() -> None:
    from src.main import build_engine

    build_engine()
    build_engine()
    assert len(NotificationDispatcher.get().list_channels()) == 3
