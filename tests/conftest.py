"""Shared test fixtures."""

from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pytest

from src.notifications.models import DeliveryResult, NotificationSettings
from src.notifications.settings_store import SettingsStore
from src.scheduler.logs import LogStore
from src.scheduler.models import Task
from src.scheduler.store import TaskStore


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "test.db"


@pytest.fixture
async def task_store(db_path: Path) -> TaskStore:
    """Create a TaskStore backed by a temp database."""
    return TaskStore(db_path=db_path)


@pytest.fixture
async def log_store(db_path: Path) -> LogStore:
    return LogStore(db_path=db_path)


@pytest.fixture
async def settings_store(db_path: Path) -> SettingsStore:
    return SettingsStore(db_path=db_path)


class FakeChannel:
    """In-memory channel that records what it was asked to send."""

    def __init__(self, channel_name: str = "fake", *, ok: bool = True, available: bool = True):
        self._name = channel_name
        self.ok = ok
        self.available = available
        self.sent: list[tuple[str, str, str, dict[str, Any] | None]] = []

    @property
    def name(self) -> str:
        return self._name

    def is_configured(self, user_settings: NotificationSettings) -> bool:
        return self.available

    async def send(
        self,
        user_settings: NotificationSettings,
        title: str,
        message: str,
        *,
        metadata: dict[str, Any] | None = None,
    ) -> DeliveryResult:
        self.sent.append((user_settings.user_id, title, message, metadata))
        if self.ok:
            return DeliveryResult(success=True)
        return DeliveryResult(success=False, error=f"{self._name} is down")


def make_task(
    task_id: str = "task1",
    name: str = "Test Task",
    kind: str = "keepalive",
    **kwargs,
) -> Task:
    defaults: dict[str, Any] = {
        "owner_id": "user1",
        "config": {"url": "https://example.com/health"},
        "created_at": "2025-01-01T00:00:00+00:00",
    }
    defaults.update(kwargs)
    return Task(id=task_id, name=name, kind=kind, **defaults)


def make_rule(**kwargs) -> dict[str, Any]:
    """camelCase executionRule payload as stored in task config."""
    rule: dict[str, Any] = {
        "unit": "day",
        "interval": 30,
        "endDate": "2025-01-10T00:00:00Z",
        "autoRenew": True,
    }
    rule.update(kwargs)
    return rule


def utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=UTC)
