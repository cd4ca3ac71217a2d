"""Task, recurrence rule, and execution result models."""

from __future__ import annotations

import json
import uuid
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

KEEPALIVE = "keepalive"
NOTIFICATION = "notification"

SUCCESS = "success"
FAILURE = "failure"


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO 8601 column value, or None."""
    if not value:
        return None
    return ensure_utc(datetime.fromisoformat(value))


def format_timestamp(value: datetime | None) -> str | None:
    if value is None:
        return None
    return ensure_utc(value).astimezone(UTC).isoformat()


# -- Task config -----------------------------------------------------------------


class _CamelModel(BaseModel):
    """Config payloads are stored as camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RecurrenceRule(_CamelModel):
    """Next-due-date recurrence attached to ``config.executionRule``.

    ``end_date`` is the authoritative "fire at/after this instant" marker.
    It only moves forward, after a successful execution at/after it.
    """

    unit: Literal["day", "month", "year"]
    interval: int = Field(ge=1)
    start_date: datetime | None = None
    end_date: datetime
    reminder_advance_value: int | None = Field(default=None, ge=1)
    reminder_advance_unit: Literal["day", "hour"] | None = None
    auto_renew: bool = False

    @field_validator("start_date", "end_date")
    @classmethod
    def _aware(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value) if value is not None else None

    @property
    def has_reminder_window(self) -> bool:
        return bool(self.reminder_advance_value and self.reminder_advance_unit)

    def to_config(self) -> dict[str, Any]:
        """Serialize back to the camelCase JSON stored in task config."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class KeepaliveConfig(_CamelModel):
    url: str = Field(min_length=1)
    method: Literal["GET", "POST", "PUT", "DELETE"] = "GET"
    headers: dict[str, str] = Field(default_factory=dict)
    body: str | None = None
    timeout: int | None = Field(default=None, ge=1)  # milliseconds
    execution_rule: RecurrenceRule | None = None

    @field_validator("method", mode="before")
    @classmethod
    def _upper(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value


class NotificationConfig(_CamelModel):
    message: str = ""
    title: str | None = None
    execution_rule: RecurrenceRule | None = None

    @model_validator(mode="before")
    @classmethod
    def _content_alias(cls, data: Any) -> Any:
        # Older tasks stored the body under "content".
        if isinstance(data, dict) and "message" not in data and "content" in data:
            data = {**data, "message": data["content"]}
        return data


# -- Task --------------------------------------------------------------------------


@dataclass
class Task:
    """A recurring unit of work.

    Attributes:
        id: Unique identifier (UUID hex).
        name: Human-readable name.
        kind: ``"keepalive"`` or ``"notification"``.
        owner_id: ID of the user who owns the task.
        config: Kind-specific JSON payload, optionally carrying ``executionRule``.
        schedule: 5-field crontab used when the config has no ``executionRule``.
            Empty means every tick.
        enabled: Disabled tasks are never evaluated.
        created_at: ISO 8601 timestamp.
        last_executed_at: When the last execution was recorded.
        last_status: ``"success"`` or ``"failure"`` of the last execution.
    """

    id: str
    name: str
    kind: str
    owner_id: str
    config: dict[str, Any] = field(default_factory=dict)
    schedule: str = ""
    enabled: bool = True
    created_at: str = ""
    last_executed_at: datetime | None = None
    last_status: str | None = None

    def __post_init__(self) -> None:
        if not self.created_at:
            self.created_at = datetime.now(UTC).isoformat()

    # -- Convenience properties ------------------------------------------------

    @property
    def is_keepalive(self) -> bool:
        return self.kind == KEEPALIVE

    @property
    def is_notification(self) -> bool:
        return self.kind == NOTIFICATION

    @property
    def execution_rule(self) -> RecurrenceRule | None:
        """Parse ``config.executionRule``. Raises ValidationError if malformed."""
        raw = self.config.get("executionRule")
        if not raw:
            return None
        return RecurrenceRule.model_validate(raw)

    def keepalive_config(self) -> KeepaliveConfig:
        return KeepaliveConfig.model_validate(self.config)

    def notification_config(self) -> NotificationConfig:
        return NotificationConfig.model_validate(self.config)

    # -- Serialization ---------------------------------------------------------

    def to_row(self) -> tuple:
        """Serialize to a tuple matching the ``tasks`` column order."""
        return (
            self.id,
            self.name,
            self.kind,
            self.owner_id,
            json.dumps(self.config),
            self.schedule,
            int(self.enabled),
            self.created_at,
            format_timestamp(self.last_executed_at),
            self.last_status,
        )

    @classmethod
    def from_row(cls, row: tuple) -> Task:
        """Deserialize from a SQLite row tuple."""
        return cls(
            id=row[0],
            name=row[1],
            kind=row[2],
            owner_id=row[3],
            config=json.loads(row[4]),
            schedule=row[5] or "",
            enabled=bool(row[6]),
            created_at=row[7],
            last_executed_at=parse_timestamp(row[8]),
            last_status=row[9],
        )


def make_task_id() -> str:
    """Generate a new task ID."""
    return uuid.uuid4().hex


# -- Execution -----------------------------------------------------------------------


@dataclass
class ExecutionResult:
    """Outcome of a single execution attempt. Never persisted directly."""

    success: bool
    response_time_ms: int
    status_code: int | None = None
    error: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def status(self) -> str:
        return SUCCESS if self.success else FAILURE

    def to_details(self) -> dict[str, Any]:
        """Full result as a JSON-ready dict for the log's details column."""
        data = asdict(self)
        data["timestamp"] = format_timestamp(self.timestamp)
        return data


@dataclass
class ExecutionLog:
    """An append-only row in ``execution_logs``."""

    id: str
    task_id: str
    execution_time: datetime
    status: str
    response_time_ms: int | None = None
    status_code: int | None = None
    error_message: str | None = None
    details: dict[str, Any] | None = None

    @classmethod
    def from_result(
        cls, task_id: str, result: ExecutionResult, executed_at: datetime | None = None
    ) -> ExecutionLog:
        return cls(
            id=uuid.uuid4().hex,
            task_id=task_id,
            execution_time=executed_at or result.timestamp,
            status=result.status,
            response_time_ms=result.response_time_ms,
            status_code=result.status_code,
            error_message=result.error,
            details=result.to_details(),
        )

    def to_row(self) -> tuple:
        return (
            self.id,
            self.task_id,
            format_timestamp(self.execution_time),
            self.status,
            self.response_time_ms,
            self.status_code,
            self.error_message,
            json.dumps(self.details) if self.details is not None else None,
        )

    @classmethod
    def from_row(cls, row: tuple) -> ExecutionLog:
        return cls(
            id=row[0],
            task_id=row[1],
            execution_time=parse_timestamp(row[2]),
            status=row[3],
            response_time_ms=row[4],
            status_code=row[5],
            error_message=row[6],
            details=json.loads(row[7]) if row[7] else None,
        )
