"""LogStore — append-only execution history."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from src.db import get_connection
from src.scheduler.models import FAILURE, SUCCESS, ExecutionLog, format_timestamp

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS execution_logs (
    id TEXT PRIMARY KEY,
    task_id TEXT NOT NULL,
    execution_time TEXT NOT NULL,
    status TEXT NOT NULL CHECK (status IN ('success', 'failure')),
    response_time_ms INTEGER,
    status_code INTEGER,
    error_message TEXT,
    details TEXT
)
"""

_CREATE_INDEX = """
CREATE INDEX IF NOT EXISTS idx_execution_logs_task_time
    ON execution_logs (task_id, execution_time)
"""

_COLUMNS = (
    "id, task_id, execution_time, status, response_time_ms, "
    "status_code, error_message, details"
)


@dataclass
class TaskStatistics:
    total_executions: int
    success_count: int
    failure_count: int
    average_response_time_ms: int
    last_execution: datetime | None = None


class LogStore:
    """Persists execution log rows in SQLite.

    Rows are never updated, only appended and eventually aged out by
    :meth:`cleanup_old_logs`.  Singleton accessed via ``LogStore.get()``.
    """

    _instance: LogStore | None = None

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = db_path
        self._initialised = False

    @classmethod
    def get(cls) -> LogStore:
        """Return the shared LogStore instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def _reset(cls) -> None:
        """Reset the singleton (for testing)."""
        cls._instance = None

    async def _connect(self):  # noqa: ANN202
        db = await get_connection(local_path_override=self._db_path)
        if not self._initialised:
            await db.execute(_CREATE_TABLE)
            await db.execute(_CREATE_INDEX)
            await db.commit()
            self._initialised = True
        return db

    # -- Writes ------------------------------------------------------------------

    async def append_execution_log(self, entry: ExecutionLog) -> ExecutionLog:
        db = await self._connect()
        try:
            await db.execute(
                f"INSERT INTO execution_logs ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                entry.to_row(),
            )
            await db.commit()
            return entry
        finally:
            await db.close()

    async def cleanup_old_logs(self, days: int, now: datetime | None = None) -> int:
        """Delete rows older than *days*. Returns the number of rows deleted."""
        cutoff = (now or datetime.now(UTC)) - timedelta(days=days)
        db = await self._connect()
        try:
            cursor = await db.execute(
                "DELETE FROM execution_logs WHERE execution_time < ?",
                (format_timestamp(cutoff),),
            )
            await db.commit()
            deleted = cursor.rowcount
        finally:
            await db.close()
        if deleted:
            logger.info("Deleted %d execution log(s) older than %d day(s)", deleted, days)
        return deleted

    # -- Reads -------------------------------------------------------------------

    async def recent_logs_for_task(self, task_id: str, limit: int) -> list[ExecutionLog]:
        """Return up to *limit* rows for a task, newest first."""
        db = await self._connect()
        try:
            cursor = await db.execute(
                f"""
                SELECT {_COLUMNS} FROM execution_logs
                WHERE task_id = ?
                ORDER BY execution_time DESC, rowid DESC
                LIMIT ?
                """,
                (task_id, limit),
            )
            rows = await cursor.fetchall()
            return [ExecutionLog.from_row(row) for row in rows]
        finally:
            await db.close()

    async def task_statistics(self, task_id: str, limit: int = 1000) -> TaskStatistics:
        """Summarize the most recent *limit* executions of a task."""
        logs = await self.recent_logs_for_task(task_id, limit)
        times = [log.response_time_ms for log in logs if log.response_time_ms is not None]
        return TaskStatistics(
            total_executions=len(logs),
            success_count=sum(1 for log in logs if log.status == SUCCESS),
            failure_count=sum(1 for log in logs if log.status == FAILURE),
            average_response_time_ms=round(sum(times) / len(times)) if times else 0,
            last_execution=logs[0].execution_time if logs else None,
        )
