"""TaskStore — task reads and run-state writes."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from src.db import get_connection
from src.scheduler.models import Task, format_timestamp

if TYPE_CHECKING:
    from datetime import datetime
    from pathlib import Path

logger = logging.getLogger(__name__)

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS tasks (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    kind TEXT NOT NULL,
    owner_id TEXT NOT NULL,
    config TEXT NOT NULL,
    schedule TEXT NOT NULL DEFAULT '',
    enabled INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL,
    last_executed_at TEXT,
    last_status TEXT
)
"""


class TaskStore:
    """Persists tasks in SQLite.

    The engine only reads tasks and writes their run state; task creation is
    exposed for seeding and tests.  Singleton accessed via ``TaskStore.get()``.
    Pass an explicit *db_path* for test isolation (e.g. ``tmp_path / "test.db"``).
    """

    _instance: TaskStore | None = None

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = db_path
        self._initialised = False

    @classmethod
    def get(cls) -> TaskStore:
        """Return the shared TaskStore instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def _reset(cls) -> None:
        """Reset the singleton (for testing)."""
        cls._instance = None

    # -- Internal helpers ------------------------------------------------------

    async def _connect(self):  # noqa: ANN202
        db = await get_connection(local_path_override=self._db_path)
        if not self._initialised:
            await db.execute(_CREATE_TABLE)
            await db.commit()
            self._initialised = True
        return db

    # -- Reads / writes --------------------------------------------------------

    async def add_task(self, task: Task) -> Task:
        """Insert a new task. Returns the same task object."""
        db = await self._connect()
        try:
            await db.execute(
                """
                INSERT INTO tasks
                    (id, name, kind, owner_id, config, schedule, enabled,
                     created_at, last_executed_at, last_status)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                task.to_row(),
            )
            await db.commit()
            logger.info("Added task: %s (%s)", task.name, task.id)
            return task
        finally:
            await db.close()

    async def get_task(self, task_id: str) -> Task | None:
        """Fetch a task by ID, or None if not found."""
        db = await self._connect()
        try:
            cursor = await db.execute("SELECT * FROM tasks WHERE id = ?", (task_id,))
            row = await cursor.fetchone()
            return Task.from_row(row) if row else None
        finally:
            await db.close()

    async def list_enabled_tasks(self) -> list[Task]:
        """Return all enabled tasks. Rows that cannot be decoded are logged and skipped."""
        db = await self._connect()
        try:
            cursor = await db.execute(
                "SELECT * FROM tasks WHERE enabled = 1 ORDER BY created_at"
            )
            rows = await cursor.fetchall()
        finally:
            await db.close()

        tasks: list[Task] = []
        for row in rows:
            try:
                tasks.append(Task.from_row(row))
            except (ValueError, TypeError):
                logger.exception("Skipping unreadable task row: %s (%s)", row[1], row[0])
        return tasks

    async def update_run_state(
        self,
        task_id: str,
        last_executed_at: datetime,
        last_status: str,
        config: dict[str, Any] | None = None,
    ) -> bool:
        """Overwrite last-run fields, and the config when given, in one statement.

        Returns True if a row was updated.
        """
        if config is None:
            sql = "UPDATE tasks SET last_executed_at = ?, last_status = ? WHERE id = ?"
            params: tuple = (format_timestamp(last_executed_at), last_status, task_id)
        else:
            sql = (
                "UPDATE tasks SET last_executed_at = ?, last_status = ?, config = ? WHERE id = ?"
            )
            params = (
                format_timestamp(last_executed_at),
                last_status,
                json.dumps(config),
                task_id,
            )
        db = await self._connect()
        try:
            cursor = await db.execute(sql, params)
            await db.commit()
            return cursor.rowcount > 0
        finally:
            await db.close()
