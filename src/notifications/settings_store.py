"""SettingsStore — notification settings persistence."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from src.db import get_connection
from src.notifications.models import NotificationSettings

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS notification_settings (
    user_id TEXT PRIMARY KEY,
    email_enabled INTEGER NOT NULL DEFAULT 0,
    email_address TEXT NOT NULL DEFAULT '',
    email_api_key TEXT NOT NULL DEFAULT '',
    email_from TEXT NOT NULL DEFAULT '',
    email_name TEXT NOT NULL DEFAULT '',
    webhook_enabled INTEGER NOT NULL DEFAULT 0,
    webhook_url TEXT NOT NULL DEFAULT '',
    notifyx_enabled INTEGER NOT NULL DEFAULT 0,
    notifyx_api_key TEXT NOT NULL DEFAULT '',
    failure_threshold INTEGER NOT NULL DEFAULT 3,
    allowed_time_slots TEXT NOT NULL DEFAULT '',
    updated_at TEXT NOT NULL
)
"""


class SettingsStore:
    """Read access to per-user notification settings (plus a writer for setup).

    Singleton accessed via ``SettingsStore.get()``.  Pass an explicit *db_path*
    for test isolation.
    """

    _instance: SettingsStore | None = None

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = db_path
        self._initialised = False

    @classmethod
    def get(cls) -> SettingsStore:
        """Return the shared SettingsStore instance."""
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
            await db.commit()
            self._initialised = True
        return db

    async def get_settings_for_user(self, user_id: str) -> NotificationSettings | None:
        """Fetch a user's settings, or None if they never configured any."""
        db = await self._connect()
        try:
            cursor = await db.execute(
                "SELECT * FROM notification_settings WHERE user_id = ?", (user_id,)
            )
            row = await cursor.fetchone()
            return NotificationSettings.from_row(row) if row else None
        finally:
            await db.close()

    async def save_settings(self, user_settings: NotificationSettings) -> NotificationSettings:
        """Insert or replace a user's settings."""
        db = await self._connect()
        try:
            await db.execute(
                """
                INSERT OR REPLACE INTO notification_settings
                    (user_id, email_enabled, email_address, email_api_key, email_from,
                     email_name, webhook_enabled, webhook_url, notifyx_enabled,
                     notifyx_api_key, failure_threshold, allowed_time_slots, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                user_settings.to_row(),
            )
            await db.commit()
            logger.info("Saved notification settings for user_id=%s", user_settings.user_id)
            return user_settings
        finally:
            await db.close()
