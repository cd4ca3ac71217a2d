"""NotificationDispatcher — fans a message out to a user's available channels."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from src.notifications.models import DeliveryResult

if TYPE_CHECKING:
    from src.notifications.channels import NotificationChannel
    from src.notifications.models import NotificationSettings

logger = logging.getLogger(__name__)

TEST_TITLE = "TaskPulse test notification"
TEST_MESSAGE = (
    "This is a test notification from TaskPulse. If you received it, "
    "your notification settings are configured correctly."
)


class NotificationDispatcher:
    """Sends notifications through every channel a user has enabled and configured.

    Singleton accessed via ``NotificationDispatcher.get()``.  The overall
    result is a success when at least one channel delivers.
    """

    _instance: NotificationDispatcher | None = None

    def __init__(self) -> None:
        self._channels: dict[str, NotificationChannel] = {}

    @classmethod
    def get(cls) -> NotificationDispatcher:
        """Return the singleton instance, creating it if needed."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def _reset(cls) -> None:
        """Reset singleton — for tests only."""
        cls._instance = None

    def register_channel(self, channel: NotificationChannel) -> None:
        """Register a notification channel. Raises ValueError on duplicate name."""
        if channel.name in self._channels:
            msg = f"Channel '{channel.name}' is already registered"
            raise ValueError(msg)
        self._channels[channel.name] = channel

    def get_channel(self, name: str) -> NotificationChannel | None:
        """Look up a channel by name."""
        return self._channels.get(name)

    def list_channels(self) -> list[str]:
        """Return names of all registered channels."""
        return list(self._channels.keys())

    def available_channels(self, user_settings: NotificationSettings) -> list[NotificationChannel]:
        """Registered channels the user has enabled and fully configured."""
        return [ch for ch in self._channels.values() if ch.is_configured(user_settings)]

    async def send(
        self,
        user_settings: NotificationSettings,
        title: str,
        message: str,
        *,
        metadata: dict[str, Any] | None = None,
        now: datetime | None = None,
        respect_time_slots: bool = False,
    ) -> DeliveryResult:
        """Send through all available channels.

        With *respect_time_slots*, a send outside the user's allowed hours
        fails without contacting any channel. *now* should already be in the
        scheduler timezone.
        """
        if respect_time_slots:
            hour = (now or datetime.now(UTC)).hour
            if not user_settings.is_hour_allowed(hour):
                return DeliveryResult(
                    success=False,
                    error=f"Current hour ({hour}) is outside the allowed notification hours",
                )

        channels = self.available_channels(user_settings)
        if not channels:
            return DeliveryResult(success=False, error="No notification channels enabled")

        errors: list[str] = []
        delivered = 0
        for ch in channels:
            result = await self._send_one(ch, user_settings, title, message, metadata)
            if result.success:
                delivered += 1
            else:
                errors.append(f"{ch.name}: {result.error}")

        logger.info(
            "Notification '%s' for user_id=%s delivered via %d/%d channel(s)",
            title,
            user_settings.user_id,
            delivered,
            len(channels),
        )
        if delivered:
            return DeliveryResult(success=True)
        return DeliveryResult(
            success=False, error=f"All notification channels failed: {'; '.join(errors)}"
        )

    async def send_test(
        self,
        user_settings: NotificationSettings,
        channel: str | None = None,
    ) -> DeliveryResult:
        """Send a fixed test message to one named channel, or to all available ones."""
        metadata = {"type": "test"}
        if channel is None:
            return await self.send(user_settings, TEST_TITLE, TEST_MESSAGE, metadata=metadata)

        ch = self._channels.get(channel)
        if ch is None:
            return DeliveryResult(success=False, error=f"Unknown notification channel: {channel}")
        if not ch.is_configured(user_settings):
            return DeliveryResult(
                success=False, error=f"Channel '{channel}' is not enabled or not configured"
            )
        return await self._send_one(ch, user_settings, TEST_TITLE, TEST_MESSAGE, metadata)

    async def _send_one(
        self,
        ch: NotificationChannel,
        user_settings: NotificationSettings,
        title: str,
        message: str,
        metadata: dict[str, Any] | None,
    ) -> DeliveryResult:
        try:
            return await ch.send(user_settings, title, message, metadata=metadata)
        except Exception as exc:
            logger.exception(
                "Channel '%s' raised while sending to user_id=%s", ch.name, user_settings.user_id
            )
            return DeliveryResult(success=False, error=str(exc) or type(exc).__name__)
