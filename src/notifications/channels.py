"""NotificationChannel protocol — interface for all notification delivery channels."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from src.notifications.models import DeliveryResult, NotificationSettings


@runtime_checkable
class NotificationChannel(Protocol):
    """Protocol that all notification channels must satisfy."""

    @property
    def name(self) -> str:
        """Unique channel identifier (e.g. 'email', 'webhook')."""
        ...

    def is_configured(self, user_settings: NotificationSettings) -> bool:
        """True when the user enabled this channel and filled its required fields."""
        ...

    async def send(
        self,
        user_settings: NotificationSettings,
        title: str,
        message: str,
        *,
        metadata: dict[str, Any] | None = None,
    ) -> DeliveryResult:
        """Deliver one message. Must not raise for delivery problems."""
        ...
