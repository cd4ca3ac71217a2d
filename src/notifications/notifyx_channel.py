"""NotifyX push implementation of the NotificationChannel protocol."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx

from src.config import settings
from src.notifications.models import DeliveryResult

if TYPE_CHECKING:
    from src.notifications.models import NotificationSettings

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 100
MAX_MESSAGE_LENGTH = 2000


def validate_payload(api_key: str, title: str, message: str) -> list[str]:
    """Return the problems that would make NotifyX reject the message."""
    errors: list[str] = []
    if not api_key.strip():
        errors.append("API key is empty")
    if not title.strip():
        errors.append("title is empty")
    elif len(title) > MAX_TITLE_LENGTH:
        errors.append(f"title exceeds {MAX_TITLE_LENGTH} characters")
    if not message.strip():
        errors.append("message is empty")
    elif len(message) > MAX_MESSAGE_LENGTH:
        errors.append(f"message exceeds {MAX_MESSAGE_LENGTH} characters")
    return errors


class NotifyXChannel:
    """Sends push notifications through NotifyX."""

    @property
    def name(self) -> str:
        return "notifyx"

    def is_configured(self, user_settings: NotificationSettings) -> bool:
        return user_settings.notifyx_configured

    async def send(
        self,
        user_settings: NotificationSettings,
        title: str,
        message: str,
        *,
        metadata: dict[str, Any] | None = None,
    ) -> DeliveryResult:
        problems = validate_payload(user_settings.notifyx_api_key, title, message)
        if problems:
            return DeliveryResult(
                success=False, error=f"Invalid NotifyX message: {', '.join(problems)}"
            )

        url = f"{settings.notifyx_api_url.rstrip('/')}/{user_settings.notifyx_api_key}"
        try:
            async with httpx.AsyncClient(timeout=settings.notification_timeout_seconds) as client:
                resp = await client.post(url, json={"title": title, "content": message})
        except httpx.HTTPError as exc:
            logger.warning("NotifyX delivery failed for user_id=%s: %s", user_settings.user_id, exc)
            return DeliveryResult(success=False, error=f"NotifyX send failed: {exc}")

        if not resp.is_success:
            return DeliveryResult(
                success=False,
                error=f"NotifyX API error: HTTP {resp.status_code} - {resp.text[:200]}",
            )
        return DeliveryResult(success=True)
