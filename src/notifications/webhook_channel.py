"""Webhook implementation of the NotificationChannel protocol."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import httpx

from src.config import settings
from src.notifications.models import DeliveryResult

if TYPE_CHECKING:
    from src.notifications.models import NotificationSettings

logger = logging.getLogger(__name__)


class WebhookChannel:
    """POSTs a JSON payload to the user's webhook URL."""

    @property
    def name(self) -> str:
        return "webhook"

    def is_configured(self, user_settings: NotificationSettings) -> bool:
        return user_settings.webhook_configured

    async def send(
        self,
        user_settings: NotificationSettings,
        title: str,
        message: str,
        *,
        metadata: dict[str, Any] | None = None,
    ) -> DeliveryResult:
        """POST ``{title, message, **metadata, timestamp}`` to the webhook URL."""
        payload = {
            "title": title,
            "message": message,
            **(metadata or {}),
            "timestamp": datetime.now(UTC).isoformat(),
        }
        headers = {"User-Agent": settings.webhook_user_agent}
        try:
            async with httpx.AsyncClient(timeout=settings.notification_timeout_seconds) as client:
                resp = await client.post(user_settings.webhook_url, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("Webhook delivery failed for user_id=%s: %s", user_settings.user_id, exc)
            return DeliveryResult(success=False, error=f"Webhook request failed: {exc}")

        if not resp.is_success:
            logger.warning(
                "Webhook delivery failed for user_id=%s: HTTP %d",
                user_settings.user_id,
                resp.status_code,
            )
            return DeliveryResult(
                success=False, error=f"Webhook request failed: HTTP {resp.status_code}"
            )
        return DeliveryResult(success=True)
