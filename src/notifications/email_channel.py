"""Email implementation of the NotificationChannel protocol (Resend HTTP API)."""

from __future__ import annotations

import html
import logging
from typing import TYPE_CHECKING, Any

import httpx

from src.config import settings
from src.notifications.models import DeliveryResult

if TYPE_CHECKING:
    from src.notifications.models import NotificationSettings

logger = logging.getLogger(__name__)


class EmailChannel:
    """Sends notifications as email through the user's Resend account."""

    @property
    def name(self) -> str:
        return "email"

    def is_configured(self, user_settings: NotificationSettings) -> bool:
        return user_settings.email_configured

    async def send(
        self,
        user_settings: NotificationSettings,
        title: str,
        message: str,
        *,
        metadata: dict[str, Any] | None = None,
    ) -> DeliveryResult:
        """Send *message* as a preformatted HTML email with *title* as subject."""
        payload = {
            "from": f"{user_settings.email_name} <{user_settings.email_from}>",
            "to": [user_settings.email_address],
            "subject": title,
            "html": f"<pre>{html.escape(message)}</pre>",
        }
        headers = {"Authorization": f"Bearer {user_settings.email_api_key}"}
        try:
            async with httpx.AsyncClient(timeout=settings.notification_timeout_seconds) as client:
                resp = await client.post(settings.resend_api_url, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("Email delivery failed for user_id=%s: %s", user_settings.user_id, exc)
            return DeliveryResult(success=False, error=f"Email send failed: {exc}")

        if not resp.is_success:
            detail = resp.text[:200]
            logger.warning(
                "Email API error for user_id=%s: status=%d body=%s",
                user_settings.user_id,
                resp.status_code,
                detail,
            )
            return DeliveryResult(
                success=False, error=f"Email API error: HTTP {resp.status_code} - {detail}"
            )
        logger.info("Email sent to %s (%d chars)", user_settings.email_address, len(message))
        return DeliveryResult(success=True)
