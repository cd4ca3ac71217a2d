"""Notification channels, settings, and dispatch."""

from src.notifications.channels import NotificationChannel
from src.notifications.dispatcher import NotificationDispatcher
from src.notifications.email_channel import EmailChannel
from src.notifications.models import DeliveryResult, NotificationSettings
from src.notifications.notifyx_channel import NotifyXChannel
from src.notifications.settings_store import SettingsStore
from src.notifications.webhook_channel import WebhookChannel

__all__ = [
    "DeliveryResult",
    "EmailChannel",
    "NotificationChannel",
    "NotificationDispatcher",
    "NotificationSettings",
    "NotifyXChannel",
    "SettingsStore",
    "WebhookChannel",
]
