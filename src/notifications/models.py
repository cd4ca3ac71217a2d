"""Per-user notification settings and delivery results."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import UTC, datetime

_SLOT_SEPARATORS = re.compile(r"[,，\s]+")


def parse_time_slots(raw: str | None) -> set[int]:
    """Parse ``"9, 12,18"`` into ``{9, 12, 18}``. Invalid entries are dropped."""
    if not raw:
        return set()
    hours: set[int] = set()
    for part in _SLOT_SEPARATORS.split(raw.strip()):
        if part.isdigit() and 0 <= int(part) <= 23:
            hours.add(int(part))
    return hours


def format_time_slots(hours: set[int]) -> str:
    return ",".join(str(h) for h in sorted(hours))


@dataclass
class DeliveryResult:
    """Outcome of sending through one channel, or through all of them."""

    success: bool
    error: str | None = None


@dataclass
class NotificationSettings:
    """A user's channel configuration and alerting policy.

    A channel is *available* only when its enabled flag is set and every
    field it needs to deliver is non-empty.
    """

    user_id: str
    email_enabled: bool = False
    email_address: str = ""
    email_api_key: str = ""
    email_from: str = ""
    email_name: str = ""
    webhook_enabled: bool = False
    webhook_url: str = ""
    notifyx_enabled: bool = False
    notifyx_api_key: str = ""
    failure_threshold: int = 3
    allowed_time_slots: set[int] = field(default_factory=set)
    updated_at: str = ""

    def __post_init__(self) -> None:
        if self.failure_threshold < 1:
            msg = f"failure_threshold must be >= 1, got {self.failure_threshold}"
            raise ValueError(msg)
        if not self.updated_at:
            self.updated_at = datetime.now(UTC).isoformat()

    @property
    def email_configured(self) -> bool:
        return self.email_enabled and all(
            (self.email_address, self.email_api_key, self.email_from, self.email_name)
        )

    @property
    def webhook_configured(self) -> bool:
        return self.webhook_enabled and bool(self.webhook_url)

    @property
    def notifyx_configured(self) -> bool:
        return self.notifyx_enabled and bool(self.notifyx_api_key)

    def is_hour_allowed(self, hour: int) -> bool:
        """True when no slot policy is set or *hour* is one of the slots."""
        return not self.allowed_time_slots or hour in self.allowed_time_slots

    # -- Serialization ---------------------------------------------------------

    def to_row(self) -> tuple:
        """Serialize to a tuple matching the ``notification_settings`` column order."""
        return (
            self.user_id,
            int(self.email_enabled),
            self.email_address,
            self.email_api_key,
            self.email_from,
            self.email_name,
            int(self.webhook_enabled),
            self.webhook_url,
            int(self.notifyx_enabled),
            self.notifyx_api_key,
            self.failure_threshold,
            format_time_slots(self.allowed_time_slots),
            self.updated_at,
        )

    @classmethod
    def from_row(cls, row: tuple) -> NotificationSettings:
        return cls(
            user_id=row[0],
            email_enabled=bool(row[1]),
            email_address=row[2] or "",
            email_api_key=row[3] or "",
            email_from=row[4] or "",
            email_name=row[5] or "",
            webhook_enabled=bool(row[6]),
            webhook_url=row[7] or "",
            notifyx_enabled=bool(row[8]),
            notifyx_api_key=row[9] or "",
            failure_threshold=row[10],
            allowed_time_slots=parse_time_slots(row[11]),
            updated_at=row[12] or "",
        )
