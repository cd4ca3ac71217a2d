"""Message rendering for notification tasks."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime

    from src.scheduler.models import RecurrenceRule


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def due_status(rule: RecurrenceRule, now: datetime) -> str:
    """Describe the due date relative to today, at calendar-day granularity.

    Both instants are compared as dates in *now*'s timezone.
    """
    due_day = rule.end_date.astimezone(now.tzinfo).date()
    days = (due_day - now.date()).days
    if days > 0:
        return f"due in {_plural(days, 'day')}"
    if days == 0:
        return "due today"
    return f"overdue by {_plural(-days, 'day')}"


def rule_summary(rule: RecurrenceRule) -> list[str]:
    lines = [
        f"Repeats: every {_plural(rule.interval, rule.unit)}",
        f"Auto-renew: {'on' if rule.auto_renew else 'off'}",
    ]
    if rule.has_reminder_window:
        advance = _plural(rule.reminder_advance_value, rule.reminder_advance_unit)
        lines.append(f"Reminder: {advance} in advance")
    return lines


def render_notification(message: str, rule: RecurrenceRule | None, now: datetime) -> str:
    """Append due-date status and the rule summary to a task's message."""
    if rule is None:
        return message
    due_day = rule.end_date.astimezone(now.tzinfo).date().isoformat()
    lines = [message, "", f"Due date: {due_day} ({due_status(rule, now)})", *rule_summary(rule)]
    return "\n".join(lines).strip()
