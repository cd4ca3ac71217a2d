"""Execution rule evaluation and recurrence date arithmetic.

Everything here is pure: callers pass the current time in, nothing is read
from the clock or the database.
"""

from __future__ import annotations

import calendar
import logging
import re
from datetime import datetime, timedelta, tzinfo
from typing import TYPE_CHECKING

from apscheduler.triggers.cron import CronTrigger

if TYPE_CHECKING:
    from src.notifications.models import NotificationSettings
    from src.scheduler.models import RecurrenceRule, Task

logger = logging.getLogger(__name__)

_MS_PER_HOUR = 60 * 60 * 1000
_MS_PER_DAY = 24 * _MS_PER_HOUR

# crontab numbers weekdays from Sunday (0 or 7); APScheduler from Monday.
_WEEKDAYS = ("sun", "mon", "tue", "wed", "thu", "fri", "sat")
_WEEKDAY_PART = re.compile(r"(\*|\d+)(?:-(\d+))?(?:/(\d+))?")


def advance_duration_ms(value: int, unit: str) -> int:
    """Length of a reminder window in milliseconds (``unit`` is day or hour)."""
    if unit == "day":
        return value * _MS_PER_DAY
    if unit == "hour":
        return value * _MS_PER_HOUR
    msg = f"Unknown reminder advance unit: {unit}"
    raise ValueError(msg)


def window_start(rule: RecurrenceRule) -> datetime:
    """Earliest instant a rule with a reminder window may fire."""
    advance = advance_duration_ms(rule.reminder_advance_value, rule.reminder_advance_unit)
    return rule.end_date - timedelta(milliseconds=advance)


def is_rule_due(
    rule: RecurrenceRule,
    now: datetime,
    settings: NotificationSettings | None = None,
) -> bool:
    """Decide whether *rule* is due at *now*.

    Without a reminder window the rule is due from ``end_date`` on.  With one,
    it is due from ``end_date - advance``; if the owner has allowed time
    slots, only on minute 0 of an allowed hour (hour/minute read from *now*,
    which callers express in the scheduler timezone).
    """
    if not rule.has_reminder_window:
        return now >= rule.end_date

    if now < window_start(rule):
        return False
    if settings is not None and settings.allowed_time_slots:
        return now.hour in settings.allowed_time_slots and now.minute == 0
    return True


def is_due(task: Task, now: datetime, settings: NotificationSettings | None = None) -> bool:
    """Decide whether an enabled task is due.

    Tasks without an execution rule are due whenever the external scheduling
    signal fires, so this returns True for them.  Raises ``ValidationError``
    if the task carries a malformed rule.
    """
    if not task.enabled:
        return False
    rule = task.execution_rule
    if rule is None:
        return True
    return is_rule_due(rule, now, settings)


def _crontab_weekdays(field: str) -> str:
    """Rewrite a crontab day-of-week field as APScheduler weekday names."""
    if field == "*":
        return field
    names: list[str] = []
    for part in field.split(","):
        match = _WEEKDAY_PART.fullmatch(part)
        if match is None:
            names.append(part)  # already named, e.g. "mon-fri"
            continue
        start, end, step = match.groups()
        if start == "*":
            first, last = 0, 6
        else:
            first = int(start)
            last = int(end) if end else (7 if step else first)
        if last > 7 or first > last:
            msg = f"Invalid day of week: {part!r}"
            raise ValueError(msg)
        names.extend(_WEEKDAYS[day % 7] for day in range(first, last + 1, int(step or 1)))
    return ",".join(dict.fromkeys(names))


def crontab_trigger(schedule: str, timezone: tzinfo | str | None = None) -> CronTrigger:
    """Build a CronTrigger from a standard 5-field crontab (Sunday = 0 or 7)."""
    fields = schedule.split()
    if len(fields) != 5:
        msg = f"Wrong number of fields; got {len(fields)}, expected 5"
        raise ValueError(msg)
    minute, hour, day, month, day_of_week = fields
    return CronTrigger(
        minute=minute,
        hour=hour,
        day=day,
        month=month,
        day_of_week=_crontab_weekdays(day_of_week),
        timezone=timezone,
    )


def matches_schedule(schedule: str, now: datetime) -> bool:
    """True when the 5-field crontab *schedule* fires in the minute containing *now*.

    An empty schedule matches every minute; an invalid one never matches.
    """
    if not schedule.strip():
        return True
    try:
        trigger = crontab_trigger(schedule, now.tzinfo)
    except ValueError:
        logger.warning("Invalid cron expression: %r", schedule)
        return False
    minute = now.replace(second=0, microsecond=0)
    next_fire = trigger.get_next_fire_time(None, minute)
    return next_fire is not None and next_fire == minute


def _add_months(value: datetime, months: int) -> datetime:
    """Shift by whole months, clamping the day to the target month's length."""
    total = value.month - 1 + months
    year = value.year + total // 12
    month = total % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def add_interval(value: datetime, unit: str, interval: int) -> datetime:
    """Advance *value* by ``interval`` days, months, or years.

    Days are exact 24h steps; months and years keep the time of day and clamp
    the day of month (Jan 31 + 1 month = Feb 28/29).
    """
    if unit == "day":
        return value + timedelta(days=interval)
    if unit == "month":
        return _add_months(value, interval)
    if unit == "year":
        return _add_months(value, 12 * interval)
    msg = f"Unknown recurrence unit: {unit}"
    raise ValueError(msg)


def advance_rule(rule: RecurrenceRule) -> RecurrenceRule:
    """Return a copy of *rule* moved forward by one interval."""
    update = {"end_date": add_interval(rule.end_date, rule.unit, rule.interval)}
    if rule.start_date is not None:
        update["start_date"] = add_interval(rule.start_date, rule.unit, rule.interval)
    return rule.model_copy(update=update)
