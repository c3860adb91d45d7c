"""Deadline classification for reminder sweeps.

Comparisons are made on calendar days in the reference timezone
(settings.REMINDER_TIMEZONE). `now` is always passed in.
"""

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from taskhub.core.config import settings
from taskhub.db.enums import ReminderBucket
from taskhub.db.models import Task


def _reference_tz(tz_name: str | None = None) -> ZoneInfo:
    return ZoneInfo(tz_name or settings.REMINDER_TIMEZONE)


def local_date(value: datetime, tz_name: str | None = None) -> date:
    """Calendar date of an instant in the reference timezone (naive = UTC)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(_reference_tz(tz_name)).date()


def days_until_due(deadline: datetime, now: datetime, tz_name: str | None = None) -> int:
    """Whole calendar days from `now` to `deadline`; negative once past due."""
    return (local_date(deadline, tz_name) - local_date(now, tz_name)).days


def is_reminder_candidate(task: Task) -> bool:
    """Archived, terminal-status and undated tasks are never reminded."""
    if task.is_archived:
        return False
    if (task.status or "").strip().lower() in settings.terminal_statuses:
        return False
    return task.deadline is not None


def classify_deadline(
    task: Task,
    now: datetime,
    tz_name: str | None = None,
) -> ReminderBucket | None:
    """
    Bucket a task by deadline proximity.

    past day -> overdue, same day -> due_today, next day -> due_tomorrow,
    anything else (or an excluded task) -> None.
    """
    if not is_reminder_candidate(task):
        return None

    days_until = days_until_due(task.deadline, now, tz_name)
    if days_until < 0:
        return ReminderBucket.OVERDUE
    if days_until == 0:
        return ReminderBucket.DUE_TODAY
    if days_until == 1:
        return ReminderBucket.DUE_TOMORROW
    return None
