"""Task change detection and human-readable rendering.

diff_task compares a task's previous state with a partial update map and
returns only the fields whose values actually differ. The render helpers turn
those changes into the sentences used by task_updated notifications.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Mapping
from zoneinfo import ZoneInfo

from taskhub.core.config import settings

TRACKED_FIELDS = (
    "title",
    "status",
    "priority",
    "priority_bucket",
    "description",
    "notes",
    "deadline",
    "recurrence_interval",
    "recurrence_date",
    "is_archived",
    "project_id",
    "logged_time",
)

FIELD_DISPLAY_NAMES = {
    "priority_bucket": "priority",
    "recurrence_date": "recurrence date",
    "recurrence_interval": "recurrence interval",
    "is_archived": "archive status",
    "project_id": "project",
    "logged_time": "logged time",
}

# Update keys accepted as aliases of a stored column.
_FIELD_ALIASES = {"priority": "priority_bucket"}

_INTEGER_FIELDS = {"priority", "priority_bucket", "recurrence_interval", "project_id", "logged_time"}

_RECURRENCE_LABELS = {0: "none", 1: "daily", 7: "weekly", 30: "monthly"}

EMPTY_TEXT = "(empty)"
NO_DEADLINE = "(none)"


@dataclass(frozen=True)
class FieldChange:
    """A single field whose proposed value differs from the current one."""

    field: str
    old: Any
    new: Any

    @property
    def display_name(self) -> str:
        return FIELD_DISPLAY_NAMES.get(self.field, self.field)


# =============================================================================
# Normalisation
# =============================================================================


def _as_utc(value: datetime) -> datetime:
    # Naive timestamps come back from SQLite; they are stored as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _normalize(field: str, value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, Enum):
        value = value.value
    if field == "deadline":
        if isinstance(value, str):
            value = datetime.fromisoformat(value)
        if isinstance(value, datetime):
            return _as_utc(value)
        if isinstance(value, date):
            return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
        return value
    if field == "recurrence_date":
        if isinstance(value, str):
            value = datetime.fromisoformat(value)
        if isinstance(value, datetime):
            return value.date()
        return value
    if field == "is_archived":
        return bool(value)
    if field in _INTEGER_FIELDS:
        try:
            return int(value)
        except (TypeError, ValueError):
            return value
    return value


def _current_value(previous: Mapping[str, Any] | Any, field: str) -> Any:
    column = _FIELD_ALIASES.get(field, field)
    if isinstance(previous, Mapping):
        if field in previous:
            return previous[field]
        return previous.get(column)
    return getattr(previous, column, None)


def diff_task(previous: Mapping[str, Any] | Any, updates: Mapping[str, Any]) -> list[FieldChange]:
    """
    Return the changed fields of `updates`, in the order they were supplied.

    `previous` is either a mapping snapshot or a Task row. Keys outside the
    tracked field set are ignored. An empty result means nothing changed.
    """
    changes: list[FieldChange] = []
    seen: set[str] = set()
    for field, proposed in updates.items():
        if field not in TRACKED_FIELDS:
            continue
        column = _FIELD_ALIASES.get(field, field)
        if column in seen:
            continue
        old = _normalize(field, _current_value(previous, field))
        new = _normalize(field, proposed)
        if old == new:
            continue
        seen.add(column)
        changes.append(FieldChange(field=field, old=old, new=new))
    return changes


# =============================================================================
# Rendering
# =============================================================================


def format_deadline(value: datetime | None) -> str:
    """Render a deadline as e.g. "Oct 30, 2025" in the reference timezone."""
    if value is None:
        return NO_DEADLINE
    local = _as_utc(value).astimezone(ZoneInfo(settings.REMINDER_TIMEZONE))
    return f"{local:%b} {local.day}, {local.year}"


def _format_date(value: date) -> str:
    return f"{value:%b} {value.day}, {value.year}"


def _text_or_empty(value: Any) -> str:
    if value is None or value == "":
        return EMPTY_TEXT
    return str(value)


def _recurrence_label(value: Any) -> str:
    if value is None:
        return _RECURRENCE_LABELS[0]
    if value in _RECURRENCE_LABELS:
        return _RECURRENCE_LABELS[value]
    return f"every {value} days"


def render_change(change: FieldChange, actor_name: str, task_title: str) -> str:
    """Render the single-field sentence for one change."""
    field = change.field

    if field == "title":
        return f'{actor_name} updated the title of task "{change.old}" to "{change.new}"'

    if field == "is_archived":
        verb = "archived" if change.new else "unarchived"
        return f'{actor_name} {verb} task "{task_title}"'

    if field == "recurrence_date":
        if change.old is None:
            return (
                f'{actor_name} set the recurrence date of task "{task_title}" '
                f'to "{_format_date(change.new)}"'
            )
        if change.new is None:
            return f'{actor_name} removed the recurrence date of task "{task_title}"'
        return (
            f'{actor_name} changed the recurrence date of task "{task_title}" '
            f'from "{_format_date(change.old)}" to "{_format_date(change.new)}"'
        )

    if field == "project_id":
        return f'{actor_name} moved task "{task_title}" to a different project'

    if field == "deadline":
        old, new = format_deadline(change.old), format_deadline(change.new)
    elif field in ("description", "notes"):
        old, new = _text_or_empty(change.old), _text_or_empty(change.new)
    elif field == "recurrence_interval":
        old, new = _recurrence_label(change.old), _recurrence_label(change.new)
    else:
        old, new = str(change.old), str(change.new)

    verb = "updated" if field == "notes" else "changed"
    return (
        f'{actor_name} {verb} the {change.display_name} of task "{task_title}" '
        f'from "{old}" to "{new}"'
    )


def render_summary(changes: list[FieldChange], actor_name: str, task_title: str) -> str:
    """Compact sentence listing every changed field by its display name."""
    fields = ", ".join(change.display_name for change in changes)
    return f'{actor_name} updated task "{task_title}": {fields}'


def render_update_message(
    changes: list[FieldChange],
    actor_name: str,
    task_title: str,
) -> str | None:
    """Single-field sentence, multi-field summary, or None when nothing changed."""
    if not changes:
        return None
    if len(changes) == 1:
        return render_change(changes[0], actor_name, task_title)
    return render_summary(changes, actor_name, task_title)
