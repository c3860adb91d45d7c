"""Enum definitions for task and notification constants."""

from enum import Enum


class TaskStatus(str, Enum):
    """Workflow status of a task, stored as its display label."""

    TO_DO = "To Do"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    BLOCKED = "Blocked"


class NotificationType(str, Enum):
    """Types of in-app notifications."""

    TASK_ASSIGNED = "task_assigned"
    COMMENT_ADDED = "comment_added"
    TASK_UPDATED = "task_updated"
    DEADLINE_REMINDER = "deadline_reminder"


class ReminderBucket(str, Enum):
    """Deadline proximity classes that trigger a reminder email."""

    OVERDUE = "overdue"
    DUE_TODAY = "due_today"
    DUE_TOMORROW = "due_tomorrow"


# Recurrence interval in days; 0 disables recurrence.
RECURRENCE_INTERVALS = (0, 1, 7, 30)

PRIORITY_MIN = 1
PRIORITY_MAX = 10


class DigestCategory(str, Enum):
    """Sections of the daily digest email."""

    OVERDUE = "overdue"
    DUE_TODAY = "due_today"
    UPCOMING = "upcoming"
    LATER = "later"
    COMPLETED = "completed"
