"""Task service - write paths that raise task events.

Each mutation and the notifications it causes share one commit: if a
notification insert fails, the mutation is rolled back with it.
"""

import logging
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from taskhub.core.exceptions import InvalidTaskUpdateError, TaskNotFoundError
from taskhub.db.enums import RECURRENCE_INTERVALS, TaskStatus
from taskhub.db.models import Task, TaskAssignment, TaskComment
from taskhub.schemas.task import TaskUpdate
from taskhub.services import directory_service, task_events
from taskhub.services.task_diff import TRACKED_FIELDS

logger = logging.getLogger(__name__)

# Fields that can be cleared (set to None)
CLEARABLE_FIELDS = {"description", "notes", "deadline", "recurrence_date", "project_id"}


def get_task(db: Session, task_id: int) -> Task | None:
    """Get task by ID."""
    return db.get(Task, task_id)


def _require_task(db: Session, task_id: int) -> Task:
    task = get_task(db, task_id)
    if not task:
        raise TaskNotFoundError(task_id)
    return task


def snapshot_task(task: Task) -> dict:
    """Plain-dict copy of the tracked fields, taken before a mutation."""
    return {
        field: getattr(task, field)
        for field in TRACKED_FIELDS
        if field != "priority"
    }


def assign_task(
    db: Session,
    task_id: int,
    assignee_id: UUID,
    assignor_id: UUID | None = None,
) -> TaskAssignment:
    """
    Assign a user to a task and notify them.

    Re-assigning an existing assignee is a no-op and returns the existing row.
    """
    task = _require_task(db, task_id)

    existing = db.execute(
        select(TaskAssignment).where(
            TaskAssignment.task_id == task_id,
            TaskAssignment.assignee_id == assignee_id,
        )
    ).scalar_one_or_none()
    if existing:
        return existing

    assignment = TaskAssignment(
        task_id=task_id,
        assignee_id=assignee_id,
        assignor_id=assignor_id,
    )
    try:
        db.add(assignment)
        db.flush()
        task_events.on_assignment_created(
            db,
            assignee_id=assignee_id,
            assignor_id=assignor_id,
            task_id=task.id,
            task_title=task.title,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(assignment)
    return assignment


def add_comment(
    db: Session,
    task_id: int,
    user_id: UUID,
    content: str,
) -> TaskComment:
    """Add a comment and notify the task's other assignees."""
    content = (content or "").strip()
    if not content:
        raise ValueError("Comment content is required")

    task = _require_task(db, task_id)
    comment = TaskComment(task_id=task_id, user_id=user_id, content=content)
    try:
        db.add(comment)
        db.flush()
        task_events.on_comment_created(
            db,
            commenter_id=user_id,
            task_id=task.id,
            task_title=task.title,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(comment)
    return comment


def _validate_recurrence(task: Task, update_data: dict) -> None:
    interval = update_data.get("recurrence_interval")
    if interval is None:
        interval = task.recurrence_interval
    if interval not in RECURRENCE_INTERVALS:
        raise InvalidTaskUpdateError(
            "Invalid recurrence interval. Must be 0, 1, 7, or 30 days"
        )
    recurrence_date = update_data.get("recurrence_date", task.recurrence_date)
    if interval > 0 and recurrence_date is None:
        raise InvalidTaskUpdateError(
            "Recurrence date is required when setting up recurrence"
        )


def update_task(
    db: Session,
    task_id: int,
    data: TaskUpdate,
    actor_user_id: UUID,
) -> Task:
    """
    Update task fields and notify assignees of what changed.

    Uses exclude_unset=True so only explicitly provided fields are updated.
    None values ARE applied to clearable fields and skipped otherwise.
    Completing a recurring task creates its next occurrence in the same commit.
    """
    task = _require_task(db, task_id)
    update_data = data.model_dump(exclude_unset=True)
    if "recurrence_interval" in update_data or "recurrence_date" in update_data:
        _validate_recurrence(task, update_data)

    previous = snapshot_task(task)
    previous_title = task.title

    applied: dict = {}
    for field, value in update_data.items():
        if value is None and field not in CLEARABLE_FIELDS:
            continue
        if hasattr(value, "value"):
            value = value.value
        setattr(task, field, value)
        applied[field] = value

    try:
        db.flush()
        task_events.on_task_updated(
            db,
            updater_id=actor_user_id,
            task_id=task.id,
            task_title=previous_title,
            updates=applied,
            previous=previous,
        )
        if (
            applied.get("status") == TaskStatus.COMPLETED.value
            and previous["status"] != TaskStatus.COMPLETED.value
        ):
            create_next_occurrence(db, task)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(task)
    return task


def calculate_next_due_date(task: Task) -> datetime | None:
    """Next deadline of a recurring task: deadline + interval days."""
    if task.recurrence_interval > 0 and task.deadline:
        return task.deadline + timedelta(days=task.recurrence_interval)
    return None


def create_next_occurrence(db: Session, task: Task) -> Task | None:
    """
    Queue the next instance of a recurring task with the same assignees.

    Flushes only; the caller commits. Returns None for one-off tasks.
    """
    next_deadline = calculate_next_due_date(task)
    if next_deadline is None:
        return None

    occurrence = Task(
        title=task.title,
        description=task.description,
        notes=task.notes,
        status=TaskStatus.TO_DO.value,
        priority_bucket=task.priority_bucket,
        creator_id=task.creator_id,
        project_id=task.project_id,
        parent_task_id=task.parent_task_id,
        deadline=next_deadline,
        recurrence_interval=task.recurrence_interval,
        recurrence_date=task.recurrence_date,
    )
    db.add(occurrence)
    db.flush()

    for assignee_id in directory_service.list_assignees(db, task.id):
        db.add(TaskAssignment(task_id=occurrence.id, assignee_id=assignee_id))
    db.flush()

    logger.info("Created next occurrence %s of recurring task %s", occurrence.id, task.id)
    return occurrence
