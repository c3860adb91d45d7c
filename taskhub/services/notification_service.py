"""
Notification Service - handles in-app notifications.

Provides the notification inbox operations and the trigger functions that
task events fan out through. Trigger functions receive already-resolved
names and recipients; resolution lives in task_events.
"""

import logging
from datetime import datetime, timezone
from typing import Iterable
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from taskhub.db.enums import NotificationType
from taskhub.db.models import Notification

logger = logging.getLogger(__name__)

TASK_ASSIGNED_TITLE = "New Task Assignment"
COMMENT_ADDED_TITLE = "New Comment"
TASK_UPDATED_TITLE = "Task Updated"


# =============================================================================
# Notification CRUD
# =============================================================================


def create_notification(
    db: Session,
    user_id: UUID,
    type: NotificationType,
    title: str,
    message: str,
) -> Notification:
    """
    Create a notification for a single recipient.

    Flushes but does not commit: the row belongs to the caller's unit of
    work. Database errors propagate.
    """
    notification = Notification(
        user_id=user_id,
        type=type.value,
        title=title,
        message=message,
        read=False,
    )
    db.add(notification)
    db.flush()
    return notification


def get_notifications_for_user(
    db: Session,
    user_id: UUID,
    include_archived: bool = False,
    unread_only: bool = False,
    limit: int = 50,
    offset: int = 0,
) -> list[Notification]:
    """Get notifications for user, newest first."""
    stmt = select(Notification).where(Notification.user_id == user_id)

    if not include_archived:
        stmt = stmt.where(Notification.is_archived.is_(False))

    if unread_only:
        stmt = stmt.where(Notification.read.is_(False))

    stmt = stmt.order_by(Notification.created_at.desc(), Notification.id.desc())
    return list(db.execute(stmt.offset(offset).limit(limit)).scalars().all())


def get_unread_count(db: Session, user_id: UUID) -> int:
    """Get count of unread notifications."""
    stmt = select(func.count(Notification.id)).where(
        Notification.user_id == user_id,
        Notification.read.is_(False),
    )
    return db.execute(stmt).scalar_one()


def mark_read(db: Session, notification_id: int, user_id: UUID) -> Notification | None:
    """Mark a notification as read (scoped to its recipient)."""
    notification = db.execute(
        select(Notification).where(
            Notification.id == notification_id,
            Notification.user_id == user_id,
        )
    ).scalar_one_or_none()

    if notification and not notification.read:
        notification.read = True
        notification.updated_at = datetime.now(timezone.utc)
        db.commit()
        db.refresh(notification)

    return notification


def mark_all_read(db: Session, user_id: UUID) -> int:
    """Mark all notifications as read. Returns count updated."""
    result = db.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.read.is_(False))
        .values(read=True, updated_at=datetime.now(timezone.utc))
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return result.rowcount or 0


def archive_notification(
    db: Session,
    notification_id: int,
    user_id: UUID,
) -> Notification | None:
    """Hide a notification from the default inbox listing."""
    notification = db.execute(
        select(Notification).where(
            Notification.id == notification_id,
            Notification.user_id == user_id,
        )
    ).scalar_one_or_none()

    if notification and not notification.is_archived:
        notification.is_archived = True
        notification.updated_at = datetime.now(timezone.utc)
        db.commit()
        db.refresh(notification)

    return notification


# =============================================================================
# Notification Triggers (called from task_events)
# =============================================================================


def notify_task_assigned(
    db: Session,
    task_title: str,
    assignee_id: UUID,
    actor_name: str,
) -> Notification:
    """Notify user when a task is assigned to them."""
    return create_notification(
        db=db,
        user_id=assignee_id,
        type=NotificationType.TASK_ASSIGNED,
        title=TASK_ASSIGNED_TITLE,
        message=f'{actor_name} assigned you to task: "{task_title}"',
    )


def notify_comment_added(
    db: Session,
    task_title: str,
    recipient_ids: Iterable[UUID],
    actor_name: str,
) -> int:
    """Notify each recipient of a new comment. Returns notifications created."""
    message = f'{actor_name} commented on task: "{task_title}"'
    created = 0
    for user_id in recipient_ids:
        create_notification(
            db=db,
            user_id=user_id,
            type=NotificationType.COMMENT_ADDED,
            title=COMMENT_ADDED_TITLE,
            message=message,
        )
        created += 1
    return created


def notify_task_updated(
    db: Session,
    recipient_ids: Iterable[UUID],
    message: str,
) -> int:
    """Send one rendered update message to each recipient."""
    created = 0
    for user_id in recipient_ids:
        create_notification(
            db=db,
            user_id=user_id,
            type=NotificationType.TASK_UPDATED,
            title=TASK_UPDATED_TITLE,
            message=message,
        )
        created += 1
    return created
