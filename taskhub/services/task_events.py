"""Task domain events (side-effect dispatch).

Each handler runs synchronously inside the caller's unit of work. Name lookups
degrade to FALLBACK_ACTOR_NAME, assignee lookups fail closed, and
notification writes are never swallowed.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from taskhub.core.structured_logging import build_log_context
from taskhub.services import directory_service, notification_service, task_diff

logger = logging.getLogger(__name__)

FALLBACK_ACTOR_NAME = "Someone"


def resolve_actor_name(db: Session, actor_id: UUID | None) -> str:
    """Display name for an actor, or the fallback identity."""
    if not actor_id:
        return FALLBACK_ACTOR_NAME
    try:
        identity = directory_service.lookup_user(db, actor_id)
    except SQLAlchemyError:
        logger.warning("Actor lookup failed; using fallback name", exc_info=True)
        return FALLBACK_ACTOR_NAME
    return identity.display_name if identity else FALLBACK_ACTOR_NAME


def _recipients_excluding(
    db: Session,
    task_id: int,
    actor_id: UUID,
    event: str,
) -> list[UUID] | None:
    """Assignees other than the actor; None when the assignee read failed."""
    try:
        assignee_ids = directory_service.list_assignees(db, task_id)
    except SQLAlchemyError:
        logger.exception(
            "Could not load assignees; skipping notifications",
            extra=build_log_context(actor_id=actor_id, task_id=task_id, event=event),
        )
        return None
    return [assignee_id for assignee_id in assignee_ids if assignee_id != actor_id]


def on_assignment_created(
    db: Session,
    assignee_id: UUID,
    assignor_id: UUID | None,
    task_id: int,
    task_title: str,
) -> None:
    """Notify a user that a task has been assigned to them."""
    if assignee_id == assignor_id:
        return

    actor_name = resolve_actor_name(db, assignor_id)
    notification_service.notify_task_assigned(
        db=db,
        task_title=task_title,
        assignee_id=assignee_id,
        actor_name=actor_name,
    )
    logger.info(
        "Task assignment notification created",
        extra=build_log_context(
            actor_id=assignor_id, task_id=task_id, event="task_assigned", recipient_count=1
        ),
    )


def on_comment_created(
    db: Session,
    commenter_id: UUID,
    task_id: int,
    task_title: str,
) -> None:
    """Notify every assignee except the commenter."""
    recipients = _recipients_excluding(db, task_id, commenter_id, "comment_added")
    if not recipients:
        return

    actor_name = resolve_actor_name(db, commenter_id)
    created = notification_service.notify_comment_added(
        db=db,
        task_title=task_title,
        recipient_ids=recipients,
        actor_name=actor_name,
    )
    logger.info(
        "Comment notifications created",
        extra=build_log_context(
            actor_id=commenter_id, task_id=task_id, event="comment_added", recipient_count=created
        ),
    )


def on_task_updated(
    db: Session,
    updater_id: UUID,
    task_id: int,
    task_title: str,
    updates: Mapping[str, Any],
    previous: Mapping[str, Any] | Any,
) -> None:
    """Tell assignees (other than the updater) what changed on a task."""
    changes = task_diff.diff_task(previous, updates)
    if not changes:
        return

    recipients = _recipients_excluding(db, task_id, updater_id, "task_updated")
    if not recipients:
        return

    actor_name = resolve_actor_name(db, updater_id)
    message = task_diff.render_update_message(changes, actor_name, task_title)
    created = notification_service.notify_task_updated(
        db=db,
        recipient_ids=recipients,
        message=message,
    )
    logger.info(
        "Task update notifications created for %d field(s)",
        len(changes),
        extra=build_log_context(
            actor_id=updater_id, task_id=task_id, event="task_updated", recipient_count=created
        ),
    )
