"""Directory lookups - identities, emails, assignees and task candidates.

Every function here is a plain read against the session. Misses return
None / empty; SQLAlchemy errors propagate so callers decide whether to
fall back (names) or fail closed (assignee lists).
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from taskhub.db.models import Task, TaskAssignment, User
from taskhub.schemas.task import UserIdentity


def lookup_user(db: Session, user_id: UUID | None) -> UserIdentity | None:
    """Resolve a user's name, or None when the id is empty or unknown."""
    if not user_id:
        return None
    user = db.get(User, user_id)
    if not user:
        return None
    return UserIdentity.model_validate(user)


def lookup_user_email(db: Session, user_id: UUID) -> str | None:
    """Resolve a user's email; blank addresses count as missing."""
    email = db.execute(select(User.email).where(User.id == user_id)).scalar_one_or_none()
    if not email or not email.strip():
        return None
    return email.strip()


def list_assignees(db: Session, task_id: int) -> list[UUID]:
    """Current assignee ids for a task, in assignment order."""
    stmt = (
        select(TaskAssignment.assignee_id)
        .where(TaskAssignment.task_id == task_id)
        .order_by(TaskAssignment.id)
    )
    return list(db.execute(stmt).scalars().all())


def list_assignees_for_tasks(db: Session, task_ids: list[int]) -> dict[int, list[UUID]]:
    """Bulk variant of list_assignees keyed by task id."""
    if not task_ids:
        return {}
    stmt = (
        select(TaskAssignment.task_id, TaskAssignment.assignee_id)
        .where(TaskAssignment.task_id.in_(task_ids))
        .order_by(TaskAssignment.id)
    )
    assignees: dict[int, list[UUID]] = {task_id: [] for task_id in task_ids}
    for task_id, assignee_id in db.execute(stmt).all():
        assignees[task_id].append(assignee_id)
    return assignees


def read_tasks(
    db: Session,
    *,
    include_archived: bool = False,
    with_deadline: bool = True,
) -> list[Task]:
    """Enumerate reminder candidates. Status filtering happens in the classifier."""
    stmt = select(Task)
    if not include_archived:
        stmt = stmt.where(Task.is_archived.is_(False))
    if with_deadline:
        stmt = stmt.where(Task.deadline.is_not(None))
    return list(db.execute(stmt.order_by(Task.id)).scalars().all())


def list_users(db: Session) -> list[User]:
    """Every user, oldest first. Email presence is checked by the caller."""
    stmt = select(User).order_by(User.created_at, User.id)
    return list(db.execute(stmt).scalars().all())
