"""Task visibility - centralized read-access checks for tasks and their links.

Access is department-based:
- The creator of a task can always see it
- Anyone in the same department as at least one assignee can see it

Everything else (assignments, assignee names, projects, departments) is
derived from the single task predicate below plus static joins. Colleague
and comment checks read the same department facts directly. Nothing in
this module calls back into another visibility check, so there is no
task <-> assignment recursion to break at runtime.
"""

from uuid import UUID

from sqlalchemy import ColumnElement, and_, or_, select
from sqlalchemy.orm import Session, aliased

from taskhub.db.models import Task, TaskAssignment, TaskComment, User, project_departments
from taskhub.schemas.task import UserIdentity


# =============================================================================
# Ground predicate
# =============================================================================


def _actor_department(actor_id: UUID):
    # Aliased so it never correlates against a User row of the outer query.
    actor = aliased(User)
    return select(actor.department_id).where(actor.id == actor_id).scalar_subquery()


def assigned_into_department_clause(actor_id: UUID) -> ColumnElement[bool]:
    """
    True for tasks with at least one assignee in the actor's department.

    Correlates only against the outer Task, so it can sit inside queries
    that already select from task_assignments or users. An actor without a
    department matches nothing (NULL never compares equal).
    """
    assignment = aliased(TaskAssignment)
    colleague = aliased(User)
    return (
        select(assignment.id)
        .join(colleague, colleague.id == assignment.assignee_id)
        .where(
            assignment.task_id == Task.id,
            colleague.department_id == _actor_department(actor_id),
        )
        .correlate(Task)
        .exists()
    )


def task_visibility_clause(actor_id: UUID) -> ColumnElement[bool]:
    """Boolean clause over Task: creator, or shares a department with an assignee."""
    return or_(
        Task.creator_id == actor_id,
        assigned_into_department_clause(actor_id),
    )


# =============================================================================
# Point checks
# =============================================================================


def can_actor_see_task(db: Session, actor_id: UUID, task_id: int) -> bool:
    """Check whether the actor may observe the task. Unknown ids are not visible."""
    stmt = select(Task.id).where(Task.id == task_id, task_visibility_clause(actor_id))
    return db.execute(stmt).first() is not None


def can_actor_see_assignment(db: Session, actor_id: UUID, assignment_id: int) -> bool:
    """An assignment row is visible if its task is, or if the actor is the assignee."""
    stmt = (
        select(TaskAssignment.id)
        .join(Task, Task.id == TaskAssignment.task_id)
        .where(
            TaskAssignment.id == assignment_id,
            or_(
                TaskAssignment.assignee_id == actor_id,
                task_visibility_clause(actor_id),
            ),
        )
    )
    return db.execute(stmt).first() is not None


def visible_assignee_identities(
    db: Session,
    actor_id: UUID,
    task_id: int,
) -> list[UserIdentity]:
    """
    Names of every assignee on a task the actor can see.

    Assignees outside the actor's department are included so the task can
    render "assigned to ..." for them. Returns [] when the task is hidden.
    """
    stmt = (
        select(User)
        .join(TaskAssignment, TaskAssignment.assignee_id == User.id)
        .join(Task, Task.id == TaskAssignment.task_id)
        .where(Task.id == task_id, task_visibility_clause(actor_id))
        .order_by(TaskAssignment.id)
    )
    return [UserIdentity.model_validate(user) for user in db.execute(stmt).scalars().all()]


def can_actor_see_project(db: Session, actor_id: UUID, project_id: int) -> bool:
    """Visible when some task assigned into the actor's department belongs to it."""
    stmt = select(Task.id).where(
        Task.project_id == project_id,
        assigned_into_department_clause(actor_id),
    )
    return db.execute(stmt.limit(1)).first() is not None


def can_actor_see_department(db: Session, actor_id: UUID, department_id: int) -> bool:
    """Visible when some task assigned into the actor's department links to it via its project."""
    stmt = (
        select(Task.id)
        .join(
            project_departments,
            and_(
                project_departments.c.project_id == Task.project_id,
                project_departments.c.department_id == department_id,
            ),
        )
        .where(assigned_into_department_clause(actor_id))
    )
    return db.execute(stmt.limit(1)).first() is not None


def can_actor_see_colleague(db: Session, actor_id: UUID, user_id: UUID) -> bool:
    """Users see themselves and everyone sharing their department."""
    if actor_id == user_id:
        return True
    stmt = select(User.id).where(
        User.id == user_id,
        User.department_id == _actor_department(actor_id),
    )
    return db.execute(stmt).first() is not None


def can_actor_see_comment(db: Session, actor_id: UUID, comment_id: int) -> bool:
    """
    A comment is visible to its author, or when its task's project is linked
    to the actor's department.
    """
    linked_to_department = (
        select(project_departments.c.project_id)
        .where(
            project_departments.c.project_id == Task.project_id,
            project_departments.c.department_id == _actor_department(actor_id),
        )
        .correlate(Task)
        .exists()
    )
    stmt = (
        select(TaskComment.id)
        .join(Task, Task.id == TaskComment.task_id)
        .where(
            TaskComment.id == comment_id,
            or_(TaskComment.user_id == actor_id, linked_to_department),
        )
    )
    return db.execute(stmt).first() is not None


# =============================================================================
# Listing
# =============================================================================


def list_visible_tasks(
    db: Session,
    actor_id: UUID,
    *,
    include_archived: bool = False,
) -> list[Task]:
    """All tasks the actor may see, oldest first."""
    stmt = select(Task).where(task_visibility_clause(actor_id))
    if not include_archived:
        stmt = stmt.where(Task.is_archived.is_(False))
    return list(db.execute(stmt.order_by(Task.id)).scalars().all())
