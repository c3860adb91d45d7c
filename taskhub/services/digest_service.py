"""Daily task digest.

Once a day every user with an email address and at least one open, dated
assignment gets a single summary of their tasks, grouped by deadline. A
failure for one user is logged and recorded; the rest of the run continues.
"""

from __future__ import annotations

import asyncio
import html
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from uuid import UUID
from zoneinfo import ZoneInfo

import httpx
from sqlalchemy.orm import Session

from taskhub.core.config import settings
from taskhub.core.structured_logging import mask_email
from taskhub.db.enums import DigestCategory
from taskhub.db.models import Task
from taskhub.schemas.reminder import DailyDigestResult, DigestFailureRecord, DigestSentRecord
from taskhub.services import deadline_service, directory_service, email_service
from taskhub.services.reminder_service import EmailSender, task_link

logger = logging.getLogger(__name__)

DIGEST_SUBJECT = "Your Daily Task Digest"

# Rendered sections, in email order. LATER tasks only decide whether a
# digest is worth sending.
SECTION_TITLES = {
    DigestCategory.OVERDUE: "Overdue Tasks",
    DigestCategory.DUE_TODAY: "Due Today",
    DigestCategory.UPCOMING: "Upcoming - Next {days} Days",
    DigestCategory.COMPLETED: "Completed",
}

_STAT_LABELS = {
    DigestCategory.OVERDUE: ("Overdue", "#d32f2f"),
    DigestCategory.DUE_TODAY: ("Due Today", "#f57c00"),
    DigestCategory.UPCOMING: ("Upcoming", "#558b2f"),
    DigestCategory.COMPLETED: ("Completed", "#00796b"),
}


@dataclass
class UserDigest:
    user_id: UUID
    email: str
    first_name: str | None
    tasks: dict[DigestCategory, list[Task]] = field(
        default_factory=lambda: {category: [] for category in DigestCategory}
    )

    def has_content(self) -> bool:
        return any(self.tasks[category] for category in SECTION_TITLES)


def categorize_task(task: Task, now: datetime, tz_name: str | None = None) -> DigestCategory:
    """Completed first, then by calendar days to the deadline."""
    if (task.status or "").strip().lower() in settings.terminal_statuses:
        return DigestCategory.COMPLETED
    days = deadline_service.days_until_due(task.deadline, now, tz_name)
    if days < 0:
        return DigestCategory.OVERDUE
    if days == 0:
        return DigestCategory.DUE_TODAY
    if days <= settings.DIGEST_UPCOMING_DAYS:
        return DigestCategory.UPCOMING
    return DigestCategory.LATER


def priority_badge(priority: int | None) -> str:
    if priority is None:
        return "No Priority Set"
    if priority >= 8:
        color = "#b71c1c"
    elif priority >= 6:
        color = "#d32f2f"
    elif priority >= 4:
        color = "#f57c00"
    else:
        color = "#558b2f"
    return f'<span style="color: {color}; font-weight: bold;">{priority}/10</span>'


def format_digest_deadline(deadline: datetime) -> str:
    """e.g. "October 31, 2025, 09:00 AM (Asia/Singapore)"."""
    local = deadline
    if local.tzinfo is None:
        local = local.replace(tzinfo=timezone.utc)
    local = local.astimezone(ZoneInfo(settings.REMINDER_TIMEZONE))
    return f"{local:%B} {local.day}, {local.year}, {local:%I:%M %p} ({settings.REMINDER_TIMEZONE})"


def _render_task(task: Task) -> str:
    return (
        '<div style="background-color: #f9f9f9; border: 1px solid #e0e0e0; '
        'border-radius: 6px; padding: 16px; margin-bottom: 12px;">'
        f'<a href="{task_link(task.id)}" style="color: #357bdc; font-weight: 600;">'
        f"{html.escape(task.title)}</a><br>"
        f"<strong>Status:</strong> {html.escape(task.status or 'No Status')}<br>"
        f"<strong>Priority:</strong> {priority_badge(task.priority_bucket)}<br>"
        f"<strong>Deadline:</strong> {format_digest_deadline(task.deadline)}"
        "</div>"
    )


def build_digest_email(digest: UserDigest, now: datetime) -> str:
    """HTML body of one user's digest."""
    today = now.astimezone(ZoneInfo(settings.REMINDER_TIMEZONE))
    stats = "".join(
        '<td style="padding: 16px; text-align: center;">'
        f'<div style="font-size: 24px; font-weight: bold; color: {color};">'
        f"{len(digest.tasks[category])}</div>"
        f'<div style="font-size: 12px;">{label}</div></td>'
        for category, (label, color) in _STAT_LABELS.items()
    )

    sections = []
    for category, title in SECTION_TITLES.items():
        tasks = digest.tasks[category]
        if not tasks:
            continue
        heading = title.format(days=settings.DIGEST_UPCOMING_DAYS)
        sections.append(
            '<h3 style="border-bottom: 2px solid #357bdc; padding-bottom: 8px;">'
            f"{heading} ({len(tasks)})</h3>"
            + "".join(_render_task(task) for task in tasks)
        )

    greeting = html.escape(digest.first_name) if digest.first_name else "there"
    return (
        '<html><body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">'
        '<h1 style="color: #357bdc;">Daily Task Digest</h1>'
        f"<p>{today:%A}, {today:%B} {today.day}, {today.year}</p>"
        f"<p>Hi {greeting},<br><br>"
        "Here's a summary of your tasks for today. Stay on top of your work!</p>"
        f"<table><tr>{stats}</tr></table>"
        f"{''.join(sections)}"
        '<p style="font-size: 12px; color: #999;">This is an automated digest email. '
        f'Visit <a href="{settings.app_base_url}">the task board</a> to manage your tasks.</p>'
        "</body></html>"
    )


def collect_digests(db: Session, now: datetime) -> list[UserDigest]:
    """Group every open, dated, assigned task under each assignee."""
    tasks = directory_service.read_tasks(db)
    assignees = directory_service.list_assignees_for_tasks(db, [task.id for task in tasks])

    tasks_by_user: dict[UUID, list[Task]] = {}
    for task in tasks:
        for assignee_id in assignees.get(task.id, []):
            tasks_by_user.setdefault(assignee_id, []).append(task)

    digests: list[UserDigest] = []
    for user in directory_service.list_users(db):
        email = (user.email or "").strip()
        if not email:
            logger.warning("User %s has no email; skipping digest", user.id)
            continue
        user_tasks = tasks_by_user.get(user.id)
        if not user_tasks:
            logger.info("User %s has no open dated tasks; skipping digest", user.id)
            continue

        digest = UserDigest(user_id=user.id, email=email, first_name=user.first_name)
        for task in user_tasks:
            digest.tasks[categorize_task(task, now)].append(task)
        if not digest.has_content():
            logger.info("User %s has nothing to report; skipping digest", user.id)
            continue
        digests.append(digest)
    return digests


async def _deliver(
    digest: UserDigest,
    content: str,
    semaphore: asyncio.Semaphore,
    client: httpx.AsyncClient,
    sender: EmailSender,
) -> DigestSentRecord | DigestFailureRecord:
    async with semaphore:
        try:
            await sender(to=digest.email, subject=DIGEST_SUBJECT, content=content, client=client)
        except Exception as exc:
            logger.warning(
                "Daily digest failed user=%s to=%s: %s",
                digest.user_id,
                mask_email(digest.email),
                exc,
            )
            return DigestFailureRecord(
                user_id=digest.user_id,
                error=str(exc) or exc.__class__.__name__,
            )

    logger.info("Daily digest sent to=%s", mask_email(digest.email))
    return DigestSentRecord(
        user_id=digest.user_id,
        user_email=digest.email,
        sent_at=datetime.now(timezone.utc),
    )


async def run_daily_digest(
    db: Session,
    now: datetime,
    *,
    send_email: EmailSender | None = None,
) -> DailyDigestResult:
    """
    Send one digest per user with something to report.

    Task and assignment read failures propagate. Send failures are recorded
    in `failures` and never stop other users' digests.
    """
    sender = send_email or email_service.send_email
    digests = collect_digests(db, now)
    result = DailyDigestResult(success=True)
    if not digests:
        logger.info("Daily digest: nothing to send")
        return result

    semaphore = asyncio.Semaphore(max(1, settings.REMINDER_SEND_CONCURRENCY))
    async with httpx.AsyncClient(timeout=settings.EMAIL_TIMEOUT_SECONDS) as client:
        outcomes = await asyncio.gather(
            *(
                _deliver(digest, build_digest_email(digest, now), semaphore, client, sender)
                for digest in digests
            )
        )

    for outcome in outcomes:
        if isinstance(outcome, DigestSentRecord):
            result.digests_sent.append(outcome)
        else:
            result.failures.append(outcome)
    result.sent = len(result.digests_sent)

    logger.info("Daily digest: %d sent, %d failed", result.sent, len(result.failures))
    return result
