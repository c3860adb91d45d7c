"""Deadline reminder sweep.

Runs as a periodic batch: classify every open task with a deadline, then email
each assignee of a bucketed task once. Per-recipient failures are recorded and
never abort the run. There is no "already reminded" ledger, so two runs on the
same day send twice.
"""

from __future__ import annotations

import asyncio
import html
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable
from uuid import UUID

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from taskhub.core.config import settings
from taskhub.core.structured_logging import mask_email
from taskhub.db.enums import ReminderBucket
from taskhub.db.models import Task
from taskhub.schemas.reminder import EmailFailureRecord, EmailSentRecord, ReminderSweepResult
from taskhub.services import deadline_service, directory_service, email_service

logger = logging.getLogger(__name__)

EmailSender = Callable[..., Awaitable[None]]


@dataclass(frozen=True)
class ReminderMessage:
    subject: str
    content: str


@dataclass(frozen=True)
class _PendingSend:
    task: Task
    bucket: ReminderBucket
    assignee_id: UUID
    email: str
    message: ReminderMessage


def task_link(task_id: int) -> str:
    return f"{settings.app_base_url}/task/{task_id}"


def build_reminder_email(task: Task, bucket: ReminderBucket) -> ReminderMessage:
    """Subject and HTML body for one task in one bucket."""
    title = task.title
    due = deadline_service.local_date(task.deadline).isoformat()
    safe_title = html.escape(title)

    if bucket == ReminderBucket.DUE_TOMORROW:
        subject = f'Reminder: Task "{title}" is due tomorrow'
        lead = (
            f"<p>This is a reminder that your task <strong>\"{safe_title}\"</strong> "
            f"is due on <strong>{due}</strong>.</p>"
        )
        closing = ""
    elif bucket == ReminderBucket.DUE_TODAY:
        subject = f'Reminder: Task "{title}" is due today'
        lead = (
            f"<p>Your task <strong>\"{safe_title}\"</strong> is due today "
            f"<strong>({due})</strong>.</p>"
        )
        closing = "<p>Please complete this task before the deadline.</p>"
    else:
        subject = f'Overdue: Task "{title}" is past due'
        lead = (
            f"<p>Your task <strong>\"{safe_title}\"</strong> was due on "
            f"<strong>{due}</strong> and is now overdue.</p>"
        )
        closing = "<p><strong>Please take action immediately.</strong></p>"

    description = html.escape(task.description or "No description provided")
    notes = html.escape(task.notes or "No notes provided")
    content = (
        '<html><body style="font-family: Arial, sans-serif; line-height: 1.6;">'
        "<p>Hello,</p>"
        f"{lead}"
        "<p>"
        f"<strong>Status:</strong> {html.escape(task.status or 'N/A')}<br>"
        f"<strong>Priority:</strong> {task.priority_bucket if task.priority_bucket is not None else 'N/A'}<br>"
        f"<strong>Description:</strong> {description}<br>"
        f"<strong>Notes:</strong> {notes}"
        "</p>"
        f"{closing}"
        f'<p>Click <a href="{task_link(task.id)}">here</a> to view task</p>'
        "<p>Regards,<br>Task Reminder Bot</p>"
        "</body></html>"
    )
    return ReminderMessage(subject=subject, content=content)


def collect_pending_sends(db: Session, now: datetime) -> list[_PendingSend]:
    """Resolve every (task, assignee) pair that should get a reminder now."""
    bucketed: list[tuple[Task, ReminderBucket]] = []
    for task in directory_service.read_tasks(db):
        bucket = deadline_service.classify_deadline(task, now)
        if bucket is None:
            continue
        bucketed.append((task, bucket))

    assignees = directory_service.list_assignees_for_tasks(db, [task.id for task, _ in bucketed])

    pending: list[_PendingSend] = []
    for task, bucket in bucketed:
        task_assignees = assignees.get(task.id, [])
        if not task_assignees:
            logger.info("No assignees for task %s; nothing to remind", task.id)
            continue

        message = build_reminder_email(task, bucket)
        for assignee_id in task_assignees:
            try:
                email = directory_service.lookup_user_email(db, assignee_id)
            except SQLAlchemyError:
                logger.warning(
                    "Email lookup failed for assignee %s on task %s; skipping",
                    assignee_id,
                    task.id,
                    exc_info=True,
                )
                continue
            if not email:
                logger.warning(
                    "No email for assignee %s on task %s; skipping", assignee_id, task.id
                )
                continue
            pending.append(
                _PendingSend(
                    task=task,
                    bucket=bucket,
                    assignee_id=assignee_id,
                    email=email,
                    message=message,
                )
            )
    return pending


async def _deliver(
    item: _PendingSend,
    semaphore: asyncio.Semaphore,
    client: httpx.AsyncClient,
    sender: EmailSender,
) -> EmailSentRecord | EmailFailureRecord:
    async with semaphore:
        try:
            await sender(
                to=item.email,
                subject=item.message.subject,
                content=item.message.content,
                client=client,
            )
        except Exception as exc:
            logger.warning(
                "Reminder email failed task=%s to=%s: %s",
                item.task.id,
                mask_email(item.email),
                exc,
            )
            return EmailFailureRecord(
                task_id=item.task.id,
                assignee_id=item.assignee_id,
                reminder_type=item.bucket,
                error=str(exc) or exc.__class__.__name__,
            )

    logger.info(
        "Reminder sent task=%s to=%s (%s)",
        item.task.id,
        mask_email(item.email),
        item.bucket.value,
    )
    return EmailSentRecord(
        task_id=item.task.id,
        task_title=item.task.title,
        assignee_id=item.assignee_id,
        assignee_email=item.email,
        reminder_type=item.bucket,
        sent_at=datetime.now(timezone.utc),
    )


async def run_reminder_sweep(
    db: Session,
    now: datetime,
    *,
    send_email: EmailSender | None = None,
) -> ReminderSweepResult:
    """
    Send one reminder per qualifying (task, assignee) pair.

    Read failures (tasks, assignments) propagate: the batch did not complete.
    Send failures are isolated per recipient and reported in `failures`.
    `send_email` defaults to the Resend sender.
    """
    sender = send_email or email_service.send_email
    pending = collect_pending_sends(db, now)
    result = ReminderSweepResult(success=True)
    if not pending:
        logger.info("Task reminder sweep: nothing to send")
        return result

    semaphore = asyncio.Semaphore(max(1, settings.REMINDER_SEND_CONCURRENCY))
    async with httpx.AsyncClient(timeout=settings.EMAIL_TIMEOUT_SECONDS) as client:
        outcomes = await asyncio.gather(*(_deliver(item, semaphore, client, sender) for item in pending))

    for outcome in outcomes:
        if isinstance(outcome, EmailSentRecord):
            result.emails_sent.append(outcome)
        else:
            result.failures.append(outcome)
    result.sent = len(result.emails_sent)

    logger.info(
        "Task reminder sweep: %d sent, %d failed", result.sent, len(result.failures)
    )
    return result
