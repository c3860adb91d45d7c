"""Reminder and digest job handlers."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from taskhub.schemas.reminder import DailyDigestResult, ReminderSweepResult
from taskhub.services import digest_service, reminder_service

logger = logging.getLogger(__name__)


def _coerce_now(raw_now: str | None) -> datetime:
    if not raw_now:
        return datetime.now(timezone.utc)
    try:
        parsed = datetime.fromisoformat(raw_now)
    except ValueError:
        logger.warning("Invalid 'now' value '%s' in reminder payload; using current time", raw_now)
        return datetime.now(timezone.utc)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


async def process_task_reminder_sweep(db, job) -> ReminderSweepResult:
    """Process deadline reminder sweep job - email assignees of due tasks."""
    logger.info("Processing task reminder sweep job %s", job.id)
    payload = job.payload or {}

    result = await reminder_service.run_reminder_sweep(db, _coerce_now(payload.get("now")))
    logger.info(
        "Task reminder sweep complete (sent=%s failed=%s)",
        result.sent,
        len(result.failures),
    )
    return result


async def process_daily_digest(db, job) -> DailyDigestResult:
    """Process daily digest job - one task summary email per user."""
    logger.info("Processing daily digest job %s", job.id)
    payload = job.payload or {}

    result = await digest_service.run_daily_digest(db, _coerce_now(payload.get("now")))
    logger.info(
        "Daily digest complete (sent=%s failed=%s)",
        result.sent,
        len(result.failures),
    )
    return result
