"""CLI tools for task reminders, daily digests and visibility checks."""

import asyncio
import logging
from datetime import datetime, timezone
from uuid import UUID

import click

from taskhub.core.config import settings
from taskhub.core.task_access import can_actor_see_task
from taskhub.db.session import SessionLocal
from taskhub.services import digest_service, reminder_service


def _parse_now(now_iso: str | None) -> datetime:
    try:
        now = datetime.fromisoformat(now_iso) if now_iso else datetime.now(timezone.utc)
    except ValueError:
        raise click.BadParameter(f"not an ISO-8601 timestamp: {now_iso}", param_hint="--now")
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now


@click.group()
def cli():
    """Task hub CLI tools."""
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


@cli.command()
@click.option(
    "--now",
    "now_iso",
    default=None,
    help="Reference time as ISO-8601 (defaults to the current time)",
)
def send_task_reminders(now_iso: str | None):
    """
    Email assignees of tasks that are overdue, due today or due tomorrow.

    Example:
        python -m taskhub.cli send-task-reminders --now 2025-10-30T09:00:00+08:00
    """
    now = _parse_now(now_iso)

    db = SessionLocal()
    try:
        result = asyncio.run(reminder_service.run_reminder_sweep(db, now))
    except Exception as e:
        click.echo(f"❌ Reminder sweep failed: {e}", err=True)
        raise SystemExit(1)
    finally:
        db.close()

    click.echo(result.model_dump_json(by_alias=True, indent=2))


@cli.command()
@click.option(
    "--now",
    "now_iso",
    default=None,
    help="Reference time as ISO-8601 (defaults to the current time)",
)
def send_daily_digest(now_iso: str | None):
    """
    Email every user a summary of their overdue, due and upcoming tasks.

    Example:
        python -m taskhub.cli send-daily-digest --now 2025-10-30T08:00:00+08:00
    """
    now = _parse_now(now_iso)

    db = SessionLocal()
    try:
        result = asyncio.run(digest_service.run_daily_digest(db, now))
    except Exception as e:
        click.echo(f"❌ Daily digest failed: {e}", err=True)
        raise SystemExit(1)
    finally:
        db.close()

    click.echo(result.model_dump_json(by_alias=True, indent=2))


@cli.command()
@click.argument("actor_id", type=click.UUID)
@click.argument("task_id", type=int)
def can_see(actor_id: UUID, task_id: int):
    """Print whether ACTOR_ID may see TASK_ID."""
    db = SessionLocal()
    try:
        visible = can_actor_see_task(db, actor_id, task_id)
    finally:
        db.close()
    click.echo("visible" if visible else "hidden")


if __name__ == "__main__":
    cli()
