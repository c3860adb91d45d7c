"""Structured logging helpers (PII-safe)."""

from typing import Any
from uuid import UUID


def mask_email(email: str | None) -> str:
    """Keep enough of an address to correlate log lines, never the full value."""
    if not email:
        return ""
    local, _, domain = email.partition("@")
    prefix = local[:3] if local else ""
    return f"{prefix}...@{domain}" if domain else f"{prefix}..."


def build_log_context(
    *,
    actor_id: UUID | str | None = None,
    task_id: int | str | None = None,
    event: str | None = None,
    recipient_count: int | None = None,
) -> dict[str, Any]:
    """Return a PII-safe log context dict for notification events."""
    context: dict[str, Any] = {}
    if actor_id:
        context["actor_id"] = str(actor_id)
    if task_id is not None:
        context["task_id"] = str(task_id)
    if event:
        context["event"] = event
    if recipient_count is not None:
        context["recipient_count"] = recipient_count
    return context
