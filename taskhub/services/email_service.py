"""Outbound email via the Resend API.

Without RESEND_API_KEY the sender runs dry: messages are logged and treated
as accepted, so local runs of the reminder sweep never reach a provider.
"""

from __future__ import annotations

import asyncio
import logging
import random

import httpx

from taskhub.core.config import settings
from taskhub.core.exceptions import EmailSendError
from taskhub.core.structured_logging import mask_email

logger = logging.getLogger(__name__)

RESEND_SEND_URL = "https://api.resend.com/emails"
RETRY_STATUSES = {429, 500, 502, 503, 504}
RETRY_BASE_DELAY = 0.5
RETRY_MAX_DELAY = 4.0


def _backoff(attempt: int) -> float:
    delay = min(RETRY_MAX_DELAY, RETRY_BASE_DELAY * (2**attempt))
    return delay + random.uniform(0, delay / 2)


async def _post_with_retries(
    client: httpx.AsyncClient,
    payload: dict[str, object],
    headers: dict[str, str],
    max_attempts: int,
) -> httpx.Response:
    """POST to Resend, retrying transport errors and 429/5xx with jittered backoff."""
    for attempt in range(max_attempts):
        last_attempt = attempt >= max_attempts - 1
        try:
            response = await client.post(RESEND_SEND_URL, headers=headers, json=payload)
        except httpx.RequestError as exc:
            if last_attempt:
                raise EmailSendError(f"Email provider unreachable: {exc}") from exc
            logger.warning("Email request failed, retrying", exc_info=exc)
            await asyncio.sleep(_backoff(attempt))
            continue

        if response.status_code in RETRY_STATUSES and not last_attempt:
            logger.warning("Email provider returned %s, retrying", response.status_code)
            await asyncio.sleep(_backoff(attempt))
            continue

        return response

    raise EmailSendError("Email send exhausted retries")


async def send_email(
    to: str,
    subject: str,
    content: str,
    *,
    is_html: bool = True,
    client: httpx.AsyncClient | None = None,
) -> None:
    """
    Send one message. Raises EmailSendError when the provider does not accept it.

    Pass `client` to reuse a connection pool across a batch.
    """
    if settings.email_dry_run:
        logger.info("[DRY RUN] Email send skipped to=%s subject=%r", mask_email(to), subject)
        return

    payload: dict[str, object] = {
        "from": settings.EMAIL_FROM,
        "to": [to],
        "subject": subject,
        "html" if is_html else "text": content,
    }
    headers = {
        "Authorization": f"Bearer {settings.RESEND_API_KEY}",
        "Content-Type": "application/json",
    }

    if client is None:
        async with httpx.AsyncClient(timeout=settings.EMAIL_TIMEOUT_SECONDS) as own_client:
            response = await _post_with_retries(
                own_client, payload, headers, settings.EMAIL_MAX_ATTEMPTS
            )
    else:
        response = await _post_with_retries(client, payload, headers, settings.EMAIL_MAX_ATTEMPTS)

    if not 200 <= response.status_code < 300:
        raise EmailSendError(
            f"Email provider error {response.status_code}: {response.text[:200]}",
            status_code=response.status_code,
        )

    message_id = None
    try:
        data = response.json()
        if isinstance(data, dict):
            message_id = data.get("id")
    except ValueError:
        pass

    logger.info("Email accepted to=%s message_id=%s", mask_email(to), message_id)
