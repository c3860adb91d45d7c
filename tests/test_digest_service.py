"""Tests for the daily task digest."""

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from taskhub.core.exceptions import EmailSendError
from taskhub.db.enums import DigestCategory
from taskhub.services import digest_service, email_service

SGT = ZoneInfo("Asia/Singapore")
NOW = datetime(2025, 10, 30, 9, 0, tzinfo=SGT)

YESTERDAY = datetime(2025, 10, 29, 1, 0, tzinfo=timezone.utc)
TODAY = datetime(2025, 10, 30, 10, 0, tzinfo=timezone.utc)
# 09:00 on Oct 31 in Singapore.
TOMORROW = datetime(2025, 10, 31, 1, 0, tzinfo=timezone.utc)
NEXT_MONTH = datetime(2025, 11, 30, 1, 0, tzinfo=timezone.utc)


@pytest.fixture
def outbox(monkeypatch):
    sent = []

    async def _capture(to, subject, content, *, is_html=True, client=None):
        sent.append({"to": to, "subject": subject, "content": content})

    monkeypatch.setattr(email_service, "send_email", _capture)
    return sent


@pytest.mark.parametrize(
    "deadline,status,expected",
    [
        (YESTERDAY, "To Do", DigestCategory.OVERDUE),
        (TODAY, "In Progress", DigestCategory.DUE_TODAY),
        (TOMORROW, "To Do", DigestCategory.UPCOMING),
        (NOW + timedelta(days=14), "To Do", DigestCategory.UPCOMING),
        (NOW + timedelta(days=15), "To Do", DigestCategory.LATER),
        (YESTERDAY, "Completed", DigestCategory.COMPLETED),
    ],
)
def test_categorize_task(make_user, make_task, deadline, status, expected):
    task = make_task(make_user(), deadline=deadline, status=status)

    assert digest_service.categorize_task(task, NOW) == expected


@pytest.mark.parametrize(
    "priority,fragment",
    [
        (9, "#b71c1c"),
        (6, "#d32f2f"),
        (4, "#f57c00"),
        (1, "#558b2f"),
        (None, "No Priority Set"),
    ],
)
def test_priority_badge_colours(priority, fragment):
    assert fragment in digest_service.priority_badge(priority)


def test_format_digest_deadline_uses_reference_timezone():
    assert digest_service.format_digest_deadline(TOMORROW) == (
        "October 31, 2025, 09:00 AM (Asia/Singapore)"
    )


@pytest.mark.asyncio
async def test_digest_groups_tasks_by_deadline(db, make_user, make_task, assign, outbox):
    joel = make_user("Joel", "Wang", email="joel@example.com")
    creator = make_user("Kester", "Tan", email=None)
    for title, deadline in [
        ("Late report", YESTERDAY),
        ("Standup notes", TODAY),
        ("Budget <draft>", TOMORROW),
        ("Roadmap", NEXT_MONTH),
    ]:
        assign(make_task(creator, title=title, deadline=deadline, priority_bucket=8), joel)

    result = await digest_service.run_daily_digest(db, NOW)

    assert result.sent == 1
    [message] = outbox
    assert message["to"] == "joel@example.com"
    assert message["subject"] == "Your Daily Task Digest"
    content = message["content"]
    assert "Hi Joel," in content
    assert "Thursday, October 30, 2025" in content
    assert "Overdue Tasks (1)" in content
    assert "Due Today (1)" in content
    assert "Upcoming - Next 14 Days (1)" in content
    assert "Budget &lt;draft&gt;" in content
    assert "https://tasks.example.com/task/" in content
    assert "8/10" in content
    assert "Roadmap" not in content
    assert "Completed (" not in content


@pytest.mark.asyncio
async def test_completed_tasks_get_their_own_section(db, make_user, make_task, assign, outbox):
    joel = make_user("Joel", "Wang", email="joel@example.com")
    assign(make_task(make_user("Kester", "Tan"), title="Shipped", deadline=YESTERDAY, status="Completed"), joel)

    result = await digest_service.run_daily_digest(db, NOW)

    assert result.sent == 1
    [message] = outbox
    assert "Completed (1)" in message["content"]
    assert "Overdue Tasks" not in message["content"]


@pytest.mark.asyncio
async def test_users_with_nothing_to_report_are_skipped(db, make_user, make_task, assign, outbox):
    creator = make_user("Kester", "Tan")
    no_email = make_user("Ryan", "Lim", email=None)
    only_later = make_user("Mei", "Ong", email="mei@example.com")
    only_undated = make_user("Ana", "Lee", email="ana@example.com")
    only_archived = make_user("Li", "Ng", email="li@example.com")
    make_user("Idle", "User", email="idle@example.com")
    assign(make_task(creator, deadline=TODAY), no_email)
    assign(make_task(creator, deadline=NEXT_MONTH), only_later)
    assign(make_task(creator), only_undated)
    assign(make_task(creator, deadline=TODAY, is_archived=True), only_archived)

    result = await digest_service.run_daily_digest(db, NOW)

    assert result.success is True
    assert result.sent == 0
    assert outbox == []


@pytest.mark.asyncio
async def test_failed_digest_does_not_stop_others(db, make_user, make_task, assign):
    bad = make_user("Bad", "Inbox", email="bad@example.com")
    good = make_user("Good", "Inbox", email="good@example.com")
    task = make_task(make_user("Kester", "Tan"), deadline=TODAY)
    assign(task, bad)
    assign(task, good)
    delivered = []

    async def _flaky(to, subject, content, *, is_html=True, client=None):
        if to == "bad@example.com":
            raise EmailSendError("Email provider error 422: invalid recipient", status_code=422)
        delivered.append(to)

    result = await digest_service.run_daily_digest(db, NOW, send_email=_flaky)

    assert result.success is True
    assert result.sent == 1
    assert delivered == ["good@example.com"]
    [failure] = result.failures
    assert failure.user_id == bad.id
    assert "422" in failure.error


@pytest.mark.asyncio
async def test_one_digest_per_user_across_tasks(db, make_user, make_task, assign, outbox):
    creator = make_user("Kester", "Tan", email=None)
    joel = make_user("Joel", "Wang", email="joel@example.com")
    ryan = make_user("Ryan", "Lim", email="ryan@example.com")
    shared = make_task(creator, title="Shared", deadline=TODAY)
    assign(shared, joel)
    assign(shared, ryan)
    assign(make_task(creator, title="Solo", deadline=TOMORROW), joel)

    result = await digest_service.run_daily_digest(db, NOW)

    assert result.sent == 2
    assert sorted(m["to"] for m in outbox) == ["joel@example.com", "ryan@example.com"]
    [joel_message] = [m for m in outbox if m["to"] == "joel@example.com"]
    assert "Shared" in joel_message["content"]
    assert "Solo" in joel_message["content"]


@pytest.mark.asyncio
async def test_result_serializes_with_camel_case_keys(db, make_user, make_task, assign, outbox):
    joel = make_user("Joel", "Wang", email="joel@example.com")
    assign(make_task(make_user("Kester", "Tan", email=None), deadline=TODAY), joel)

    result = await digest_service.run_daily_digest(db, NOW)
    payload = result.model_dump(mode="json", by_alias=True)

    assert payload["success"] is True
    assert payload["sent"] == 1
    [record] = payload["digestsSent"]
    assert record["userId"] == str(joel.id)
    assert record["userEmail"] == "joel@example.com"
    assert "sentAt" in record
    assert payload["failures"] == []
