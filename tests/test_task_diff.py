from datetime import date, datetime, timezone

from taskhub.db.enums import TaskStatus
from taskhub.services.task_diff import (
    FieldChange,
    diff_task,
    format_deadline,
    render_change,
    render_update_message,
)

PREVIOUS = {
    "title": "Design budget dashboard",
    "status": "To Do",
    "priority_bucket": 5,
    "description": "Quarterly view",
    "notes": None,
    "deadline": datetime(2025, 10, 31, 1, 0, tzinfo=timezone.utc),
    "recurrence_interval": 0,
    "recurrence_date": None,
    "is_archived": False,
    "project_id": 1,
    "logged_time": 0,
}


def test_identical_values_produce_no_changes():
    updates = {"title": "Design budget dashboard", "status": "To Do", "priority_bucket": 5}

    assert diff_task(PREVIOUS, updates) == []
    assert render_update_message(diff_task(PREVIOUS, updates), "Test User", "x") is None


def test_untracked_keys_are_ignored():
    assert diff_task(PREVIOUS, {"creator_id": "someone", "updated_at": "now"}) == []


def test_changes_follow_supplied_order():
    updates = {"title": "New", "status": "In Progress", "priority_bucket": 9}

    changes = diff_task(PREVIOUS, updates)

    assert [c.field for c in changes] == ["title", "status", "priority_bucket"]


def test_enum_and_string_status_compare_equal():
    assert diff_task(PREVIOUS, {"status": TaskStatus.TO_DO}) == []


def test_equal_instants_in_different_zones_are_unchanged():
    same_instant = "2025-10-31T09:00:00+08:00"

    assert diff_task(PREVIOUS, {"deadline": same_instant}) == []


def test_priority_alias_reads_priority_bucket():
    changes = diff_task(PREVIOUS, {"priority": 7})

    assert changes == [FieldChange(field="priority", old=5, new=7)]


def test_clearing_description_is_a_change():
    changes = diff_task(PREVIOUS, {"description": None})

    assert changes == [FieldChange(field="description", old="Quarterly view", new=None)]


def test_status_change_sentence():
    message = render_update_message(
        diff_task(PREVIOUS, {"status": "In Progress"}), "Test User", "Design budget dashboard"
    )

    assert message == (
        'Test User changed the status of task "Design budget dashboard" '
        'from "To Do" to "In Progress"'
    )


def test_title_change_sentence_uses_old_and_new_titles():
    message = render_update_message(
        diff_task(PREVIOUS, {"title": "Budget dashboard v2"}), "Test User", "Design budget dashboard"
    )

    assert message == (
        'Test User updated the title of task "Design budget dashboard" to "Budget dashboard v2"'
    )


def test_priority_uses_display_name():
    message = render_update_message(
        diff_task(PREVIOUS, {"priority_bucket": 8}), "Test User", "Design budget dashboard"
    )

    assert message == (
        'Test User changed the priority of task "Design budget dashboard" from "5" to "8"'
    )


def test_notes_use_updated_verb_and_empty_placeholder():
    message = render_update_message(
        diff_task(PREVIOUS, {"notes": "Check with finance"}), "Test User", "Design budget dashboard"
    )

    assert message == (
        'Test User updated the notes of task "Design budget dashboard" '
        'from "(empty)" to "Check with finance"'
    )


def test_deadline_rendered_in_reference_timezone():
    message = render_update_message(
        diff_task(PREVIOUS, {"deadline": datetime(2025, 11, 3, 16, 30, tzinfo=timezone.utc)}),
        "Test User",
        "Design budget dashboard",
    )

    assert message == (
        'Test User changed the deadline of task "Design budget dashboard" '
        'from "Oct 31, 2025" to "Nov 4, 2025"'
    )


def test_archive_and_unarchive_sentences():
    archived = render_update_message(diff_task(PREVIOUS, {"is_archived": True}), "Test User", "Budget")
    unarchived = render_update_message(
        diff_task({**PREVIOUS, "is_archived": True}, {"is_archived": False}), "Test User", "Budget"
    )

    assert archived == 'Test User archived task "Budget"'
    assert unarchived == 'Test User unarchived task "Budget"'


def test_recurrence_date_set_changed_and_removed():
    set_msg = render_change(
        FieldChange("recurrence_date", None, date(2025, 11, 1)), "Test User", "Budget"
    )
    changed_msg = render_change(
        FieldChange("recurrence_date", date(2025, 11, 1), date(2025, 12, 1)), "Test User", "Budget"
    )
    removed_msg = render_change(
        FieldChange("recurrence_date", date(2025, 11, 1), None), "Test User", "Budget"
    )

    assert set_msg == 'Test User set the recurrence date of task "Budget" to "Nov 1, 2025"'
    assert changed_msg == (
        'Test User changed the recurrence date of task "Budget" from "Nov 1, 2025" to "Dec 1, 2025"'
    )
    assert removed_msg == 'Test User removed the recurrence date of task "Budget"'


def test_recurrence_interval_labels():
    message = render_change(FieldChange("recurrence_interval", 0, 7), "Test User", "Budget")

    assert message == (
        'Test User changed the recurrence interval of task "Budget" from "none" to "weekly"'
    )


def test_project_move_sentence():
    message = render_update_message(diff_task(PREVIOUS, {"project_id": 2}), "Test User", "Budget")

    assert message == 'Test User moved task "Budget" to a different project'


def test_multiple_changes_render_summary():
    changes = diff_task(PREVIOUS, {"title": "New", "status": "In Progress", "priority_bucket": 9})

    message = render_update_message(changes, "Test User", "Design budget dashboard")

    assert message == 'Test User updated task "Design budget dashboard": title, status, priority'


def test_format_deadline_handles_missing_and_naive_values():
    assert format_deadline(None) == "(none)"
    # Naive values are UTC; 16:30 UTC is already the next day in Singapore.
    assert format_deadline(datetime(2025, 10, 30, 16, 30)) == "Oct 31, 2025"


def test_diff_accepts_task_rows(make_user, make_task):
    task = make_task(make_user(), priority_bucket=3)

    changes = diff_task(task, {"priority_bucket": 4, "status": task.status})

    assert changes == [FieldChange(field="priority_bucket", old=3, new=4)]


def test_summary_omits_unchanged_field_in_same_update():
    updates = {
        "title": "New",
        "description": PREVIOUS["description"],
        "status": "In Progress",
        "priority_bucket": 9,
    }

    changes = diff_task(PREVIOUS, updates)
    message = render_update_message(changes, "Test User", "Design budget dashboard")

    assert [c.field for c in changes] == ["title", "status", "priority_bucket"]
    assert message == 'Test User updated task "Design budget dashboard": title, status, priority'
