"""Tests for decoding raw interpreter output into typed actions."""
import pytest

from orchestrator.models import (
    AddNote,
    AddTask,
    CancelReminder,
    DraftEmail,
    ScheduleReminder,
    UpdateReminder,
    decode_action,
    raw_action_kind,
)
from productivity_server.errors import InvalidArgument, UnsupportedAction


@pytest.mark.parametrize(
    "raw, expected",
    [
        (
            {"kind": "add_task", "payload": {"description": " buy milk ", "dueDate": "tomorrow"}},
            AddTask(description="buy milk", due_date="tomorrow"),
        ),
        ({"action": "add_note", "payload": {"body": "hello"}}, AddNote(body="hello")),
        (
            {"action": "schedule_reminder", "payload": {"message": "stretch", "dueTime": "in 5 minutes"}},
            ScheduleReminder(message="stretch", due_time="in 5 minutes"),
        ),
        (
            {"action": "update_reminder", "payload": {"reminderId": "r1", "dueTime": "at 5pm"}},
            UpdateReminder(reminder_id="r1", due_time="at 5pm"),
        ),
        ({"action": "cancel_reminder", "payload": {"reminderId": "r1"}}, CancelReminder(reminder_id="r1")),
        ({"action": "draft_email", "payload": {"instructions": "say hi"}}, DraftEmail(instructions="say hi")),
    ],
)
def test_decode_each_kind(raw, expected) -> None:
    assert decode_action(raw) == expected


def test_blank_fields_become_none() -> None:
    action = decode_action({"action": "schedule_reminder", "payload": {"message": "  ", "dueTime": ""}})

    assert action == ScheduleReminder(message=None, due_time=None)


def test_free_text_fields_fall_back_to_command_text() -> None:
    assert decode_action({"action": "add_task", "payload": {}}, "  water plants ") == AddTask(
        description="water plants"
    )
    assert decode_action({"action": "draft_email"}, "email Bob") == DraftEmail(instructions="email Bob")


def test_typed_actions_pass_through() -> None:
    action = AddNote(body="x")
    assert decode_action(action) is action


@pytest.mark.parametrize(
    "raw",
    [
        "add_task",
        {"payload": {"description": "no kind"}},
        {"action": "add_task", "payload": ["not", "a", "mapping"]},
    ],
)
def test_malformed_entries(raw) -> None:
    with pytest.raises(InvalidArgument, match="missing action or payload"):
        decode_action(raw)


def test_unknown_kind() -> None:
    with pytest.raises(UnsupportedAction, match="launch_rocket"):
        decode_action({"action": "launch_rocket", "payload": {}})


def test_raw_action_kind() -> None:
    assert raw_action_kind({"action": "add_note"}) == "add_note"
    assert raw_action_kind({"kind": "add_task", "action": "ignored"}) == "add_task"
    assert raw_action_kind(AddNote(body="x")) == "add_note"
    assert raw_action_kind(42) == "unknown"
