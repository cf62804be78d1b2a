"""Tests for the terminal client."""
import httpx
import pytest
from click.testing import CliRunner

from orchestrator import run
from orchestrator.run import create_state_tables, format_datetime_human, iter_sse_events, truncate

REMINDER = {
    "id": "r1",
    "message": "stretch",
    "dueTime": "2025-03-10T14:30:00+00:00",
    "status": "scheduled",
    "createdAt": "2025-03-10T14:25:00+00:00",
}


def fake_request(status_code: int, body: dict, calls: list):
    def _request(method, path, *, timeout, **kwargs):
        calls.append((method, path, kwargs))
        return httpx.Response(status_code, json=body, request=httpx.Request(method, f"http://test{path}"))

    return _request


def test_format_datetime_human() -> None:
    assert format_datetime_human("2025-03-10T14:30:00Z") == "Mon 3/10 2:30 PM"
    assert format_datetime_human(None) == "-"
    assert format_datetime_human("garbage") == "garbage"


def test_truncate() -> None:
    assert truncate("short") == "short"
    assert truncate("x" * 50, 10) == "xxxxxxx..."


def test_iter_sse_events_groups_frames() -> None:
    lines = [
        "retry: 5000",
        "",
        ": keep-alive",
        "",
        "event: reminder_due",
        'data: {"id": "r1"}',
        "",
        "data: plain",
    ]

    assert list(iter_sse_events(lines)) == [("reminder_due", '{"id": "r1"}'), ("message", "plain")]


def test_state_tables_skip_empty_collections() -> None:
    tables = create_state_tables({"tasks": [], "notes": [], "reminders": [REMINDER], "emailDrafts": []})

    assert len(tables) == 1
    assert tables[0].row_count == 1
    assert create_state_tables({}) == []


def test_send_prints_each_result(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list = []
    body = {"actions": [{"kind": "schedule_reminder", "item": REMINDER}], "state": {}}
    monkeypatch.setattr(run, "_request", fake_request(200, body, calls))

    result = CliRunner().invoke(run.main, ["send", "remind", "me", "to", "stretch"])

    assert result.exit_code == 0, result.output
    assert calls == [("POST", "/agent", {"json": {"text": "remind me to stretch"}})]
    assert "schedule_reminder" in result.output
    assert "stretch" in result.output


def test_send_reports_the_failing_action(monkeypatch: pytest.MonkeyPatch) -> None:
    body = {
        "error": "Could not understand time: blue elephant",
        "errorKind": "InvalidTimeExpression",
        "failedAction": {"index": 1, "kind": "schedule_reminder"},
    }
    monkeypatch.setattr(run, "_request", fake_request(400, body, []))

    result = CliRunner().invoke(run.main, ["send", "anything"])

    assert result.exit_code == 1
    assert "InvalidTimeExpression" in result.output
    assert "action #2" in result.output


def test_state_with_nothing_stored(monkeypatch: pytest.MonkeyPatch) -> None:
    body = {"tasks": [], "notes": [], "reminders": [], "emailDrafts": []}
    monkeypatch.setattr(run, "_request", fake_request(200, body, []))

    result = CliRunner().invoke(run.main, ["state"])

    assert result.exit_code == 0
    assert "Nothing here yet" in result.output


def test_unreachable_service_exits_non_zero(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(run, "_request", lambda *args, **kwargs: None)

    result = CliRunner().invoke(run.main, ["draft", "say", "hi"])

    assert result.exit_code == 1
