"""Tests for the HTTP routes of the productivity service."""
import pytest
from fastapi.testclient import TestClient

from productivity_server.errors import CollaboratorFailure
from services.productivity_service.app import create_app, events
from orchestrator.state import create_agent_state


@pytest.fixture()
def client(settings, interpreter, composer):
    app = create_app(lambda: create_agent_state(settings, interpreter=interpreter, composer=composer), settings)
    with TestClient(app) as test_client:
        yield test_client


def test_health(client) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "service": "productivity-agent"}


def test_state_starts_empty(client) -> None:
    assert client.get("/state").json() == {"tasks": [], "notes": [], "reminders": [], "emailDrafts": []}


def test_command_returns_results_and_state(client, interpreter) -> None:
    interpreter.actions = [
        {"action": "add_task", "payload": {"description": "buy milk"}},
        {"action": "schedule_reminder", "payload": {"message": "stretch", "dueTime": "in 5 minutes"}},
    ]

    response = client.post("/agent", json={"text": "buy milk and remind me to stretch in 5 minutes"})

    assert response.status_code == 200
    body = response.json()
    assert [result["kind"] for result in body["actions"]] == ["add_task", "schedule_reminder"]
    reminder = body["actions"][1]["item"]
    assert reminder["message"] == "stretch"
    assert reminder["status"] == "scheduled"
    assert "dueTime" in reminder and "createdAt" in reminder
    assert [task["description"] for task in body["state"]["tasks"]] == ["buy milk"]
    assert body["state"]["reminders"] == [reminder]


def test_interpreter_sees_existing_reminders(client, interpreter) -> None:
    interpreter.actions = [{"action": "schedule_reminder", "payload": {"message": "stretch", "dueTime": "in 1 hour"}}]
    client.post("/agent", json={"text": "remind me to stretch in an hour"})

    interpreter.actions = [{"action": "add_note", "payload": {"body": "x"}}]
    client.post("/agent", json={"text": "note x"})

    _, context = interpreter.calls[-1]
    assert [entry["message"] for entry in context] == ["stretch"]
    assert set(context[0]) == {"id", "message", "dueTime", "status"}


def test_blank_text_is_rejected(client, interpreter) -> None:
    response = client.post("/agent", json={"text": "   "})

    assert response.status_code == 400
    assert response.json() == {"error": "Text is required", "errorKind": "InvalidArgument"}
    assert interpreter.calls == []


def test_missing_text_field_is_rejected(client) -> None:
    response = client.post("/agent", json={})

    assert response.status_code == 400
    assert response.json()["errorKind"] == "InvalidArgument"


def test_partial_failure_reports_the_failing_action(client, interpreter) -> None:
    interpreter.actions = [
        {"action": "add_task", "payload": {"description": "a"}},
        {"action": "schedule_reminder", "payload": {"message": "b", "dueTime": "blue elephant"}},
    ]

    response = client.post("/agent", json={"text": "a, then b at blue elephant"})

    assert response.status_code == 400
    body = response.json()
    assert body["errorKind"] == "InvalidTimeExpression"
    assert body["failedAction"] == {"index": 1, "kind": "schedule_reminder"}
    # The first action stays applied
    assert [task["description"] for task in client.get("/state").json()["tasks"]] == ["a"]


def test_interpreter_failure_changes_nothing(client, interpreter) -> None:
    interpreter.error = CollaboratorFailure("Error calling OpenAI: timeout")

    response = client.post("/agent", json={"text": "anything"})

    assert response.status_code == 400
    assert response.json()["errorKind"] == "CollaboratorFailure"
    assert client.get("/state").json()["tasks"] == []


def test_draft_email_preview_is_not_stored(client, composer) -> None:
    response = client.post("/draft-email", json={"instructions": "thank Sam for lunch"})

    assert response.status_code == 200
    draft = response.json()["draft"]
    assert draft["subject"] == "Hello"
    assert draft["body"] == "Draft for: thank Sam for lunch"
    assert draft["instructions"] == "thank Sam for lunch"
    assert client.get("/state").json()["emailDrafts"] == []


def test_draft_email_requires_instructions(client, composer) -> None:
    response = client.post("/draft-email", json={"instructions": ""})

    assert response.status_code == 400
    assert response.json() == {"error": "Instructions are required", "errorKind": "InvalidArgument"}
    assert composer.calls == []


def test_draft_email_collaborator_failure(client, composer) -> None:
    composer.error = CollaboratorFailure("Email draft is missing subject or body.")

    response = client.post("/draft-email", json={"instructions": "hi"})

    assert response.status_code == 400
    assert response.json()["errorKind"] == "CollaboratorFailure"


@pytest.mark.asyncio
async def test_event_stream_response(agent) -> None:
    response = await events(agent)

    assert response.media_type == "text/event-stream"
    assert response.headers["cache-control"] == "no-cache"
    # Nothing is registered until the body starts streaming
    assert agent.broadcaster.subscriber_count == 0

    first = await response.body_iterator.__anext__()
    assert first == f"retry: {agent.settings.sse_retry_ms}\n\n"
    assert agent.broadcaster.subscriber_count == 1
    await response.body_iterator.aclose()
    assert agent.broadcaster.subscriber_count == 0


def test_out_of_range_offset_is_a_client_error(client, interpreter) -> None:
    interpreter.actions = [{"action": "schedule_reminder", "payload": {"message": "x", "dueTime": "in 99999999 days"}}]

    response = client.post("/agent", json={"text": "remind me in 99999999 days"})

    assert response.status_code == 400
    assert response.json()["errorKind"] == "InvalidTimeExpression"
