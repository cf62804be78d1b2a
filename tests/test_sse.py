"""Tests for server-sent event framing."""
import json
from datetime import datetime, timezone

import pytest

from productivity_server.broadcaster import REMINDER_DUE, BroadcastEvent, EventBroadcaster, RetryHint
from productivity_server.models import Reminder, ReminderStatus
from services.productivity_service.sse import KEEPALIVE_FRAME, event_stream, format_sse

WHEN = datetime(2025, 3, 10, 10, 0, tzinfo=timezone.utc)


def test_retry_hint_frame() -> None:
    assert format_sse(RetryHint(5000)) == "retry: 5000\n\n"


def test_event_frame_uses_wire_field_names() -> None:
    reminder = Reminder(id="r1", message="stretch", due_time=WHEN, created_at=WHEN, status=ReminderStatus.DUE)

    frame = format_sse(BroadcastEvent(REMINDER_DUE, reminder))

    header, data_line, blank, end = frame.split("\n")
    assert header == "event: reminder_due"
    assert (blank, end) == ("", "")
    data = json.loads(data_line.removeprefix("data: "))
    assert data["id"] == "r1"
    assert data["status"] == "due"
    assert data["dueTime"].startswith("2025-03-10T10:00:00")
    assert "createdAt" in data


@pytest.mark.asyncio
async def test_stream_ends_and_unsubscribes_on_close() -> None:
    broadcaster = EventBroadcaster(retry_ms=100)
    stream = event_stream(broadcaster, keepalive_seconds=1)

    assert await stream.__anext__() == "retry: 100\n\n"
    broadcaster.publish(REMINDER_DUE, {"id": "r1"})
    broadcaster.close()
    rest = [frame async for frame in stream]

    assert len(rest) == 1
    assert rest[0].startswith("event: reminder_due\n")
    assert broadcaster.subscriber_count == 0


@pytest.mark.asyncio
async def test_idle_stream_sends_keepalive() -> None:
    broadcaster = EventBroadcaster()
    stream = event_stream(broadcaster, keepalive_seconds=0.01)

    assert await stream.__anext__() == "retry: 5000\n\n"
    assert await stream.__anext__() == KEEPALIVE_FRAME

    await stream.aclose()
    assert broadcaster.subscriber_count == 0


def test_unstarted_stream_does_not_subscribe() -> None:
    broadcaster = EventBroadcaster()

    stream = event_stream(broadcaster)

    assert broadcaster.subscriber_count == 0
    # Never iterated, e.g. the response was dropped before streaming began
    del stream
    assert broadcaster.subscriber_count == 0
    assert broadcaster.publish(REMINDER_DUE, {"id": "r1"}) == 0
