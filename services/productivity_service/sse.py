"""Server-sent events framing for the broadcaster's subscription queues."""
from __future__ import annotations

import json
import typing as t

from productivity_server.broadcaster import (
    BroadcastEvent,
    EndOfStream,
    EventBroadcaster,
    RetryHint,
    StreamItem,
)
from services.shared.models import entity_model

KEEPALIVE_FRAME = ": keep-alive\n\n"


def _payload_json(payload: t.Any) -> str:
    try:
        return entity_model(payload).model_dump_json(by_alias=True)
    except TypeError:
        return json.dumps(payload, default=str)


def format_sse(item: StreamItem) -> str:
    """Render one queued item as an SSE frame."""
    if isinstance(item, RetryHint):
        return f"retry: {item.delay_ms}\n\n"
    if isinstance(item, BroadcastEvent):
        return f"event: {item.name}\ndata: {_payload_json(item.payload)}\n\n"
    raise TypeError(f"Cannot frame {type(item).__name__} as an event")


async def event_stream(
        broadcaster: EventBroadcaster,
        keepalive_seconds: t.Optional[float] = 15.0,
) -> t.AsyncIterator[str]:
    """Subscribe to the broadcaster and yield SSE frames until the stream ends.

    The subscription is only taken once iteration starts, so a response that
    is never streamed never registers a subscriber.

    A keep-alive comment goes out whenever nothing was published for
    ``keepalive_seconds``, so dead connections surface as write errors. The
    subscription is always deregistered when the generator finishes, including
    when the client disconnects and the response task is cancelled.
    """
    subscription = broadcaster.subscribe()
    try:
        while True:
            item = await subscription.next_item(timeout=keepalive_seconds)
            if item is None:
                yield KEEPALIVE_FRAME
                continue
            if isinstance(item, EndOfStream):
                break
            yield format_sse(item)
    finally:
        broadcaster.unsubscribe(subscription)
