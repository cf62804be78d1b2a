"""
In-process event fan-out to live subscribers.

Each subscriber owns a bounded asyncio queue, which gives per-subscriber FIFO
delivery. Publishing never awaits: a subscriber that cannot keep up is dropped
instead of slowing down everyone else.
"""
from __future__ import annotations

import asyncio
import logging
import typing as t
import uuid
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

REMINDER_CREATED = "reminder_created"
REMINDER_UPDATED = "reminder_updated"
REMINDER_DELETED = "reminder_deleted"
REMINDER_DUE = "reminder_due"


@dataclass(frozen=True)
class BroadcastEvent:
    """A named event with its payload (a copy of the affected entity)."""
    name: str
    payload: t.Any


@dataclass(frozen=True)
class RetryHint:
    """Tells a client how long to wait before reconnecting."""
    delay_ms: int


@dataclass(frozen=True)
class EndOfStream:
    """Sent to every subscriber when the broadcaster shuts down."""


StreamItem = t.Union[BroadcastEvent, RetryHint, EndOfStream]


@dataclass(eq=False)
class Subscription:
    """Handle held by a connection for as long as it is subscribed."""
    queue: asyncio.Queue[StreamItem]
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    async def next_item(self, timeout: t.Optional[float] = None) -> t.Optional[StreamItem]:
        """Wait for the next queued item; None when ``timeout`` expires first."""
        if timeout is None:
            return await self.queue.get()
        try:
            return await asyncio.wait_for(self.queue.get(), timeout)
        except asyncio.TimeoutError:
            return None


class EventBroadcaster:
    """Registry of live subscribers with best-effort publish."""

    def __init__(self, *, retry_ms: int = 5000, max_pending: int = 100) -> None:
        self._retry_ms = retry_ms
        self._max_pending = max_pending
        self._subscribers: dict[str, Subscription] = {}

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> Subscription:
        """Register a new subscriber; its first item is the reconnect hint."""
        # One extra slot so the retry hint never counts against the pending-event limit
        subscription = Subscription(queue=asyncio.Queue(maxsize=self._max_pending + 1))
        subscription.queue.put_nowait(RetryHint(self._retry_ms))
        self._subscribers[subscription.id] = subscription
        logger.info("Subscriber %s connected (%d live)", subscription.id, len(self._subscribers))
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        """Deregister a subscriber. Unknown or already removed handles are ignored."""
        if self._subscribers.pop(subscription.id, None) is not None:
            logger.info("Subscriber %s disconnected (%d live)", subscription.id, len(self._subscribers))

    def publish(self, name: str, payload: t.Any) -> int:
        """Fan an event out to every registered subscriber.

        Args:
            name: Event name, e.g. ``reminder_due``.
            payload: Event payload; should be a copy the publisher no longer mutates.

        Returns:
            Number of subscribers the event was queued for.
        """
        event = BroadcastEvent(name=name, payload=payload)
        delivered = 0
        for subscription in list(self._subscribers.values()):
            try:
                subscription.queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.warning("Subscriber %s is not keeping up; dropping it", subscription.id)
                self.unsubscribe(subscription)
            except Exception:
                logger.exception("Failed to queue %s for subscriber %s", name, subscription.id)
                self.unsubscribe(subscription)
            else:
                delivered += 1
        logger.debug("Published %s to %d subscriber(s)", name, delivered)
        return delivered

    def close(self) -> None:
        """Wake every subscriber with an end-of-stream marker and clear the registry."""
        for subscription in list(self._subscribers.values()):
            try:
                subscription.queue.put_nowait(EndOfStream())
            except asyncio.QueueFull:
                # Make room: a closing stream does not need its backlog
                while not subscription.queue.empty():
                    subscription.queue.get_nowait()
                subscription.queue.put_nowait(EndOfStream())
        self._subscribers.clear()
