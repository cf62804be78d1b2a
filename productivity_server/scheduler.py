"""
Reminder scheduler.

Owns one asyncio timer per scheduled reminder and drives the reminder state
machine:

- ``scheduled -> due`` when the timer fires,
- ``scheduled -> scheduled`` when the due time changes (cancel, then re-arm),
- deletion from either state cancels any outstanding timer.

Timers are ``loop.call_later`` handles, so every fire runs on the event loop
like any other piece of dispatch code and never interleaves with a store
mutation.
"""
from __future__ import annotations

import asyncio
import logging
import typing as t
from datetime import timezone

from .broadcaster import REMINDER_DUE, EventBroadcaster
from .models import Reminder
from .store import StateStore
from .time_resolver import Clock, now_local

logger = logging.getLogger(__name__)


class ReminderScheduler:
    """Arms, cancels and fires reminder timers."""

    def __init__(
            self,
            store: StateStore,
            broadcaster: EventBroadcaster,
            *,
            clock: Clock = now_local,
            loop: t.Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        self._store = store
        self._broadcaster = broadcaster
        self._clock = clock
        self._loop = loop
        self._timers: dict[str, asyncio.TimerHandle] = {}

    @property
    def timer_count(self) -> int:
        return len(self._timers)

    def has_timer(self, reminder_id: str) -> bool:
        return reminder_id in self._timers

    def arm(self, reminder: Reminder) -> None:
        """(Re)arm the timer for a reminder.

        Any existing timer for the same id is cancelled first. A reminder whose
        due time has already passed becomes due immediately.

        :param reminder: The reminder to arm (only ``id`` and ``due_time`` are used).
        """
        self.cancel(reminder.id)

        # Subtract as UTC instants: same-zone subtraction ignores DST offsets
        delay = (reminder.due_time.astimezone(timezone.utc) - self._clock().astimezone(timezone.utc)).total_seconds()
        if delay <= 0:
            logger.info("Reminder %s is already past due", reminder.id)
            self._mark_due(reminder.id)
            return

        loop = self._loop or asyncio.get_running_loop()
        self._timers[reminder.id] = loop.call_later(delay, self._fire, reminder.id)
        logger.debug("Armed reminder %s to fire in %.3fs", reminder.id, delay)

    def cancel(self, reminder_id: str) -> bool:
        """Stop the timer for a reminder, if any.

        :param reminder_id: Id of the reminder.
        :return: True if a live timer was cancelled, False if there was none.
        """
        handle = self._timers.pop(reminder_id, None)
        if handle is None:
            return False
        handle.cancel()
        logger.debug("Cancelled timer for reminder %s", reminder_id)
        return True

    def shutdown(self) -> None:
        """Cancel every outstanding timer."""
        for reminder_id in list(self._timers):
            self.cancel(reminder_id)

    def _fire(self, reminder_id: str) -> None:
        # The timer entry goes before the status changes, so a concurrent
        # re-arm never sees a stale handle for this id.
        self._timers.pop(reminder_id, None)
        try:
            self._mark_due(reminder_id)
        except Exception:
            logger.exception("Reminder %s failed while firing", reminder_id)

    def _mark_due(self, reminder_id: str) -> None:
        reminder = self._store.mark_reminder_due(reminder_id)
        if reminder is None:
            logger.debug("Reminder %s vanished before it became due", reminder_id)
            return

        logger.info("Reminder %s is due: %s", reminder.id, reminder.message)
        try:
            self._broadcaster.publish(REMINDER_DUE, reminder)
        except Exception:
            # The reminder is due whether or not anyone heard about it
            logger.exception("Failed to publish %s for reminder %s", REMINDER_DUE, reminder_id)
