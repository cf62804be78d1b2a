# -*- coding: utf-8 -*-
"""
In-memory state store for tasks, notes, reminders and email drafts.

The store is the single owner of every record: it generates ids, stamps
``created_at`` and performs all mutations. Reads return copies, so nothing
outside the store can change a stored record behind its back.
"""
from __future__ import annotations

import typing as t
import uuid
from collections import deque
from dataclasses import replace
from datetime import datetime

from .errors import InvalidArgument, NotFound
from .models import EmailDraft, Note, Reminder, ReminderStatus, StoreSnapshot, Task
from .time_resolver import Clock, now_local


def _new_id() -> str:
    return str(uuid.uuid4())


def _require_text(value: t.Optional[str], field_name: str) -> str:
    text = (value or "").strip()
    if not text:
        raise InvalidArgument(f"{field_name} is required.")
    return text


class StateStore:
    """The authoritative in-memory collection of productivity records."""

    def __init__(
            self,
            *,
            clock: Clock = now_local,
            id_factory: t.Callable[[], str] = _new_id,
            email_draft_limit: int = 10,
    ) -> None:
        self._clock = clock
        self._new_id = id_factory
        self._tasks: list[Task] = []
        self._notes: list[Note] = []
        # Insertion-ordered; keyed by id for O(1) lookup
        self._reminders: dict[str, Reminder] = {}
        # Newest first; the deque drops the oldest draft once the limit is hit
        self._email_drafts: deque[EmailDraft] = deque(maxlen=max(1, email_draft_limit))

    # -----------------------------
    # Tasks and notes
    # -----------------------------

    def add_task(self, description: str, due_date: t.Optional[datetime] = None) -> Task:
        """Adds a task.

        :param description: What needs doing.
        :param due_date: Optional due date (already normalised to local midnight).
        :return: A copy of the stored Task.
        """
        task = Task(
            id=self._new_id(),
            description=_require_text(description, "Task description"),
            created_at=self._clock(),
            due_date=due_date,
        )
        self._tasks.append(task)
        return replace(task)

    def add_note(self, body: str) -> Note:
        """Adds a note.

        :param body: The note text.
        :return: A copy of the stored Note.
        """
        note = Note(id=self._new_id(), body=_require_text(body, "Note body"), created_at=self._clock())
        self._notes.append(note)
        return replace(note)

    # -----------------------------
    # Reminders
    # -----------------------------

    def add_reminder(self, message: str, due_time: datetime) -> Reminder:
        """Adds a reminder in the ``scheduled`` state.

        :param message: What to be reminded of.
        :param due_time: Absolute time at which the reminder becomes due.
        :return: A copy of the stored Reminder.
        """
        reminder = Reminder(
            id=self._new_id(),
            message=_require_text(message, "Reminder message"),
            due_time=due_time,
            created_at=self._clock(),
        )
        self._reminders[reminder.id] = reminder
        return reminder.copy()

    def get_reminder(self, reminder_id: str) -> Reminder:
        return self._lookup_reminder(reminder_id).copy()

    def has_reminder(self, reminder_id: str) -> bool:
        return reminder_id in self._reminders

    def list_reminders(self, status: t.Optional[ReminderStatus] = None) -> list[Reminder]:
        return [
            reminder.copy()
            for reminder in self._reminders.values()
            if status is None or reminder.status == status
        ]

    def reminder_context(self) -> list[dict[str, str]]:
        """Summaries of the stored reminders, for resolving references by id."""
        return [
            {
                "id": reminder.id,
                "message": reminder.message,
                "dueTime": reminder.due_time.isoformat(),
                "status": reminder.status.value,
            }
            for reminder in self._reminders.values()
        ]

    def update_reminder(
            self,
            reminder_id: str,
            *,
            message: t.Optional[str] = None,
            due_time: t.Optional[datetime] = None,
    ) -> Reminder:
        """Updates a reminder in place.

        A new due time puts the reminder back into the ``scheduled`` state.

        :param reminder_id: Id of the reminder to update.
        :param message: New message (optional).
        :param due_time: New due time (optional).
        :return: A copy of the updated Reminder.
        """
        reminder = self._lookup_reminder(reminder_id)
        if message is not None and message.strip():
            reminder.message = message.strip()
        if due_time is not None:
            reminder.due_time = due_time
            reminder.status = ReminderStatus.SCHEDULED
        return reminder.copy()

    def mark_reminder_due(self, reminder_id: str) -> t.Optional[Reminder]:
        """Moves a reminder to ``due``; returns None if it no longer exists."""
        reminder = self._reminders.get(reminder_id)
        if reminder is None:
            return None
        reminder.status = ReminderStatus.DUE
        return reminder.copy()

    def remove_reminder(self, reminder_id: str) -> Reminder:
        """Removes a reminder and returns it as it was before removal."""
        self._lookup_reminder(reminder_id)
        return self._reminders.pop(reminder_id)

    def _lookup_reminder(self, reminder_id: str) -> Reminder:
        reminder = self._reminders.get(reminder_id)
        if reminder is None:
            raise NotFound("Reminder", reminder_id)
        return reminder

    # -----------------------------
    # Email drafts
    # -----------------------------

    def record_email_draft(
            self,
            instructions: str,
            subject: str,
            body: str,
            *,
            persist: bool = True,
    ) -> EmailDraft:
        """Creates an email draft, keeping only the most recent ones.

        :param instructions: The user's drafting instructions.
        :param subject: Composed subject line.
        :param body: Composed body text.
        :param persist: When False the draft gets an id but is not stored.
        :return: A copy of the EmailDraft.
        """
        draft = EmailDraft(
            id=self._new_id(),
            instructions=_require_text(instructions, "Email drafting instructions"),
            subject=subject.strip(),
            body=body.strip(),
            created_at=self._clock(),
        )
        if persist:
            self._email_drafts.appendleft(draft)
        return replace(draft)

    # -----------------------------
    # Snapshot
    # -----------------------------

    def snapshot(self) -> StoreSnapshot:
        """Return an immutable copy of the full store contents."""
        return StoreSnapshot(
            tasks=tuple(replace(task) for task in self._tasks),
            notes=tuple(replace(note) for note in self._notes),
            reminders=tuple(reminder.copy() for reminder in self._reminders.values()),
            email_drafts=tuple(replace(draft) for draft in self._email_drafts),
        )
