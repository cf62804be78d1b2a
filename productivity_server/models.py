"""
Data models for the productivity store: tasks, notes, reminders and email drafts.

This module contains the dataclasses held by the state store. The store hands
out copies of these objects, so callers never mutate stored records directly.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
import typing as t


class ReminderStatus(str, Enum):
    """Lifecycle status of a reminder."""
    SCHEDULED = "scheduled"
    DUE = "due"


@dataclass
class Task:
    """A todo item with an optional due date (local midnight)."""
    id: str
    description: str
    created_at: datetime
    due_date: t.Optional[datetime] = None


@dataclass
class Note:
    """A free-form note."""
    id: str
    body: str
    created_at: datetime


@dataclass
class Reminder:
    """A message that becomes due at an absolute point in time."""
    id: str
    message: str
    due_time: datetime
    created_at: datetime
    status: ReminderStatus = ReminderStatus.SCHEDULED

    def copy(self) -> Reminder:
        return replace(self)


@dataclass
class EmailDraft:
    """An email composed from the user's instructions."""
    id: str
    instructions: str
    subject: str
    body: str
    created_at: datetime


@dataclass(frozen=True)
class StoreSnapshot:
    """Immutable view of the full store contents at one point in time."""
    tasks: tuple[Task, ...] = field(default_factory=tuple)
    notes: tuple[Note, ...] = field(default_factory=tuple)
    reminders: tuple[Reminder, ...] = field(default_factory=tuple)
    email_drafts: tuple[EmailDraft, ...] = field(default_factory=tuple)
