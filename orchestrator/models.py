"""
Data models for the actions produced by the command interpreter.

Each action kind is its own dataclass; ``Action`` is the union of all of them.
Raw ``{"kind": ..., "payload": {...}}`` mappings (the interpreter also emits
``"action"`` instead of ``"kind"``) are turned into actions by
:func:`decode_action`.
"""
from __future__ import annotations

from dataclasses import dataclass
import typing as t

from productivity_server.errors import InvalidArgument, UnsupportedAction


def _text(payload: t.Mapping[str, t.Any], key: str) -> t.Optional[str]:
    value = payload.get(key)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class AddTask:
    """Create a task; ``due_date`` is an unresolved time expression."""
    kind: t.ClassVar[str] = "add_task"
    description: str
    due_date: t.Optional[str] = None


@dataclass(frozen=True)
class AddNote:
    """Create a note."""
    kind: t.ClassVar[str] = "add_note"
    body: str


@dataclass(frozen=True)
class ScheduleReminder:
    """Create a reminder and arm its timer."""
    kind: t.ClassVar[str] = "schedule_reminder"
    message: t.Optional[str]
    due_time: t.Optional[str]


@dataclass(frozen=True)
class UpdateReminder:
    """Change a reminder's message and/or due time."""
    kind: t.ClassVar[str] = "update_reminder"
    reminder_id: t.Optional[str]
    message: t.Optional[str] = None
    due_time: t.Optional[str] = None


@dataclass(frozen=True)
class CancelReminder:
    """Delete a reminder and its timer."""
    kind: t.ClassVar[str] = "cancel_reminder"
    reminder_id: t.Optional[str]


@dataclass(frozen=True)
class DraftEmail:
    """Compose an email from instructions and keep the draft."""
    kind: t.ClassVar[str] = "draft_email"
    instructions: str


Action = t.Union[AddTask, AddNote, ScheduleReminder, UpdateReminder, CancelReminder, DraftEmail]

ACTION_TYPES: dict[str, type] = {
    cls.kind: cls
    for cls in (AddTask, AddNote, ScheduleReminder, UpdateReminder, CancelReminder, DraftEmail)
}


@dataclass(frozen=True)
class ActionResult:
    """The entity an action created, changed or removed."""
    kind: str
    item: t.Any


def raw_action_kind(raw: t.Any) -> str:
    """Best-effort kind of a raw action, for error reporting."""
    if isinstance(raw, t.Mapping):
        return str(raw.get("kind") or raw.get("action") or "unknown")
    return str(getattr(raw, "kind", "unknown"))


def decode_action(raw: t.Union[Action, t.Mapping[str, t.Any]], command_text: str = "") -> Action:
    """Convert a raw ``{kind, payload}`` mapping into a typed action.

    Free-text fields fall back to the original command text when absent, the
    same way the interpreter is told to use it.

    Args:
        raw: A mapping from the interpreter, or an already decoded action.
        command_text: The user's original command.

    Returns:
        The typed action.

    Raises:
        UnsupportedAction: If the kind is not one of the known action kinds.
        InvalidArgument: If the entry has no kind or its payload is not an object.
    """
    if isinstance(raw, tuple(ACTION_TYPES.values())):
        return t.cast(Action, raw)

    if not isinstance(raw, t.Mapping):
        raise InvalidArgument("Agent response missing action or payload.")

    kind = raw.get("kind") or raw.get("action")
    payload = raw.get("payload", {})
    if not kind or not isinstance(payload, t.Mapping):
        raise InvalidArgument("Agent response missing action or payload.")

    fallback = command_text.strip()

    if kind == AddTask.kind:
        return AddTask(
            description=_text(payload, "description") or fallback,
            due_date=_text(payload, "dueDate"),
        )
    if kind == AddNote.kind:
        return AddNote(body=_text(payload, "body") or fallback)
    if kind == ScheduleReminder.kind:
        return ScheduleReminder(message=_text(payload, "message"), due_time=_text(payload, "dueTime"))
    if kind == UpdateReminder.kind:
        return UpdateReminder(
            reminder_id=_text(payload, "reminderId"),
            message=_text(payload, "message"),
            due_time=_text(payload, "dueTime"),
        )
    if kind == CancelReminder.kind:
        return CancelReminder(reminder_id=_text(payload, "reminderId"))
    if kind == DraftEmail.kind:
        return DraftEmail(instructions=_text(payload, "instructions") or fallback)

    raise UnsupportedAction(str(kind))
