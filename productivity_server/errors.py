"""
Error kinds raised by the productivity store, scheduler and action dispatcher.

Every error carries a stable ``kind`` string so the HTTP layer can report it
without inspecting the class hierarchy.
"""
from __future__ import annotations

import typing as t


class AgentError(Exception):
    """Base class for every error surfaced to the command endpoint."""
    kind: t.ClassVar[str] = "AgentError"


class InvalidArgument(AgentError, ValueError):
    """A required field is missing or blank."""
    kind = "InvalidArgument"


class MissingField(InvalidArgument):
    """An action payload lacks a required field."""
    kind = "MissingField"

    def __init__(self, action: str, *fields: str) -> None:
        self.action = action
        self.fields = fields
        super().__init__(f"{action} requires {' and '.join(fields)}.")


class NotFound(AgentError, LookupError):
    """An id does not reference an entity in the store."""
    kind = "NotFound"

    def __init__(self, entity: str, entity_id: str) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found.")


class InvalidTimeExpression(AgentError, ValueError):
    kind = "InvalidTimeExpression"


class PastTimeRejected(AgentError, ValueError):
    kind = "PastTimeRejected"


class UnsupportedAction(AgentError, ValueError):
    kind = "UnsupportedAction"

    def __init__(self, action: str) -> None:
        self.action = action
        super().__init__(f"Unsupported action: {action}")


class EmptyActionList(AgentError, ValueError):
    kind = "EmptyActionList"


class CollaboratorFailure(AgentError, RuntimeError):
    """The language model call failed or returned unusable output."""
    kind = "CollaboratorFailure"


class ActionFailed(AgentError):
    """
    One action of a dispatched list failed.

    Actions before ``index`` remain committed; actions after it were not run.
    """
    kind = "ActionFailed"

    def __init__(self, index: int, action: str, cause: AgentError) -> None:
        self.index = index
        self.action = action
        self.cause = cause
        super().__init__(str(cause))

    @property
    def cause_kind(self) -> str:
        return self.cause.kind
