"""
Shared Pydantic models for REST API serialization.

This module contains Pydantic equivalents of the dataclass models held by the
state store, so every route and event frame serialises entities the same way:
camelCase field names and ISO-8601 timestamps.
"""
from __future__ import annotations

from datetime import datetime
import typing as t

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from productivity_server.models import EmailDraft, Note, Reminder, ReminderStatus, StoreSnapshot, Task


class WireModel(BaseModel):
    """Base for every model that goes over the wire."""
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)


# Entity Models
class TaskModel(WireModel):
    """A todo item."""
    id: str
    description: str
    created_at: datetime
    due_date: t.Optional[datetime] = None


class NoteModel(WireModel):
    """A free-form note."""
    id: str
    body: str
    created_at: datetime


class ReminderModel(WireModel):
    """A reminder and its scheduling status."""
    id: str
    message: str
    due_time: datetime
    status: ReminderStatus
    created_at: datetime


class EmailDraftModel(WireModel):
    """A composed email draft."""
    id: str
    instructions: str
    subject: str
    body: str
    created_at: datetime


EntityModel = t.Union[TaskModel, NoteModel, ReminderModel, EmailDraftModel]

_ENTITY_MODELS: dict[type, type[WireModel]] = {
    Task: TaskModel,
    Note: NoteModel,
    Reminder: ReminderModel,
    EmailDraft: EmailDraftModel,
}


class StateSnapshotModel(WireModel):
    """Full contents of the state store."""
    tasks: list[TaskModel] = Field(default_factory=list)
    notes: list[NoteModel] = Field(default_factory=list)
    reminders: list[ReminderModel] = Field(default_factory=list)
    email_drafts: list[EmailDraftModel] = Field(default_factory=list)


class ActionResultModel(WireModel):
    """The entity one executed action produced."""
    kind: str
    item: EntityModel


# Request/Response Models for API endpoints
class CommandRequest(WireModel):
    """Request model for running a free-text command."""
    text: str = ""


class CommandResponse(WireModel):
    """Response model for a successfully dispatched command."""
    actions: list[ActionResultModel]
    state: StateSnapshotModel


class DraftEmailRequest(WireModel):
    """Request model for drafting an email without storing it."""
    instructions: str = ""


class DraftEmailResponse(WireModel):
    """Response model for a standalone email draft."""
    draft: EmailDraftModel


class FailedAction(WireModel):
    """Position and kind of the action that aborted a command."""
    index: int
    kind: str


class ErrorResponse(WireModel):
    """Error body returned for every failed request."""
    error: str
    error_kind: str
    failed_action: t.Optional[FailedAction] = None


def entity_model(entity: t.Any) -> EntityModel:
    """Convert a store dataclass into its wire model."""
    model = _ENTITY_MODELS.get(type(entity))
    if model is None:
        raise TypeError(f"No wire model for {type(entity).__name__}")
    return t.cast(EntityModel, model.model_validate(entity))


def snapshot_model(snapshot: StoreSnapshot) -> StateSnapshotModel:
    return StateSnapshotModel.model_validate(snapshot)


def action_result_model(kind: str, item: t.Any) -> ActionResultModel:
    return ActionResultModel(kind=kind, item=entity_model(item))
