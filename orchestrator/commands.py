"""Entry points used by the HTTP layer: run a command, draft a standalone email."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from orchestrator.models import ActionResult
from orchestrator.state import AgentState
from productivity_server.errors import InvalidArgument
from productivity_server.models import EmailDraft, StoreSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandOutcome:
    """Results of a dispatched command plus the state right after it."""
    results: list[ActionResult]
    state: StoreSnapshot


async def handle_command(state: AgentState, text: str) -> CommandOutcome:
    """Interpret a free-text command and dispatch the resulting actions.

    The interpreter is awaited before anything is mutated, so an
    interpretation failure never leaves partial changes behind.

    Raises:
        InvalidArgument: If ``text`` is blank.
        CollaboratorFailure / EmptyActionList: If interpretation fails.
        ActionFailed: If one of the actions fails.
    """
    text = (text or "").strip()
    if not text:
        raise InvalidArgument("Text is required")

    raw_actions = await state.interpreter.interpret(text, state.store.reminder_context())
    results = await state.dispatcher.dispatch(raw_actions, command_text=text)
    return CommandOutcome(results=results, state=state.store.snapshot())


async def draft_email_preview(state: AgentState, instructions: str) -> EmailDraft:
    """Compose an email without keeping it in the store."""
    instructions = (instructions or "").strip()
    if not instructions:
        raise InvalidArgument("Instructions are required")

    composed = await state.composer.compose(instructions)
    return state.store.record_email_draft(instructions, composed.subject, composed.body, persist=False)
