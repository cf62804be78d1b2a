"""Process-wide agent state.

All runtime components are built once by :func:`create_agent_state` and passed
around by reference. Tests build a fresh state per test.
"""
from __future__ import annotations

import logging
import typing as t
from dataclasses import dataclass
from datetime import timedelta

from orchestrator.dispatcher import ActionDispatcher
from orchestrator.llm import OpenAIEmailComposer, OpenAIInterpreter
from orchestrator.shared import EmailComposer, Interpreter, get_openai_client
from productivity_server.broadcaster import EventBroadcaster
from productivity_server.config import Settings, get_settings
from productivity_server.scheduler import ReminderScheduler
from productivity_server.store import StateStore
from productivity_server.time_resolver import Clock, TimeResolver, now_local

logger = logging.getLogger(__name__)


@dataclass
class AgentState:
    settings: Settings
    store: StateStore
    broadcaster: EventBroadcaster
    scheduler: ReminderScheduler
    resolver: TimeResolver
    dispatcher: ActionDispatcher
    interpreter: Interpreter
    composer: EmailComposer

    def close(self) -> None:
        """Stop all timers and end every open event stream."""
        self.scheduler.shutdown()
        self.broadcaster.close()


def create_agent_state(
        settings: t.Optional[Settings] = None,
        *,
        interpreter: t.Optional[Interpreter] = None,
        composer: t.Optional[EmailComposer] = None,
        clock: Clock = now_local,
) -> AgentState:
    """Build the store, scheduler, broadcaster and dispatcher.

    Collaborators default to the OpenAI-backed implementations.
    """
    settings = settings or get_settings()

    if interpreter is None or composer is None:
        client = get_openai_client(settings)
        if client is None:
            logger.warning("OPENAI_API_KEY is not set. Agent requests will fail.")
        interpreter = interpreter or OpenAIInterpreter(client, settings.openai_model)
        composer = composer or OpenAIEmailComposer(client, settings.openai_model)

    store = StateStore(clock=clock, email_draft_limit=settings.email_draft_limit)
    broadcaster = EventBroadcaster(retry_ms=settings.sse_retry_ms, max_pending=settings.subscriber_queue_size)
    scheduler = ReminderScheduler(store, broadcaster, clock=clock)
    resolver = TimeResolver(clock, past_grace=timedelta(seconds=settings.past_grace_seconds))
    dispatcher = ActionDispatcher(store, scheduler, broadcaster, resolver, composer)

    return AgentState(
        settings=settings,
        store=store,
        broadcaster=broadcaster,
        scheduler=scheduler,
        resolver=resolver,
        dispatcher=dispatcher,
        interpreter=interpreter,
        composer=composer,
    )
