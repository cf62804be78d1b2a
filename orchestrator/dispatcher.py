"""Action dispatcher.

This module applies an ordered list of actions against the state store and
reminder scheduler. Actions run strictly in input order; the first failure
aborts the rest of the list, and actions that already ran stay applied.
"""
from __future__ import annotations

import asyncio
import logging
import typing as t

from orchestrator.models import (
    Action,
    ActionResult,
    AddNote,
    AddTask,
    CancelReminder,
    DraftEmail,
    ScheduleReminder,
    UpdateReminder,
    decode_action,
    raw_action_kind,
)
from orchestrator.shared import ComposedEmail, EmailComposer
from productivity_server.broadcaster import (
    REMINDER_CREATED,
    REMINDER_DELETED,
    REMINDER_UPDATED,
    EventBroadcaster,
)
from productivity_server.errors import (
    ActionFailed,
    AgentError,
    CollaboratorFailure,
    EmptyActionList,
    InvalidArgument,
    MissingField,
    UnsupportedAction,
)
from productivity_server.scheduler import ReminderScheduler
from productivity_server.store import StateStore
from productivity_server.time_resolver import TimeResolver

logger = logging.getLogger(__name__)

RawAction = t.Union[Action, t.Mapping[str, t.Any]]
ProgressCallback = t.Callable[[int, int, Action, t.Optional[ActionResult]], None]
# Outcome of composing one draft_email action ahead of the mutation phase
Composition = t.Union[ComposedEmail, AgentError]


class ActionDispatcher:
    """Validates and executes action lists against the shared state."""

    def __init__(
            self,
            store: StateStore,
            scheduler: ReminderScheduler,
            broadcaster: EventBroadcaster,
            resolver: TimeResolver,
            composer: EmailComposer,
    ) -> None:
        self._store = store
        self._scheduler = scheduler
        self._broadcaster = broadcaster
        self._resolver = resolver
        self._composer = composer
        # Serialises overlapping requests around the mutation boundary
        self._lock = asyncio.Lock()
        self._handlers: dict[type, t.Callable[[t.Any, t.Optional[Composition]], t.Any]] = {
            AddTask: self._add_task,
            AddNote: self._add_note,
            ScheduleReminder: self._schedule_reminder,
            UpdateReminder: self._update_reminder,
            CancelReminder: self._cancel_reminder,
            DraftEmail: self._draft_email,
        }

    async def dispatch(
            self,
            actions: t.Sequence[RawAction],
            *,
            command_text: str = "",
            progress_callback: t.Optional[ProgressCallback] = None,
    ) -> list[ActionResult]:
        """Execute actions in order and return their results.

        Email compositions are awaited before the mutation lock is taken; their
        outcomes are applied in input order together with everything else.

        Args:
            actions: Typed actions or raw ``{kind, payload}`` mappings.
            command_text: The original command, used as fallback text.
            progress_callback: Optional callback called before and after each action
                with (action_number, total_actions, action, result). Before
                execution the result is None.

        Returns:
            One ActionResult per action, in input order.

        Raises:
            EmptyActionList: If ``actions`` is empty.
            ActionFailed: If an action fails; carries its index, kind and cause.
        """
        actions = list(actions)
        if not actions:
            raise EmptyActionList("Agent response contains no actions.")

        compositions = await self._compose_drafts(actions, command_text)

        results: list[ActionResult] = []
        async with self._lock:
            for index, raw in enumerate(actions):
                kind = raw_action_kind(raw)
                try:
                    action = decode_action(raw, command_text)
                    kind = action.kind

                    if progress_callback:
                        progress_callback(index + 1, len(actions), action, None)

                    result = ActionResult(kind=kind, item=self._apply(action, compositions.get(index)))
                except AgentError as e:
                    logger.warning("Action %d (%s) failed: %s", index, kind, e)
                    raise ActionFailed(index, kind, e) from e

                results.append(result)
                if progress_callback:
                    progress_callback(index + 1, len(actions), action, result)

        logger.info("Dispatched %d action(s)", len(results))
        return results

    def _apply(self, action: Action, composition: t.Optional[Composition]) -> t.Any:
        handler = self._handlers.get(type(action))
        if handler is None:
            raise UnsupportedAction(getattr(action, "kind", type(action).__name__))
        return handler(action, composition)

    async def _compose_drafts(self, actions: list[RawAction], command_text: str) -> dict[int, Composition]:
        """Run the email composer for every draft_email action, concurrently.

        Entries that do not decode are skipped here; they fail in order later.
        """
        pending: dict[int, t.Awaitable[ComposedEmail]] = {}
        for index, raw in enumerate(actions):
            try:
                action = decode_action(raw, command_text)
            except AgentError:
                continue
            if isinstance(action, DraftEmail) and action.instructions.strip():
                pending[index] = self._composer.compose(action.instructions.strip())

        if not pending:
            return {}

        outcomes = await asyncio.gather(*pending.values(), return_exceptions=True)

        compositions: dict[int, Composition] = {}
        for index, outcome in zip(pending, outcomes):
            if isinstance(outcome, AgentError):
                compositions[index] = outcome
            elif isinstance(outcome, Exception):
                compositions[index] = CollaboratorFailure(f"Unable to draft email: {outcome}")
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                compositions[index] = outcome
        return compositions

    # -----------------------------
    # Per-kind handlers
    # -----------------------------

    def _add_task(self, action: AddTask, _: t.Optional[Composition]):
        due_date = self._resolver.resolve_date(action.due_date) if action.due_date else None
        return self._store.add_task(action.description, due_date)

    def _add_note(self, action: AddNote, _: t.Optional[Composition]):
        return self._store.add_note(action.body)

    def _schedule_reminder(self, action: ScheduleReminder, _: t.Optional[Composition]):
        if not action.message or not action.due_time:
            raise MissingField(action.kind, "message", "dueTime")

        due_time = self._resolver.resolve(action.due_time, future_only=True)
        reminder = self._store.add_reminder(action.message, due_time)
        self._scheduler.arm(reminder)

        # Re-read: arming a reminder that is already past makes it due
        reminder = self._store.get_reminder(reminder.id)
        self._broadcaster.publish(REMINDER_CREATED, reminder)
        return reminder

    def _update_reminder(self, action: UpdateReminder, _: t.Optional[Composition]):
        if not action.reminder_id:
            raise MissingField(action.kind, "reminderId")

        # Unknown ids fail before the time expression is even looked at
        self._store.get_reminder(action.reminder_id)
        due_time = self._resolver.resolve(action.due_time, future_only=True) if action.due_time else None

        reminder = self._store.update_reminder(action.reminder_id, message=action.message, due_time=due_time)
        if due_time is not None:
            self._scheduler.arm(reminder)
            reminder = self._store.get_reminder(reminder.id)

        self._broadcaster.publish(REMINDER_UPDATED, reminder)
        return reminder

    def _cancel_reminder(self, action: CancelReminder, _: t.Optional[Composition]):
        if not action.reminder_id:
            raise MissingField(action.kind, "reminderId")

        removed = self._store.remove_reminder(action.reminder_id)
        self._scheduler.cancel(removed.id)
        self._broadcaster.publish(REMINDER_DELETED, removed)
        return removed

    def _draft_email(self, action: DraftEmail, composition: t.Optional[Composition]):
        if not action.instructions.strip():
            raise InvalidArgument("Email drafting instructions are required.")
        if composition is None:
            raise CollaboratorFailure("Email draft was not composed.")
        if isinstance(composition, AgentError):
            raise composition

        return self._store.record_email_draft(action.instructions, composition.subject, composition.body)
