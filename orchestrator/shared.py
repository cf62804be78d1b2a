"""Shared utilities for orchestrator modules.

This module contains the collaborator interfaces the dispatcher depends on and
the OpenAI client factory used by both collaborators.
"""
from __future__ import annotations

import typing as t
from dataclasses import dataclass

from openai import AsyncOpenAI

from productivity_server.config import Settings


@dataclass(frozen=True)
class ComposedEmail:
    """Subject and body returned by an email composer."""
    subject: str
    body: str


class Interpreter(t.Protocol):
    """Turns a free-text command into raw ``{action, payload}`` entries."""

    async def interpret(self, text: str, reminder_context: list[dict[str, str]]) -> list[dict[str, t.Any]]:
        ...


class EmailComposer(t.Protocol):
    """Drafts an email from the user's instructions."""

    async def compose(self, instructions: str) -> ComposedEmail:
        ...


def get_openai_client(settings: Settings) -> t.Optional[AsyncOpenAI]:
    """Get an async OpenAI client, or None when no API key is configured."""
    if not settings.openai_api_key:
        return None
    return AsyncOpenAI(api_key=settings.openai_api_key)
