"""LLM-backed collaborators: command interpretation and email composition.

Both collaborators call the OpenAI chat completions API in JSON mode and turn
the response into plain Python structures. Every failure (transport error,
empty or malformed output) is raised as ``CollaboratorFailure``.
"""
from __future__ import annotations

import json
import logging
import typing as t

from openai import AsyncOpenAI

from prompts import load_prompt
from productivity_server.errors import CollaboratorFailure, EmptyActionList
from orchestrator.shared import ComposedEmail

logger = logging.getLogger(__name__)

# Load system prompts from file
AGENT_SYSTEM_PROMPT = load_prompt("agent_system_prompt").strip()
EMAIL_DRAFT_SYSTEM_PROMPT = load_prompt("email_draft_system_prompt").strip()

_NO_CLIENT_MESSAGE = "OpenAI client is unavailable. Set OPENAI_API_KEY."


def extract_json_object(raw: t.Optional[str]) -> dict[str, t.Any]:
    """Extract the outermost JSON object from a model response.

    Args:
        raw: The raw response text; may carry prose around the JSON.

    Returns:
        The decoded object.

    Raises:
        CollaboratorFailure: If the response is empty or holds no valid JSON object.
    """
    if not raw:
        raise CollaboratorFailure("OpenAI returned empty response.")

    first_brace = raw.find("{")
    last_brace = raw.rfind("}")
    if first_brace == -1 or last_brace == -1 or last_brace < first_brace:
        raise CollaboratorFailure("Agent response missing JSON payload.")

    try:
        data = json.loads(raw[first_brace:last_brace + 1])
    except json.JSONDecodeError as e:
        raise CollaboratorFailure(f"Invalid JSON response from LLM: {e}") from e

    if not isinstance(data, dict):
        raise CollaboratorFailure("Agent response is not a JSON object.")
    return data


def parse_actions_response(raw: t.Optional[str]) -> list[dict[str, t.Any]]:
    """Parse the interpreter's response into a list of raw actions.

    Accepts either ``{"actions": [...]}`` or a single ``{"action", "payload"}``.

    Raises:
        EmptyActionList: If the response holds an empty action list.
        CollaboratorFailure: If the response has neither shape.
    """
    data = extract_json_object(raw)

    actions = data.get("actions")
    if isinstance(actions, list):
        if not actions:
            raise EmptyActionList("Agent response contains no actions.")
        return actions

    if data.get("action") and isinstance(data.get("payload"), dict):
        return [data]

    raise CollaboratorFailure("Agent response missing actions or action/payload.")


def parse_email_draft(raw: t.Optional[str]) -> ComposedEmail:
    """Parse the composer's response into a subject and body."""
    data = extract_json_object(raw)
    subject = str(data.get("subject") or "").strip()
    body = str(data.get("body") or "").strip()
    if not subject or not body:
        raise CollaboratorFailure("Email draft is missing subject or body.")
    return ComposedEmail(subject=subject, body=body)


def build_interpreter_message(text: str, reminder_context: list[dict[str, str]]) -> str:
    """Build the user message sent alongside the agent system prompt."""
    return (
        "Current reminders:\n"
        f"{json.dumps(reminder_context, indent=2)}\n\n"
        f'User request: """{text}"""\n'
        "Respond with JSON only."
    )


async def _complete(
        client: t.Optional[AsyncOpenAI],
        *,
        model: str,
        temperature: float,
        messages: list[dict[str, str]],
) -> t.Optional[str]:
    if client is None:
        raise CollaboratorFailure(_NO_CLIENT_MESSAGE)

    try:
        completion = await client.chat.completions.create(
            model=model,
            temperature=temperature,
            response_format={"type": "json_object"},
            messages=messages,
        )
    except Exception as e:
        raise CollaboratorFailure(f"Error calling OpenAI: {e}") from e

    if not completion.choices:
        raise CollaboratorFailure("OpenAI returned no choices.")
    return completion.choices[0].message.content


class OpenAIInterpreter:
    """Translates free-text commands into actions with an LLM."""

    def __init__(self, client: t.Optional[AsyncOpenAI], model: str = "gpt-4o-mini") -> None:
        self._client = client
        self._model = model

    async def interpret(self, text: str, reminder_context: list[dict[str, str]]) -> list[dict[str, t.Any]]:
        """Interpret a command.

        Args:
            text: The user's command.
            reminder_context: Current reminders (id, message, dueTime, status) so
                the model can reference existing reminders by id.

        Returns:
            Raw action entries, in the order the model listed them.

        Raises:
            CollaboratorFailure: If the call fails or the response is unusable.
            EmptyActionList: If the model returned no actions.
        """
        raw = await _complete(
            self._client,
            model=self._model,
            temperature=0.1,
            messages=[
                {"role": "system", "content": AGENT_SYSTEM_PROMPT},
                {"role": "user", "content": build_interpreter_message(text, reminder_context)},
            ],
        )
        actions = parse_actions_response(raw)
        logger.info("Interpreted command into %d action(s)", len(actions))
        return actions


class OpenAIEmailComposer:
    """Drafts emails with an LLM."""

    def __init__(self, client: t.Optional[AsyncOpenAI], model: str = "gpt-4o-mini") -> None:
        self._client = client
        self._model = model

    async def compose(self, instructions: str) -> ComposedEmail:
        raw = await _complete(
            self._client,
            model=self._model,
            temperature=0.2,
            messages=[
                {"role": "system", "content": EMAIL_DRAFT_SYSTEM_PROMPT},
                {"role": "user", "content": instructions},
            ],
        )
        return parse_email_draft(raw)
