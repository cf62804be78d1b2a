"""Shared fixtures: a fresh AgentState per test, wired with fakes."""
from __future__ import annotations

import typing as t

import pytest

from orchestrator.state import AgentState, create_agent_state
from productivity_server.config import Settings

from .fakes import FakeComposer, FakeInterpreter


@pytest.fixture()
def settings() -> Settings:
    """Default settings without an API key, independent of the environment."""
    return Settings(openai_api_key=None)


@pytest.fixture()
def interpreter() -> FakeInterpreter:
    return FakeInterpreter()


@pytest.fixture()
def composer() -> FakeComposer:
    return FakeComposer()


@pytest.fixture()
def agent(settings: Settings, interpreter: FakeInterpreter, composer: FakeComposer) -> t.Iterator[AgentState]:
    state = create_agent_state(settings, interpreter=interpreter, composer=composer)
    yield state
    state.close()
