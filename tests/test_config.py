"""Tests for environment settings and logging setup."""
import logging

import pytest
from rich.logging import RichHandler

from productivity_server.config import Settings, load_settings
from productivity_server.logging_setup import setup_logging


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("OPENAI_API_KEY", "PORT", "AGENT_CORS_ORIGINS", "AGENT_SSE_RETRY_MS", "AGENT_SERVICE_URL"):
        monkeypatch.delenv(name, raising=False)

    settings = load_settings()

    assert settings.openai_api_key is None
    assert settings.port == 4000
    assert settings.cors_origins == ["*"]
    assert settings.sse_retry_ms == 5000
    assert settings.email_draft_limit == 10


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("AGENT_CORS_ORIGINS", "http://a.test, http://b.test")
    monkeypatch.setenv("AGENT_PAST_GRACE_SECONDS", "30")
    monkeypatch.setenv("AGENT_LOG_LEVEL", "debug")
    monkeypatch.setenv("AGENT_SERVICE_URL", "http://agent.test:4000/")

    settings = load_settings()

    assert settings.openai_api_key == "sk-test"
    assert settings.port == 8080
    assert settings.cors_origins == ["http://a.test", "http://b.test"]
    assert settings.past_grace_seconds == 30.0
    assert settings.log_level == "DEBUG"
    assert settings.service_url == "http://agent.test:4000"


def test_bad_integer_is_reported(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PORT", "eighty")

    with pytest.raises(ValueError, match="PORT") as excinfo:
        load_settings()

    # Reported on its own, without the int() failure chained underneath
    assert excinfo.value.__cause__ is None
    assert excinfo.value.__suppress_context__


def test_bad_number_is_reported(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AGENT_PAST_GRACE_SECONDS", "a minute")

    with pytest.raises(ValueError, match="AGENT_PAST_GRACE_SECONDS") as excinfo:
        load_settings()

    assert excinfo.value.__suppress_context__


def test_settings_are_immutable() -> None:
    with pytest.raises(AttributeError):
        Settings().port = 1  # type: ignore[misc]


def test_setup_logging_installs_a_single_rich_handler() -> None:
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        setup_logging("debug")
        setup_logging("DEBUG")

        assert root.level == logging.DEBUG
        assert [type(h) for h in root.handlers] == [RichHandler]
        assert logging.getLogger("httpx").level == logging.WARNING
    finally:
        for handler in list(root.handlers):
            root.removeHandler(handler)
        for handler in saved_handlers:
            root.addHandler(handler)
        root.setLevel(saved_level)
        logging.captureWarnings(False)
