"""
Settings loaded from environment variables.

All values are read once by :func:`get_settings`; nothing here requires a
secret at import time.
"""
from __future__ import annotations

import os
import typing as t
from dataclasses import dataclass, field
from functools import lru_cache


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass(frozen=True)
class Settings:
    """Runtime configuration for the productivity agent service."""
    openai_api_key: t.Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    host: str = "0.0.0.0"
    port: int = 4000
    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    sse_retry_ms: int = 5000
    sse_keepalive_seconds: float = 15.0
    subscriber_queue_size: int = 100
    email_draft_limit: int = 10
    past_grace_seconds: float = 60.0
    log_level: str = "INFO"
    service_url: str = "http://localhost:4000"


def load_settings() -> Settings:
    """Build a fresh Settings object from the current environment."""
    return Settings(
        openai_api_key=os.getenv("OPENAI_API_KEY") or None,
        openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
        host=os.getenv("AGENT_HOST", "0.0.0.0"),
        port=_env_int("PORT", 4000),
        cors_origins=_env_list("AGENT_CORS_ORIGINS", ["*"]),
        sse_retry_ms=_env_int("AGENT_SSE_RETRY_MS", 5000),
        sse_keepalive_seconds=_env_float("AGENT_SSE_KEEPALIVE_SECONDS", 15.0),
        subscriber_queue_size=_env_int("AGENT_SUBSCRIBER_QUEUE_SIZE", 100),
        email_draft_limit=_env_int("AGENT_EMAIL_DRAFT_LIMIT", 10),
        past_grace_seconds=_env_float("AGENT_PAST_GRACE_SECONDS", 60.0),
        log_level=os.getenv("AGENT_LOG_LEVEL", "INFO").upper(),
        service_url=os.getenv("AGENT_SERVICE_URL", "http://localhost:4000").rstrip("/"),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings (cached after the first call)."""
    return load_settings()
