"""Logging configuration for the productivity agent service."""
from __future__ import annotations

import logging

from rich.logging import RichHandler


# Third-party loggers that are only interesting when something breaks
_NOISY_LOGGERS = ("httpx", "httpcore", "openai")


def setup_logging(level: str | int = logging.INFO) -> None:
    """Configure the root logger with a rich console handler.

    Call this once, before the first log record is emitted.

    Args:
        level: Log level name (e.g. "DEBUG") or numeric level for our own loggers.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger()
    root.setLevel(level)

    # Remove pre-existing handlers to avoid duplicate lines on reload
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = RichHandler(rich_tracebacks=True, show_path=False, log_time_format="%Y-%m-%d %H:%M:%S")
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    root.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.captureWarnings(True)
