"""Logging configuration helpers for Agent Studio."""

from __future__ import annotations

import logging
from pathlib import Path

LOGGER_NAME = "agent_studio"
# The HTTP backend lives in its own top-level package and logs under it.
LOGGED_PACKAGES: tuple[str, ...] = (LOGGER_NAME, "ui")

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(*, log_file: Path, verbose: bool) -> logging.Logger:
    """Send Agent Studio and backend logs to ``log_file``; return the package logger.

    Each call truncates the file, so one CLI run maps to one log history.
    Handlers from a previous call are closed before the new one is attached.
    """
    level = logging.DEBUG if verbose else logging.INFO
    log_path = log_file.expanduser().resolve()
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_path, mode="w", encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_FORMAT))

    for name in LOGGED_PACKAGES:
        package_logger = logging.getLogger(name)
        for previous in list(package_logger.handlers):
            package_logger.removeHandler(previous)
            previous.close()
        package_logger.setLevel(level)
        package_logger.propagate = False
        package_logger.addHandler(handler)
    return logging.getLogger(LOGGER_NAME)


def get_logger() -> logging.Logger:
    """Return the package logger, silenced with a null handler until configured."""
    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        logger.addHandler(logging.NullHandler())
    return logger
