"""Logging setup shared by all modules."""

from __future__ import annotations

import logging
import os
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_LEVEL_ENV = "AUDIO_MANAGER_LOG_LEVEL"

_configured: list[logging.Logger] = []


def _resolve_level(level: str | None) -> int:
    name = (level or os.getenv(LOG_LEVEL_ENV, "INFO")).upper()
    return getattr(logging, name, logging.INFO)


def setup_logger(name: str) -> logging.Logger:
    """Return a logger with a console handler, configured only once."""
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    logger.setLevel(_resolve_level(None))
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    _configured.append(logger)
    return logger


def set_log_level(level: str) -> None:
    """Apply a level to every logger created through setup_logger."""
    resolved = _resolve_level(level)
    for logger in _configured:
        logger.setLevel(resolved)
