"""Logging setup with a runtime debug toggle.

All log output goes to stderr: stdout carries protocol responses to the
producer and must stay clean.
"""

from __future__ import annotations

import logging
import sys

ROOT_LOGGER_NAME = "aspose_preview"
LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"

_logging_initialized: bool = False


def setup_logging(debug: bool = False) -> None:
    """Install the stderr handler on the package logger.

    This is idempotent - calling it again only updates the debug level.
    """
    global _logging_initialized

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    if not _logging_initialized:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root_logger.addHandler(handler)
        root_logger.propagate = False
        _logging_initialized = True

    set_debug(debug)


def set_debug(enabled: bool) -> None:
    """Enable or disable debug logging at runtime."""
    logging.getLogger(ROOT_LOGGER_NAME).setLevel(logging.DEBUG if enabled else logging.INFO)


def is_debug_enabled() -> bool:
    """Return whether debug logging is currently enabled."""
    return logging.getLogger(ROOT_LOGGER_NAME).getEffectiveLevel() <= logging.DEBUG


__all__ = ["LOG_FORMAT", "ROOT_LOGGER_NAME", "is_debug_enabled", "set_debug", "setup_logging"]
