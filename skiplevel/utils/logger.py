"""Structured logging utilities."""

from __future__ import annotations

import logging
import sys
from typing import Optional

from skiplevel.utils.config import get_settings


ROOT_LOGGER_NAME = "skiplevel"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

_LOGGER_INITIALIZED = False


def configure_logging(level: Optional[str] = None) -> None:
    """Attach one stdout handler to the package logger.

    Only the ``skiplevel`` hierarchy is configured so embedding applications
    (uvicorn, pytest) keep control of the root logger.
    """

    global _LOGGER_INITIALIZED
    if _LOGGER_INITIALIZED:
        return

    resolved_level = (level or get_settings().log_level).upper()
    package_logger = logging.getLogger(ROOT_LOGGER_NAME)
    package_logger.setLevel(resolved_level)

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    package_logger.addHandler(handler)
    _LOGGER_INITIALIZED = True


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the configured package hierarchy."""
    configure_logging()
    if name != ROOT_LOGGER_NAME and not name.startswith(f"{ROOT_LOGGER_NAME}."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)
