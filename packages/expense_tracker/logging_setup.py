"""Logging configuration for the ``expense_tracker`` package.

Library modules call ``get_logger(__name__)`` and never attach handlers.
Entrypoints (the CLI, or a host application) call ``configure_logging`` once
to route the package root logger (``"expense_tracker"``) to a stream.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

_PKG_LOGGER_NAME = "expense_tracker"
_LEVEL_ENV_VAR = "EXPENSE_TRACKER_LOG_LEVEL"
_DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

_handler: logging.Handler | None = None


def resolve_level(level: int | str | None) -> int:
    """Resolve ``level`` (int, digits, or level name) to a numeric level.

    ``None`` falls back to ``EXPENSE_TRACKER_LOG_LEVEL`` and then INFO.
    Unknown names also fall back rather than raising.
    """

    if level is None:
        level = os.getenv(_LEVEL_ENV_VAR)
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        name = level.strip().upper()
        if name.isdigit():
            return int(name)
        numeric = logging.getLevelName(name)
        if isinstance(numeric, int):
            return numeric
    return logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] | None = None,
) -> None:
    """Attach a single ``StreamHandler`` to the package root logger.

    The handler is installed once; repeated calls adjust its level and point
    it at ``stream`` (default: ``sys.stderr`` as of the call).
    """

    global _handler
    logger = logging.getLogger(_PKG_LOGGER_NAME)
    numeric = resolve_level(level)

    if _handler is None:
        for h in list(logger.handlers):
            if isinstance(h, logging.NullHandler):
                logger.removeHandler(h)
        _handler = logging.StreamHandler(stream or sys.stderr)
        _handler.setFormatter(logging.Formatter(fmt or _DEFAULT_FORMAT))
        logger.addHandler(_handler)
        # Avoid double emission via the root logger.
        logger.propagate = False
    else:
        _handler.setStream(stream or sys.stderr)

    _handler.setLevel(numeric)
    logger.setLevel(numeric)


def reset_logging() -> None:
    """Remove the handler installed by :func:`configure_logging`."""

    global _handler
    logger = logging.getLogger(_PKG_LOGGER_NAME)
    if _handler is not None:
        logger.removeHandler(_handler)
        _handler = None
    if not logger.handlers:
        logger.addHandler(logging.NullHandler())
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


def get_logger(name: str) -> logging.Logger:
    """Return ``logging.getLogger(name)``, silencing the package until configured."""

    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if _handler is None and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger", "reset_logging", "resolve_level"]
