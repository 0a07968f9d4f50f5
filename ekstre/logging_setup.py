"""Centralized logging configuration for the ``ekstre`` package.

- ``configure_logging(...)`` attaches a single ``StreamHandler`` to the package
  root logger (``"ekstre"``). Entrypoints (the CLI, a host application) call it
  once at startup.
- ``get_logger(name)`` returns a named logger and makes sure the package root
  has at least a ``NullHandler`` while nothing has been configured.

Library modules never attach handlers of their own; they call
``get_logger("ekstre.<module>")`` and leave output to the host.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

_PKG_LOGGER_NAME = "ekstre"
_LEVEL_ENV = "EKSTRE_LOG_LEVEL"
_DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

_configured = False


class _CurrentStderrHandler(logging.StreamHandler):
    """Writes to whatever ``sys.stderr`` is when a record is emitted.

    Test runners and the CLI test harness swap ``sys.stderr`` per invocation;
    a handler bound to the stream object seen at configure time would keep
    writing to a closed capture buffer.
    """

    def __init__(self) -> None:
        super().__init__(sys.stderr)

    @property
    def stream(self) -> IO[str]:  # type: ignore[override]
        return sys.stderr

    @stream.setter
    def stream(self, value: IO[str]) -> None:
        pass


def _parse_level(level: int | str | None) -> int:
    if isinstance(level, int):
        return level
    if isinstance(level, str) and level.strip():
        name = level.strip().upper()
        if name.isdigit():
            return int(name)
        numeric = logging.getLevelName(name)
        if isinstance(numeric, int):
            return numeric
        return logging.INFO
    env_val = os.getenv(_LEVEL_ENV)
    if env_val:
        return _parse_level(env_val)
    return logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] | None = None,
) -> None:
    """Configure the ``ekstre`` logger exactly once.

    Parameters
    ----------
    level:
        ``int`` level or level name. ``None`` falls back to ``EKSTRE_LOG_LEVEL``
        and then to ``INFO``.
    fmt:
        Optional format string for the handler.
    stream:
        Destination stream. When omitted, records go to the current
        ``sys.stderr`` at emit time.
    """

    global _configured
    if _configured:
        return

    logger = logging.getLogger(_PKG_LOGGER_NAME)
    for handler in list(logger.handlers):
        if isinstance(handler, logging.NullHandler):
            logger.removeHandler(handler)

    resolved = _parse_level(level)
    handler: logging.StreamHandler = (
        logging.StreamHandler(stream) if stream is not None else _CurrentStderrHandler()
    )
    handler.setLevel(resolved)
    handler.setFormatter(logging.Formatter(fmt or _DEFAULT_FORMAT))

    logger.setLevel(resolved)
    logger.addHandler(handler)
    logger.propagate = False

    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return ``logging.getLogger(name)`` with a silent default for library use."""

    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if not _configured and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger"]
