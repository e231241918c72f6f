"""Logging for the ``spreadsheet_finance`` package.

Parsers, the reconciler and the valuation code only ever call
``get_logger("spreadsheet_finance.<module>")``. Output is decided by whoever
hosts the package:

- as a library, records go nowhere until the host configures logging (a
  ``NullHandler`` sits on the package logger);
- the CLI calls :func:`configure_logging` once at startup, which attaches a
  single stderr ``StreamHandler`` to the package logger.

The level comes from the ``level`` argument, else the
``SPREADSHEET_FINANCE_LOG_LEVEL`` environment variable, else ``INFO``. Row
rejects and unresolved headers are logged at ``DEBUG``; each parse emits one
``INFO`` summary line.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

PACKAGE_LOGGER = "spreadsheet_finance"
LOG_LEVEL_ENV_VAR = "SPREADSHEET_FINANCE_LOG_LEVEL"
DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

# The handler installed by ``configure_logging``; ``None`` until configured.
_handler: logging.Handler | None = None


def resolve_level(level: int | str | None = None) -> int:
    """Turn a level name, number or ``None`` (env / default) into an int."""

    if level is None:
        level = os.getenv(LOG_LEVEL_ENV_VAR) or logging.INFO
    if isinstance(level, int):
        return level
    name = level.strip().upper()
    if name.isdigit():
        return int(name)
    value = logging.getLevelName(name)
    return value if isinstance(value, int) else logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] | None = None,
    force: bool = False,
) -> logging.Logger:
    """Attach the package's stream handler; later calls are no-ops.

    Parameters
    ----------
    level:
        Level name or number. ``None`` reads ``SPREADSHEET_FINANCE_LOG_LEVEL``
        and falls back to ``INFO``.
    fmt:
        Format string; defaults to :data:`DEFAULT_FORMAT`.
    stream:
        Destination; defaults to ``sys.stderr`` at call time.
    force:
        Replace a previously installed handler instead of keeping it.

    Returns
    -------
    logging.Logger
        The package logger.
    """

    global _handler
    logger = logging.getLogger(PACKAGE_LOGGER)
    if _handler is not None and not force:
        return logger

    for existing in list(logger.handlers):
        if existing is _handler or isinstance(existing, logging.NullHandler):
            logger.removeHandler(existing)

    resolved = resolve_level(level)
    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setLevel(resolved)
    handler.setFormatter(logging.Formatter(fmt or DEFAULT_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(resolved)
    # Records must not be emitted a second time by the root logger.
    logger.propagate = False

    _handler = handler
    return logger


def get_logger(name: str) -> logging.Logger:
    """Return ``name``'s logger, keeping the package silent until configured."""

    package = logging.getLogger(PACKAGE_LOGGER)
    if _handler is None and not package.handlers:
        package.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = [
    "DEFAULT_FORMAT",
    "LOG_LEVEL_ENV_VAR",
    "PACKAGE_LOGGER",
    "configure_logging",
    "get_logger",
    "resolve_level",
]
