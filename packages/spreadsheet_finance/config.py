"""Runtime settings read from the environment.

Nothing is read at import time; callers invoke :func:`load_settings` (the CLI
does so after loading ``.env``).

Variables
---------
- ``SPREADSHEET_FINANCE_BASE_CURRENCY``: reporting currency (default ``CAD``).
- ``SPREADSHEET_FINANCE_HEADER_THRESHOLD``: alias hits needed to accept a
  header row (default ``2``).
- ``SPREADSHEET_FINANCE_CACHE_MAX_ENTRIES``: aggregation cache size before it
  is cleared (default ``1000``).

Malformed or non-positive integers fall back to the defaults.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from .logging_setup import get_logger

_logger = get_logger("spreadsheet_finance.config")

BASE_CURRENCY_ENV_VAR = "SPREADSHEET_FINANCE_BASE_CURRENCY"
HEADER_THRESHOLD_ENV_VAR = "SPREADSHEET_FINANCE_HEADER_THRESHOLD"
CACHE_MAX_ENTRIES_ENV_VAR = "SPREADSHEET_FINANCE_CACHE_MAX_ENTRIES"

DEFAULT_BASE_CURRENCY = "CAD"
DEFAULT_HEADER_THRESHOLD = 2
DEFAULT_CACHE_MAX_ENTRIES = 1000


@dataclass(frozen=True, slots=True)
class Settings:
    base_currency: str = DEFAULT_BASE_CURRENCY
    header_threshold: int = DEFAULT_HEADER_THRESHOLD
    cache_max_entries: int = DEFAULT_CACHE_MAX_ENTRIES


def _positive_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        _logger.debug("config:invalid_int name=%s value=%r; using default=%d", name, raw, default)
        return default
    if value < 1:
        _logger.debug("config:non_positive name=%s value=%d; using default=%d", name, value, default)
        return default
    return value


def load_settings() -> Settings:
    currency = (os.getenv(BASE_CURRENCY_ENV_VAR) or "").strip().upper()
    return Settings(
        base_currency=currency or DEFAULT_BASE_CURRENCY,
        header_threshold=_positive_int(HEADER_THRESHOLD_ENV_VAR, DEFAULT_HEADER_THRESHOLD),
        cache_max_entries=_positive_int(CACHE_MAX_ENTRIES_ENV_VAR, DEFAULT_CACHE_MAX_ENTRIES),
    )


__all__ = ["Settings", "load_settings"]
