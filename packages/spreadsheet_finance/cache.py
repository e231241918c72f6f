"""Memoization for aggregation helpers.

An :class:`AggregationCache` is owned by its caller (typically one per viewed
fiscal year) and passed explicitly to the helpers that use it; there is no
module-level cache. Keys are the function name plus the JSON-serialized
arguments, so structurally equal inputs hit the same entry.

Eviction is deliberately simple: once the map grows past ``max_entries`` it is
cleared entirely.
"""

from __future__ import annotations

import dataclasses
import json
import threading
from collections.abc import Callable, Sequence
from datetime import date
from enum import Enum
from typing import Any, TypeVar

from pydantic import BaseModel

from .logging_setup import get_logger

_logger = get_logger("spreadsheet_finance.cache")

DEFAULT_MAX_ENTRIES = 1000

T = TypeVar("T")


def _json_default(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    raise TypeError(f"Object of type {type(value).__name__} is not cache-key serializable")


def cache_key(fn_name: str, args: Sequence[Any]) -> str:
    payload = json.dumps(list(args), sort_keys=True, separators=(",", ":"), default=_json_default)
    return f"{fn_name}:{payload}"


class AggregationCache:
    """Thread-safe ``key → result`` map with clear-all eviction."""

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES) -> None:
        if max_entries < 1:
            raise ValueError("AggregationCache max_entries must be >= 1")
        self._max_entries = max_entries
        self._entries: dict[str, Any] = {}
        self._lock = threading.Lock()

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def get_or_compute(self, fn_name: str, args: Sequence[Any], compute: Callable[[], T]) -> T:
        """Return the cached result for ``(fn_name, args)`` or compute and store it."""

        key = cache_key(fn_name, args)
        with self._lock:
            if key in self._entries:
                return self._entries[key]

        result = compute()

        with self._lock:
            self._entries[key] = result
            if len(self._entries) > self._max_entries:
                _logger.debug(
                    "aggregation_cache:evict size=%d max_entries=%d",
                    len(self._entries),
                    self._max_entries,
                )
                self._entries.clear()
        return result


__all__ = ["DEFAULT_MAX_ENTRIES", "AggregationCache", "cache_key"]
