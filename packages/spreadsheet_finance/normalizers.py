"""Cell-level normalizers shared by every spreadsheet adapter.

All helpers here are total: they accept arbitrary (possibly ``None``) cell
text and degrade to a neutral value instead of raising. Spreadsheet exports
are untrusted input, so a malformed cell must never abort a parse.
"""

from __future__ import annotations

import math
import re
from typing import Any

# ---------------------------------------------------------------------------
# Numbers
# ---------------------------------------------------------------------------

_NON_NUMERIC_RE = re.compile(r"[^0-9.\-]")
# Longest numeric prefix, mirroring how spreadsheet tools read "12-31" as 12.
_LEADING_FLOAT_RE = re.compile(r"^-?(?:\d+(?:\.\d*)?|\.\d+)")


def parse_number(raw: Any) -> float:
    """Convert a loosely formatted cell into a float; never raises.

    Handles currency symbols, thousands separators and accounting-style
    parenthesis negatives (``"(500)"`` → ``-500.0``). When more than one
    ``.`` survives cleaning (thousands-dot locales) only the first is kept as
    the decimal point. Anything unparseable yields ``0.0``.
    """

    if raw is None:
        return 0.0
    if isinstance(raw, bool):
        return 0.0
    if isinstance(raw, (int, float)):
        value = float(raw)
        return value if math.isfinite(value) else 0.0

    clean = str(raw).strip()
    if not clean:
        return 0.0
    if clean.startswith("(") and clean.endswith(")"):
        clean = "-" + clean[1:-1]
    clean = _NON_NUMERIC_RE.sub("", clean)

    parts = clean.split(".")
    if len(parts) > 2:
        clean = parts[0] + "." + "".join(parts[1:])

    match = _LEADING_FLOAT_RE.match(clean)
    if match is None:
        return 0.0
    try:
        return float(match.group(0))
    except ValueError:
        return 0.0


# ---------------------------------------------------------------------------
# Booleans
# ---------------------------------------------------------------------------

_TRUE_TOKENS = frozenset({"true", "yes", "active", "1"})
_FALSE_TOKENS = frozenset({"false", "no", "inactive", "0", "cancelled"})


def parse_boolean(raw: str | None, fallback: Any = None) -> Any:
    """Return ``True``/``False`` for recognised status words, else ``fallback``."""

    if raw is None:
        return fallback
    low = raw.strip().lower()
    if low in _TRUE_TOKENS:
        return True
    if low in _FALSE_TOKENS:
        return False
    return fallback


# ---------------------------------------------------------------------------
# Tickers
# ---------------------------------------------------------------------------

UNKNOWN_TICKER = "UNKNOWN"

_TICKER_ALIASES = {"BITCOIN": "BTC", "ETHEREUM": "ETH"}
_PARENTHETICAL_RE = re.compile(r"\(([^)]+)\)")
_EXCHANGE_SUFFIX_RE = re.compile(r"\.(TO|V|NE|UN|CN|NX)$", re.IGNORECASE)

_CAD_SUFFIXES = (".TO", ".V", ".NE", "-CAD")
_CANADIAN_ACCOUNT_TOKENS = ("TFSA", "RRSP", "FHSA", "RESP", "LIRA")


def normalize_ticker(raw: str | None) -> str:
    """Return the canonical symbol used to match trades, snapshots and quotes.

    Examples: ``"meta platforms (META)"`` → ``"META"``, ``"xeqt.to"`` →
    ``"XEQT"``, ``"Bitcoin"`` → ``"BTC"``. Empty input maps to ``UNKNOWN``.
    """

    if not raw or not raw.strip():
        return UNKNOWN_TICKER
    clean = raw.upper().strip()
    if clean in _TICKER_ALIASES:
        return _TICKER_ALIASES[clean]
    if "(" in clean:
        match = _PARENTHETICAL_RE.search(clean)
        if match:
            return match.group(1).upper().strip()
    clean = _EXCHANGE_SUFFIX_RE.sub("", clean)
    return clean.strip()


def detect_ticker_currency(ticker: str | None, context: str | None = None) -> str:
    """Infer a listing currency from the raw ticker suffix or account context.

    Canadian exchange suffixes and registered-account names imply ``CAD``;
    everything else is assumed to trade in ``USD``.
    """

    t = (ticker or "").upper().strip()
    if t.endswith(_CAD_SUFFIXES):
        return "CAD"
    if t.endswith("-USD"):
        return "USD"
    ctx = (context or "").upper()
    if any(token in ctx for token in _CANADIAN_ACCOUNT_TOKENS):
        return "CAD"
    return "USD"


__all__ = [
    "UNKNOWN_TICKER",
    "detect_ticker_currency",
    "normalize_ticker",
    "parse_boolean",
    "parse_number",
]
