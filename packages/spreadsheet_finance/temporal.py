"""Date parsing and "logical today" resolution.

Spreadsheet dates arrive in whatever shape the author typed: ISO-ish
``2024/01/05``, month shorthand column headers like ``Jan-24``, US-style
``1/5/2024`` or long-form ``January 5, 2024``. :func:`parse_flexible` folds all
of those into a :class:`datetime.date` and returns ``None`` for anything else.

When a user views an archived fiscal year, "today" for windowing purposes is
pinned to the last second of that year (see :func:`logical_today`) so that
month-to-date, quarter-to-date and rolling windows behave identically for live
and historical views.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import StrEnum

MONTH_NAMES: tuple[str, ...] = (
    "jan", "feb", "mar", "apr", "may", "jun",
    "jul", "aug", "sep", "oct", "nov", "dec",
)

_PLACEHOLDER = "yyyy-mm-dd"
_ISO_LIKE_RE = re.compile(r"^(\d{4})[\-/.](\d{1,2})[\-/.](\d{1,2})")
_MONTH_YEAR_RE = re.compile(r"^([A-Za-z]{3})[\-/](\d{2,4})$")

# Generic fallback formats; bare numbers are deliberately absent so that values
# like "2500" in a ledger body are never mistaken for dates.
_FALLBACK_FORMATS: tuple[str, ...] = (
    "%m/%d/%Y",
    "%m/%d/%y",
    "%m-%d-%Y",
    "%m-%d-%y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%B %d %Y",
    "%b %d %Y",
    "%d %B %Y",
    "%d %b %Y",
    "%d-%b-%Y",
    "%d-%b-%y",
    "%B %Y",
    "%b %Y",
    "%a %b %d %Y",
)
_MIN_FALLBACK_YEAR = 1990

_STRICT_ISO_RE = re.compile(r"^\d{4}[-/]\d{1,2}[-/]\d{1,2}$")
_STRICT_SHORT_RE = re.compile(r"^\d{1,2}[-/]\d{1,2}[-/]\d{2,4}$")
_STRICT_LONG_RE = re.compile(r"^[A-Za-z]{3,9}\s+\d{1,2},?\s+\d{4}$")


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def _rolled_date(year: int, month: int, day: int) -> date | None:
    # Days past the end of the month roll into the next one (2024-02-31 →
    # 2024-03-02), the way spreadsheet tools interpret them.
    try:
        return date(year, month, 1) + timedelta(days=day - 1)
    except (ValueError, OverflowError):
        return None


def _parse_fallback(text: str) -> date | None:
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        parsed = None
    if parsed is None:
        for fmt in _FALLBACK_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue
    if parsed is None or parsed.year <= _MIN_FALLBACK_YEAR:
        return None
    return parsed.date()


def parse_flexible(raw: str | None) -> date | None:
    """Parse a free-form date cell; return ``None`` when it is not a date.

    Order of attempts:

    1. reject template placeholders such as ``"YYYY-MM-DD"``;
    2. ``Y-M-D`` with ``-``, ``/`` or ``.`` separators (month 1–12, day 1–31);
    3. three-letter month + year shorthand (``"Jan-24"`` → 2024-01-01);
    4. a generic parse, accepted only when the year is after 1990.
    """

    if not raw or len(raw) < 2:
        return None
    clean = raw.strip()
    if _PLACEHOLDER in clean.lower():
        return None

    iso = _ISO_LIKE_RE.match(clean)
    if iso:
        y, m, d = (int(g) for g in iso.groups())
        if 1 <= m <= 12 and 1 <= d <= 31:
            rolled = _rolled_date(y, m, d)
            if rolled is not None:
                return rolled

    month_year = _MONTH_YEAR_RE.match(clean)
    if month_year:
        m_str, y_str = month_year.groups()
        m_str = m_str.lower()
        if m_str in MONTH_NAMES:
            year = 2000 + int(y_str) if len(y_str) == 2 else int(y_str)
            rolled = _rolled_date(year, MONTH_NAMES.index(m_str) + 1, 1)
            if rolled is not None:
                return rolled

    return _parse_fallback(clean)


def is_strict_date_marker(value: str | None) -> bool:
    """Return whether ``value`` is unambiguously a whole date token.

    Used as a structural guard: a ledger label that is itself a date marks the
    start of a different section of the sheet.
    """

    clean = (value or "").strip()
    if len(clean) < 6:
        return False
    return bool(
        _STRICT_ISO_RE.match(clean) or _STRICT_SHORT_RE.match(clean) or _STRICT_LONG_RE.match(clean)
    )


def to_iso(value: date | datetime) -> str:
    """Return ``YYYY-MM-DD`` for a date or datetime."""

    if isinstance(value, datetime):
        value = value.date()
    return value.isoformat()


# ---------------------------------------------------------------------------
# Logical today and month arithmetic
# ---------------------------------------------------------------------------


def logical_today(context_year: int | None = None, *, now: datetime | None = None) -> datetime:
    """Return the instant treated as "now" for the viewed fiscal year.

    The real clock when ``context_year`` is the current year (or omitted);
    otherwise December 31 of ``context_year`` at 23:59:59.
    """

    current = now or datetime.now()
    year = context_year or current.year
    if year == current.year:
        return current
    return datetime(year, 12, 31, 23, 59, 59)


def logical_today_iso(context_year: int | None = None, *, now: datetime | None = None) -> str:
    return to_iso(logical_today(context_year, now=now))


def _year_month(value: str | date) -> tuple[int, int] | None:
    if isinstance(value, date):
        return value.year, value.month
    iso = _ISO_LIKE_RE.match(value.strip())
    if iso and 1 <= int(iso.group(2)) <= 12:
        return int(iso.group(1)), int(iso.group(2))
    parsed = parse_flexible(value)
    if parsed is None:
        return None
    return parsed.year, parsed.month


def month_offset(target: str | date, reference: str | date) -> int | None:
    """Whole months from ``target`` to ``reference`` using calendar fields only.

    ``month_offset("2024-01-31", "2024-03-01") == 2``; day-of-month and time
    of day never influence the result.

    Strings are read with :func:`parse_flexible`; ``None`` when either side
    is not a date.
    """

    target_ym = _year_month(target)
    reference_ym = _year_month(reference)
    if target_ym is None or reference_ym is None:
        return None
    t_year, t_month = target_ym
    r_year, r_month = reference_ym
    return (r_year - t_year) * 12 + (r_month - t_month)


# ---------------------------------------------------------------------------
# Reporting windows
# ---------------------------------------------------------------------------


class TimeFocus(StrEnum):
    MTD = "MTD"
    QTD = "QTD"
    YTD = "YTD"
    ROLLING_12M = "ROLLING_12M"
    FULL_YEAR = "FULL_YEAR"
    CUSTOM = "CUSTOM"


@dataclass(frozen=True, slots=True)
class DateRange:
    """Inclusive ISO date range."""

    start: str
    end: str


@dataclass(frozen=True, slots=True)
class TemporalWindows:
    current: DateRange
    shadow: DateRange
    label: str


def _month_start(year: int, month0: int) -> date:
    # ``month0`` is zero-based and may over/underflow into adjacent years.
    year += month0 // 12
    return date(year, month0 % 12 + 1, 1)


def _one_year_earlier(value: date) -> date:
    try:
        return value.replace(year=value.year - 1)
    except ValueError:
        # Feb 29 has no counterpart in the previous year.
        return date(value.year - 1, 3, 1)


def is_date_in_window(
    date_str: str | date | None,
    focus: TimeFocus,
    custom_range: DateRange | None = None,
    context_year: int | None = None,
    *,
    now: datetime | None = None,
) -> bool:
    """Return whether ``date_str`` falls inside the reporting window ``focus``."""

    if not date_str or focus == TimeFocus.FULL_YEAR:
        return True
    clean = to_iso(date_str) if isinstance(date_str, date) else date_str.split("T")[0].strip()

    if focus == TimeFocus.CUSTOM and custom_range is not None:
        return custom_range.start <= clean <= custom_range.end

    today = logical_today(context_year, now=now).date()
    today_iso = today.isoformat()

    match focus:
        case TimeFocus.MTD:
            start = _month_start(today.year, today.month - 1)
        case TimeFocus.QTD:
            start = _month_start(today.year, ((today.month - 1) // 3) * 3)
        case TimeFocus.YTD:
            start = date(today.year, 1, 1)
        case TimeFocus.ROLLING_12M:
            start = _one_year_earlier(today)
        case _:
            return True
    return start.isoformat() <= clean <= today_iso


def temporal_windows(
    focus: TimeFocus,
    custom_range: DateRange | None = None,
    context_year: int | None = None,
    *,
    now: datetime | None = None,
) -> TemporalWindows:
    """Return the active window and the comparison ("shadow") window before it."""

    today = logical_today(context_year, now=now).date()
    month0 = today.month - 1

    current_start = current_end = shadow_start = shadow_end = today
    label = "previous period"

    match focus:
        case TimeFocus.MTD:
            current_start = _month_start(today.year, month0)
            shadow_start = _month_start(today.year, month0 - 1)
            shadow_end = current_start - timedelta(days=1)
            label = "last month"
        case TimeFocus.QTD:
            quarter = month0 // 3
            current_start = _month_start(today.year, quarter * 3)
            shadow_start = _month_start(today.year, (quarter - 1) * 3)
            shadow_end = current_start - timedelta(days=1)
            label = "last quarter"
        case TimeFocus.YTD:
            current_start = date(today.year, 1, 1)
            shadow_start = date(today.year - 1, 1, 1)
            shadow_end = date(today.year - 1, 12, 31)
            label = "last year"
        case TimeFocus.ROLLING_12M:
            current_start = _month_start(today.year - 1, month0)
            shadow_start = _month_start(today.year - 2, month0)
            shadow_end = current_start - timedelta(days=1)
            label = "previous 12 months"
        case TimeFocus.CUSTOM:
            start = parse_flexible(custom_range.start) if custom_range else None
            end = parse_flexible(custom_range.end) if custom_range else None
            if start is not None and end is not None:
                current_start, current_end = start, end
                shadow_start = start - (end - start)
                shadow_end = start - timedelta(days=1)
                label = "previous custom window"
        case _:
            current_start = date(today.year - 10, 1, 1)
            label = "the past"

    return TemporalWindows(
        current=DateRange(current_start.isoformat(), current_end.isoformat()),
        shadow=DateRange(shadow_start.isoformat(), shadow_end.isoformat()),
        label=label,
    )


__all__ = [
    "MONTH_NAMES",
    "DateRange",
    "TemporalWindows",
    "TimeFocus",
    "is_date_in_window",
    "is_strict_date_marker",
    "logical_today",
    "logical_today_iso",
    "month_offset",
    "parse_flexible",
    "temporal_windows",
    "to_iso",
]
