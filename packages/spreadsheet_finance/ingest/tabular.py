"""Line splitting and header resolution shared by every sheet adapter.

Sheets arrive as newline-delimited text. Rows are split one physical line at a
time so that row indices always match the source sheet (edit flows write back
to ``row_index``); quoted fields may embed commas and use ``""`` for a literal
quote, but may not span lines.

Header matching compares *normalized* text: lowercase with every character
outside ``[a-z0-9]`` removed, so ``"Avg. Price"``, ``"avg price"`` and
``"AVG_PRICE"`` are the same header.
"""

from __future__ import annotations

import csv
import re
from collections.abc import Iterable, Sequence
from typing import TypeAlias

from ..logging_setup import get_logger
from ..schemas import FieldType, SchemaDefinition
from ..temporal import parse_flexible

_logger = get_logger("spreadsheet_finance.ingest.tabular")

Row: TypeAlias = list[str]

HEADER_SCAN_LIMIT = 50
DEFAULT_HEADER_THRESHOLD = 2
# Aliases shorter than this only ever match exactly ("ccy" must not match "accycle").
MIN_FUZZY_ALIAS_LENGTH = 4
MONTHLY_HEADER_MAX_COLUMNS = 14
MONTHLY_HEADER_MIN_DATES = 2

_LINE_BREAK_RE = re.compile(r"\r?\n")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]")


# ---------------------------------------------------------------------------
# Splitting
# ---------------------------------------------------------------------------


def split_lines(text: str) -> list[str]:
    """Split raw sheet text into physical lines (``\\n`` or ``\\r\\n``)."""

    return _LINE_BREAK_RE.split(text)


def parse_csv_line(line: str) -> Row:
    """Split one CSV line into trimmed cells.

    Double-quoted fields may contain commas; ``""`` inside a quoted field is a
    literal quote. Whitespace around cells (and before an opening quote) is
    dropped.
    """

    if '"' not in line:
        return [cell.strip() for cell in line.split(",")]
    try:
        cells = next(csv.reader([line], skipinitialspace=True), [])
    except csv.Error:
        _logger.debug("csv_line:unparseable; splitting on commas line=%r", line, exc_info=True)
        return [cell.strip() for cell in line.split(",")]
    return [cell.strip() for cell in cells]


def parse_lines(lines: Iterable[str]) -> list[Row]:
    return [parse_csv_line(line) for line in lines]


def is_blank_row(row: Sequence[str]) -> bool:
    return all(not cell.strip() for cell in row)


# ---------------------------------------------------------------------------
# Header resolution
# ---------------------------------------------------------------------------


def normalize_header(text: str | None) -> str:
    return _NON_ALNUM_RE.sub("", (text or "").lower())


def resolve_column_index(headers: Sequence[str], aliases: Iterable[str]) -> int | None:
    """Return the column index that carries one of ``aliases``.

    Exact normalized matches are tried first for every alias (in order), then
    substring containment for aliases of at least four normalized characters.
    Returns ``None`` when nothing matches.
    """

    normalized_headers = [normalize_header(h) for h in headers]
    normalized_aliases = [normalize_header(a) for a in aliases]

    for alias in normalized_aliases:
        if not alias:
            continue
        for idx, header in enumerate(normalized_headers):
            if header == alias:
                return idx

    for alias in normalized_aliases:
        if len(alias) < MIN_FUZZY_ALIAS_LENGTH:
            continue
        for idx, header in enumerate(normalized_headers):
            if alias in header:
                return idx

    return None


def resolve_indices(headers: Sequence[str], schema: SchemaDefinition) -> dict[str, int | None]:
    """Resolve every field of ``schema`` against one header row."""

    indices = {name: resolve_column_index(headers, fd.aliases) for name, fd in schema.fields.items()}
    unresolved = sorted(name for name, idx in indices.items() if idx is None)
    if unresolved:
        _logger.debug("headers:unresolved schema=%s fields=%s", schema.id, ",".join(unresolved))
    return indices


def find_header_row_index(
    rows: Sequence[Sequence[str]],
    keywords: Iterable[str],
    threshold: int = DEFAULT_HEADER_THRESHOLD,
) -> int | None:
    """Return the first row (within the scan limit) hitting ``threshold`` keywords.

    A keyword counts once per row when any normalized cell contains it.
    """

    normalized_keywords = [k for k in dict.fromkeys(normalize_header(k) for k in keywords) if k]
    for idx, row in enumerate(rows[:HEADER_SCAN_LIMIT]):
        cells = [normalize_header(cell) for cell in row]
        hits = sum(1 for k in normalized_keywords if any(k in cell for cell in cells))
        if hits >= threshold:
            return idx
    return None


def find_schema_header_index(
    rows: Sequence[Sequence[str]],
    schema: SchemaDefinition,
    threshold: int = DEFAULT_HEADER_THRESHOLD,
) -> int:
    """Locate the header row of a registry table described by ``schema``.

    Falls back to the first row holding a date-looking cell when the schema has
    a date field, and to row 0 otherwise.
    """

    found = find_header_row_index(rows, schema.keywords, threshold)
    if found is not None:
        return found

    date_field = schema.fields.get("date")
    if (
        date_field is not None
        and date_field.required
        and date_field.value_type == FieldType.DATE
    ):
        for idx, row in enumerate(rows[:HEADER_SCAN_LIMIT]):
            if any(len(cell) > 5 and parse_flexible(cell) is not None for cell in row):
                return idx
    return 0


def is_monthly_header_row(row: Sequence[str]) -> bool:
    """Return whether ``row`` looks like the month header of a ledger matrix.

    At least two of the cells after the label column (within the first 14
    columns) must parse as dates.
    """

    candidates = row[1:MONTHLY_HEADER_MAX_COLUMNS]
    date_count = sum(1 for cell in candidates if parse_flexible(cell) is not None)
    return date_count >= MONTHLY_HEADER_MIN_DATES


def cell_at(row: Sequence[str], idx: int | None) -> str | None:
    """Return the raw cell at ``idx`` or ``None`` when absent."""

    if idx is None or idx < 0 or idx >= len(row):
        return None
    return row[idx]


__all__ = [
    "DEFAULT_HEADER_THRESHOLD",
    "HEADER_SCAN_LIMIT",
    "Row",
    "cell_at",
    "find_header_row_index",
    "find_schema_header_index",
    "is_blank_row",
    "is_monthly_header_row",
    "normalize_header",
    "parse_csv_line",
    "parse_lines",
    "resolve_column_index",
    "resolve_indices",
    "split_lines",
]
