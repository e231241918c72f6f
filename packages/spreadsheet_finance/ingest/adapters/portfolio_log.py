"""Adapter for the portfolio log: one ``Date`` column plus per-account columns.

Users add a ``"<Account> Value"`` column whenever they open an account, so the
account set is discovered from the header row at parse time. The first
``VALUE`` word is dropped from each header to form the account name
(``"TFSA Value"`` → ``"TFSA"``).
"""

from __future__ import annotations

import re
import uuid
from collections.abc import Sequence

from ...logging_setup import get_logger
from ...models import PortfolioLogEntry
from ...normalizers import parse_number
from ...schemas import REGISTRY_SCHEMAS
from ...temporal import parse_flexible
from ..tabular import (
    DEFAULT_HEADER_THRESHOLD,
    cell_at,
    find_schema_header_index,
    normalize_header,
)

_logger = get_logger("spreadsheet_finance.ingest.adapters.portfolio_log")

_VALUE_WORD_RE = re.compile(r"\s*VALUE\s*", re.IGNORECASE)


def account_columns(headers: Sequence[str], date_idx: int) -> list[tuple[str, int]]:
    """Return ``(account name, column index)`` for every non-date header."""

    columns: list[tuple[str, int]] = []
    for idx, header in enumerate(headers):
        if idx == date_idx or not header.strip():
            continue
        name = _VALUE_WORD_RE.sub("", header, count=1).strip()
        if name:
            columns.append((name, idx))
    return columns


def parse_portfolio_log(
    rows: Sequence[Sequence[str]],
    *,
    header_threshold: int = DEFAULT_HEADER_THRESHOLD,
) -> list[PortfolioLogEntry]:
    """Parse dated account balances; rows without a parseable date are skipped."""

    if not rows:
        return []
    header_idx = find_schema_header_index(
        rows, REGISTRY_SCHEMAS["portfolioLog"], threshold=header_threshold
    )
    headers = rows[header_idx]
    date_idx = next((i for i, h in enumerate(headers) if normalize_header(h) == "date"), None)
    if date_idx is None:
        _logger.debug("portfolio_log:no_date_column header_index=%d", header_idx)
        return []

    columns = account_columns(headers, date_idx)
    results: list[PortfolioLogEntry] = []
    for row_index in range(header_idx + 1, len(rows)):
        row = rows[row_index]
        parsed = parse_flexible(cell_at(row, date_idx))
        if parsed is None:
            continue
        accounts = {name: parse_number(cell_at(row, idx)) for name, idx in columns}
        results.append(
            PortfolioLogEntry(
                id=str(uuid.uuid4()), row_index=row_index, date=parsed, accounts=accounts
            )
        )

    _logger.info("portfolio_log:parsed entries=%d accounts=%d", len(results), len(columns))
    return results


__all__ = ["account_columns", "parse_portfolio_log"]
