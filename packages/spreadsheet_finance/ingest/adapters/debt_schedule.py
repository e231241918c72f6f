"""Adapter for the loan/debt schedule tab.

The schedule template has a fixed layout: a title block occupies the first
five rows and data always starts at physical row 5, whatever the header says.

Columns (0-based): 1 = payment date, 2 = starting balance, 3 = monthly
payment, 6 = amount owed.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence

from ...logging_setup import get_logger
from ...models import DebtEntry
from ...normalizers import parse_number
from ...temporal import parse_flexible
from ..tabular import cell_at, is_blank_row

_logger = get_logger("spreadsheet_finance.ingest.adapters.debt_schedule")

DATA_START_ROW = 5

_DATE_COL = 1
_STARTING_BALANCE_COL = 2
_MONTHLY_PAYMENT_COL = 3
_AMOUNT_OWED_COL = 6


def parse_debt_row(row: Sequence[str], row_index: int) -> DebtEntry | None:
    """Map one schedule row; ``None`` when it has no date or no amounts."""

    date_str = (cell_at(row, _DATE_COL) or "").strip()
    parsed = parse_flexible(date_str)
    if parsed is None:
        return None

    starting_balance = parse_number(cell_at(row, _STARTING_BALANCE_COL))
    monthly_payment = parse_number(cell_at(row, _MONTHLY_PAYMENT_COL))
    amount_owed = parse_number(cell_at(row, _AMOUNT_OWED_COL))
    if starting_balance == 0 and monthly_payment == 0 and amount_owed == 0:
        return None

    return DebtEntry(
        id=str(uuid.uuid4()),
        row_index=row_index,
        name=f"Loan Schedule ({date_str})",
        date=parsed,
        starting_balance=starting_balance,
        monthly_payment=monthly_payment,
        amount_owed=amount_owed,
    )


def parse_debt_schedule(rows: Sequence[Sequence[str]]) -> list[DebtEntry]:
    results: list[DebtEntry] = []
    for row_index in range(DATA_START_ROW, len(rows)):
        row = rows[row_index]
        if is_blank_row(row):
            continue
        entry = parse_debt_row(row, row_index)
        if entry is not None:
            results.append(entry)
    _logger.info("debt:parsed entries=%d", len(results))
    return results


__all__ = ["DATA_START_ROW", "parse_debt_row", "parse_debt_schedule"]
