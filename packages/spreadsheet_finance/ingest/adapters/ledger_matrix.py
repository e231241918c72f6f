"""Ledger Matrix Parser: category × month income and expense sheets.

A ledger is a hierarchy rather than a flat table::

    SPENDING LEDGER - FY 2024
    Category,Jan-24,Feb-24,Mar-24
    HOUSING,,,
      Rent,2500,2500,2500
      Utilities,150.50,120,130
    FOOD & DINING,,,
      Groceries,500.25,450,600.10

Contract
--------
- The header is a "monthly header" row: at least two date cells among its
  first fourteen columns (see :func:`..tabular.is_monthly_header_row`).
- When a sheet holds both an income and an expense matrix, the header row's
  label and the label of the row above it decide which one belongs to the
  requested mode. Rows keyed to the opposite mode are skipped; a neutral row is
  used only when no keyword match exists.
- Below the header, a blank label or a label that is itself a date ends the
  table. Rows named ``total`` or containing ``summary`` are skipped.
- Expense mode: a row without values opens a parent category; a row with values
  is a sub-item of the latest parent. Income mode: every row with values is a
  sub-item of the single category ``"Income Sources"``.
- Values are absolute; a category is emitted only when it has sub-items.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import StrEnum

from ...logging_setup import get_logger
from ...models import (
    ExpenseEntry,
    IncomeAndExpenses,
    IncomeEntry,
    LedgerCategory,
    LedgerData,
    LedgerItem,
)
from ...normalizers import parse_number
from ...temporal import is_strict_date_marker, parse_flexible
from ..tabular import cell_at, is_monthly_header_row, parse_lines

_logger = get_logger("spreadsheet_finance.ingest.adapters.ledger_matrix")

LEDGER_HEADER_SCAN_LIMIT = 100
INCOME_CATEGORY_NAME = "Income Sources"

_INCOME_KEYWORDS = ("income", "revenue")
_EXPENSE_KEYWORDS = ("expense", "spending")


class LedgerMode(StrEnum):
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


# ---------------------------------------------------------------------------
# Header discovery
# ---------------------------------------------------------------------------


def _has_keyword(text: str, keywords: Sequence[str]) -> bool:
    return any(k in text for k in keywords)


def find_ledger_header_index(rows: Sequence[Sequence[str]], mode: LedgerMode) -> int | None:
    """Return the month header row for ``mode`` or ``None`` when absent."""

    wanted, opposite = (
        (_INCOME_KEYWORDS, _EXPENSE_KEYWORDS)
        if mode == LedgerMode.INCOME
        else (_EXPENSE_KEYWORDS, _INCOME_KEYWORDS)
    )
    neutral: int | None = None

    for idx, row in enumerate(rows[:LEDGER_HEADER_SCAN_LIMIT]):
        if not is_monthly_header_row(row):
            continue
        context = [(cell_at(row, 0) or "").lower()]
        if idx > 0:
            context.append((cell_at(rows[idx - 1], 0) or "").lower())

        if any(_has_keyword(text, wanted) for text in context):
            return idx
        if any(_has_keyword(text, opposite) for text in context):
            continue
        if neutral is None:
            neutral = idx
    return neutral


# ---------------------------------------------------------------------------
# Matrix body
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class _OpenCategory:
    name: str
    row_index: int | None
    items: list[LedgerItem] = field(default_factory=list)

    def close(self) -> LedgerCategory:
        return LedgerCategory.from_items(self.name, self.items, self.row_index)


def parse_ledger_rows(rows: Sequence[Sequence[str]], mode: LedgerMode) -> LedgerData:
    """Parse already-split rows as a ledger matrix in ``mode``."""

    header_idx = find_ledger_header_index(rows, mode)
    if header_idx is None:
        _logger.debug("ledger:no_header mode=%s rows=%d", mode, len(rows))
        return LedgerData()

    header = rows[header_idx]
    months: list[str] = []
    month_columns: list[int] = []
    for idx, label in enumerate(header):
        if idx > 0 and parse_flexible(label) is not None:
            months.append(label)
            month_columns.append(idx)

    categories: list[LedgerCategory] = []
    current: _OpenCategory | None = (
        _OpenCategory(INCOME_CATEGORY_NAME, None) if mode == LedgerMode.INCOME else None
    )

    for row_index in range(header_idx + 1, len(rows)):
        row = rows[row_index]
        name = (cell_at(row, 0) or "").strip()
        if not name or is_strict_date_marker(name):
            break
        lowered = name.lower()
        if lowered == "total" or "summary" in lowered:
            continue

        values = [abs(parse_number(cell_at(row, col))) for col in month_columns]
        has_data = sum(values) != 0

        if mode == LedgerMode.INCOME:
            if has_data and current is not None:
                current.items.append(LedgerItem.from_values(name, values, row_index))
            continue

        if not has_data:
            if current is not None and current.items:
                categories.append(current.close())
            current = _OpenCategory(name, row_index)
        elif current is None:
            # Values before any parent row: the row heads its own category.
            current = _OpenCategory(name, row_index)
            current.items.append(LedgerItem.from_values(name, values, row_index))
        else:
            current.items.append(LedgerItem.from_values(name, values, row_index))

    if current is not None and current.items:
        categories.append(current.close())

    _logger.info(
        "ledger:parsed mode=%s header_index=%d months=%d categories=%d",
        mode,
        header_idx,
        len(months),
        len(categories),
    )
    return LedgerData(months=months, categories=categories)


def parse_detailed_income(lines: Sequence[str]) -> LedgerData:
    return parse_ledger_rows(parse_lines(lines), LedgerMode.INCOME)


def parse_detailed_expenses(lines: Sequence[str]) -> LedgerData:
    return parse_ledger_rows(parse_lines(lines), LedgerMode.EXPENSE)


# ---------------------------------------------------------------------------
# Summary sheet (monthly income row + expense category rows)
# ---------------------------------------------------------------------------

_INCOME_LABEL_PRIORITY = {"total income": 100}
_ANNUAL_SNAPSHOT_LABEL = "annual snapshot"
_ANNUAL_SNAPSHOT_PRIORITY = 90
_SUMMARY_EXCLUDES = (
    "net income",
    "monthly savings",
    "balance",
    "expense categorie",
    "income categories",
    "summary",
    "spending ledger",
)
_SECTION_HEADERS = frozenset({"expenses", "income", "total"})


def _has_values(row: Sequence[str]) -> bool:
    return any(parse_number(value) != 0 for value in row[1:])


def _income_priority(label: str) -> int:
    if label in _INCOME_LABEL_PRIORITY:
        return _INCOME_LABEL_PRIORITY[label]
    if _ANNUAL_SNAPSHOT_LABEL in label:
        return _ANNUAL_SNAPSHOT_PRIORITY
    return 0


def _is_expense_label(label: str) -> bool:
    if not label or "income" in label or "total" in label:
        return False
    if label in _SECTION_HEADERS:
        return False
    return not any(key in label for key in _SUMMARY_EXCLUDES)


def parse_income_and_expenses(lines: Sequence[str]) -> IncomeAndExpenses:
    """Parse a summary sheet into monthly income and expense entries.

    The best-ranked ``Total Income`` (or ``Annual Snapshot``) row supplies one
    income entry per month column of the month header above it. Every other
    labelled row with values below a month header is an expense category; each
    month with a non-zero total yields one expense entry. Both lists are sorted
    by date.
    """

    rows = parse_lines(lines)
    date_rows: list[int] = []
    best_income_row: int | None = None
    best_priority = 0
    expense_rows: list[tuple[str, int]] = []

    for idx, row in enumerate(rows):
        first = (cell_at(row, 0) or "").strip()
        label = first.lower()

        if is_monthly_header_row(row):
            # A month header is never itself an income or expense row.
            date_rows.append(idx)
            continue

        priority = _income_priority(label)
        if priority:
            if _has_values(row) and priority > best_priority:
                best_income_row, best_priority = idx, priority
            continue

        if _is_expense_label(label) and _has_values(row) and date_rows:
            expense_rows.append((first, idx))

    income: list[IncomeEntry] = []
    if best_income_row is not None and date_rows:
        date_row_idx = next((i for i in date_rows if i < best_income_row), date_rows[0])
        date_row = rows[date_row_idx]
        value_row = rows[best_income_row]
        for col in range(1, len(date_row)):
            parsed = parse_flexible(date_row[col])
            if parsed is not None:
                income.append(
                    IncomeEntry(
                        date=parsed,
                        month_str=date_row[col],
                        amount=parse_number(cell_at(value_row, col)),
                    )
                )

    expenses: list[ExpenseEntry] = []
    if expense_rows and date_rows:
        date_row = rows[date_rows[0]]
        for col in range(1, len(date_row)):
            parsed = parse_flexible(date_row[col])
            if parsed is None:
                continue
            breakdown: dict[str, float] = {}
            for name, row_idx in expense_rows:
                breakdown[name] = abs(parse_number(cell_at(rows[row_idx], col)))
            total = sum(breakdown.values())
            if total > 0:
                expenses.append(
                    ExpenseEntry(
                        date=parsed, month_str=date_row[col], categories=breakdown, total=total
                    )
                )

    income.sort(key=lambda e: e.date)
    expenses.sort(key=lambda e: e.date)
    _logger.info("summary:parsed income=%d expenses=%d", len(income), len(expenses))
    return IncomeAndExpenses(income=income, expenses=expenses)


__all__ = [
    "INCOME_CATEGORY_NAME",
    "LedgerMode",
    "find_ledger_header_index",
    "parse_detailed_expenses",
    "parse_detailed_income",
    "parse_income_and_expenses",
    "parse_ledger_rows",
]
