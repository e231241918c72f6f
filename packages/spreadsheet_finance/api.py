"""Public entry point for sheet ingestion.

``parse_raw_data(raw_text, data_type)`` routes raw sheet text to the parser for
that sheet shape:

- ledger matrices (``income``, ``detailedIncome``, ``detailedExpenses``);
- fixed-offset and dynamic-column tables (``debt``, ``portfolioLog``);
- every other type goes through the schema-driven Universal Row Parser.

Empty text, or text with fewer than two lines, yields the empty result for the
type. Data problems never raise; an unknown ``data_type`` does.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from .config import Settings, load_settings
from .ingest.adapters.debt_schedule import parse_debt_schedule
from .ingest.adapters.ledger_matrix import (
    parse_detailed_expenses,
    parse_detailed_income,
    parse_income_and_expenses,
)
from .ingest.adapters.portfolio_log import parse_portfolio_log
from .ingest.adapters.universal import UniversalParser
from .ingest.tabular import find_schema_header_index, parse_lines, split_lines
from .logging_setup import get_logger
from .models import IncomeAndExpenses, LedgerData
from .schemas import REGISTRY_SCHEMAS

_logger = get_logger("spreadsheet_finance.api")


class DataType(StrEnum):
    ASSETS = "assets"
    INVESTMENTS = "investments"
    TRADES = "trades"
    SUBSCRIPTIONS = "subscriptions"
    ACCOUNTS = "accounts"
    JOURNAL = "journal"
    LOG_DATA = "logData"
    PORTFOLIO_LOG = "portfolioLog"
    DEBT = "debt"
    INCOME = "income"
    DETAILED_INCOME = "detailedIncome"
    DETAILED_EXPENSES = "detailedExpenses"


def _coerce_data_type(data_type: DataType | str) -> DataType:
    if isinstance(data_type, DataType):
        return data_type
    try:
        return DataType(data_type)
    except ValueError:
        valid = ", ".join(dt.value for dt in DataType)
        raise ValueError(f"Unknown data type {data_type!r}; expected one of: {valid}") from None


def empty_result(data_type: DataType | str) -> Any:
    """Return the empty value callers receive for ``data_type``."""

    match _coerce_data_type(data_type):
        case DataType.INCOME:
            return IncomeAndExpenses()
        case DataType.DETAILED_INCOME | DataType.DETAILED_EXPENSES:
            return LedgerData()
        case _:
            return []


def parse_raw_data(
    raw_text: str | None,
    data_type: DataType | str,
    *,
    settings: Settings | None = None,
) -> Any:
    """Parse raw sheet text as ``data_type``.

    Parameters
    ----------
    raw_text:
        Newline-delimited CSV text exported from the sheet.
    data_type:
        A :class:`DataType` or its string value (e.g. ``"trades"``).
    settings:
        Optional settings; defaults to :func:`config.load_settings`.

    Returns
    -------
    list | LedgerData | IncomeAndExpenses
        Entities for registry types, a ledger for ``detailedIncome`` /
        ``detailedExpenses`` and an :class:`IncomeAndExpenses` for ``income``.

    Raises
    ------
    ValueError
        If ``data_type`` is not a known type.
    """

    dt = _coerce_data_type(data_type)
    if not raw_text:
        return empty_result(dt)
    lines = split_lines(raw_text)
    if len(lines) < 2:
        return empty_result(dt)

    match dt:
        case DataType.INCOME:
            return parse_income_and_expenses(lines)
        case DataType.DETAILED_EXPENSES:
            return parse_detailed_expenses(lines)
        case DataType.DETAILED_INCOME:
            return parse_detailed_income(lines)

    cfg = settings or load_settings()
    rows = parse_lines(lines)

    match dt:
        case DataType.DEBT:
            return parse_debt_schedule(rows)
        case DataType.PORTFOLIO_LOG:
            return parse_portfolio_log(rows, header_threshold=cfg.header_threshold)

    schema = REGISTRY_SCHEMAS[dt.value]
    header_index = find_schema_header_index(rows, schema, threshold=cfg.header_threshold)
    _logger.debug("parse:header data_type=%s header_index=%d", dt, header_index)
    return UniversalParser.parse(rows, header_index, schema)


__all__ = ["DataType", "empty_result", "parse_raw_data"]
