from __future__ import annotations

import pytest

from spreadsheet_finance.cache import AggregationCache
from spreadsheet_finance.models import (
    FlowType,
    LedgerCategory,
    LedgerData,
    LedgerItem,
    TimelineTransaction,
)
from spreadsheet_finance.timeline import (
    aggregate_comparative_trend,
    aggregate_dimensions,
    build_unified_timeline,
    calculate_dimension_average,
)

MONTHS = ["Jan-24", "Feb-24", "Mar-24"]

EXPENSES = LedgerData(
    months=MONTHS,
    categories=[
        LedgerCategory.from_items(
            "HOUSING",
            [
                LedgerItem.from_values("Rent", [2500.0, 2500.0, 0.0]),
                LedgerItem.from_values("Utilities", [150.0, 0.0, 130.0]),
            ],
        ),
        LedgerCategory.from_items("FOOD", [LedgerItem.from_values("Groceries", [500.0, 0.0, 0.0])]),
    ],
)
INCOME = LedgerData(
    months=MONTHS,
    categories=[
        LedgerCategory.from_items(
            "Income Sources", [LedgerItem.from_values("Salary", [5000.0, 5000.0, 5000.0])]
        )
    ],
)


def _timeline() -> list[TimelineTransaction]:
    return build_unified_timeline(INCOME, EXPENSES, 2024)


def test_timeline_flattens_non_zero_cells_newest_first():
    timeline = _timeline()

    assert len(timeline) == 3 + 5
    dates = [tx.date for tx in timeline]
    assert dates == sorted(dates, reverse=True)
    assert dates[0] == "2024-03-01"


def test_timeline_signs_and_ids():
    by_id = {tx.id: tx for tx in _timeline()}

    rent = by_id["ledger-EXPENSE-HOUSING-Rent-1"]
    assert rent.amount == -2500.0
    assert rent.date == "2024-02-01"
    assert rent.flow == FlowType.EXPENSE
    assert rent.description == "Rent (EXPENSE)"

    salary = by_id["ledger-INCOME-Income Sources-Salary-0"]
    assert salary.amount == 5000.0
    assert salary.category == "Income Sources"


def test_timeline_handles_missing_ledgers_and_clears_cache():
    cache = AggregationCache()
    cache.get_or_compute("stale", [], lambda: 1)

    assert build_unified_timeline(None, None, 2024, cache=cache) == []
    assert len(cache) == 0


def test_aggregate_dimensions_by_category_sub_category_and_month():
    timeline = _timeline()

    top = {b.name: (b.total, b.count) for b in aggregate_dimensions(timeline, [], FlowType.EXPENSE)}
    assert top == {"HOUSING": (5280.0, 4), "FOOD": (500.0, 1)}

    subs = aggregate_dimensions(timeline, ["housing"], FlowType.EXPENSE)
    assert {b.name: b.total for b in subs} == {"Rent": 5000.0, "Utilities": 280.0}

    months = aggregate_dimensions(timeline, ["HOUSING", "Utilities"], FlowType.EXPENSE)
    assert {b.name: b.total for b in months} == {"2024-03": 130.0, "2024-01": 150.0}


def test_aggregate_dimensions_uses_cache():
    cache = AggregationCache()
    timeline = _timeline()

    first = aggregate_dimensions(timeline, [], FlowType.INCOME, cache=cache)
    second = aggregate_dimensions(timeline, [], FlowType.INCOME, cache=cache)

    assert first is second
    assert len(cache) == 1
    assert [(b.name, b.total) for b in first] == [("Income Sources", 15000.0)]


def test_aggregate_comparative_trend_aligns_months():
    timeline = _timeline()
    active = [tx for tx in timeline if tx.date >= "2024-02-01"]
    shadow = [tx for tx in timeline if tx.date < "2024-02-01"]

    trend = aggregate_comparative_trend(active, shadow, ["HOUSING"], FlowType.EXPENSE)

    assert [(p.label, p.current, p.shadow) for p in trend] == [
        ("2024-01", 0.0, 2650.0),
        ("2024-02", 2500.0, 0.0),
        ("2024-03", 130.0, 0.0),
    ]


def test_calculate_dimension_average():
    timeline = _timeline()
    assert calculate_dimension_average(timeline, ["FOOD"], FlowType.EXPENSE) == pytest.approx(
        500.0 / 12
    )
    assert calculate_dimension_average(timeline, [], FlowType.INCOME, months=3) == 5000.0
