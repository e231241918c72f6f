"""Ledger → transaction timeline, and drill-down aggregation over it.

Every non-zero ledger cell becomes one :class:`TimelineTransaction` dated the
first of its month. Expense amounts are negative and income amounts positive;
aggregations always sum absolute amounts.
"""

from __future__ import annotations

from collections.abc import Sequence

from .cache import AggregationCache
from .models import DimensionBucket, FlowType, LedgerData, TimelineTransaction, TrendPoint
from .temporal import logical_today


def _ledger_transactions(
    ledger: LedgerData | None, flow: FlowType, year: int
) -> list[TimelineTransaction]:
    if ledger is None:
        return []
    out: list[TimelineTransaction] = []
    for category in ledger.categories:
        for sub in category.sub_categories:
            for month_idx, value in enumerate(sub.monthly_values):
                if value == 0:
                    continue
                out.append(
                    TimelineTransaction(
                        id=f"ledger-{flow}-{category.name}-{sub.name}-{month_idx}",
                        date=f"{year}-{month_idx + 1:02d}-01",
                        description=f"{sub.name} ({flow})",
                        category=category.name,
                        sub_category=sub.name,
                        amount=-abs(value) if flow == FlowType.EXPENSE else abs(value),
                        flow=flow,
                    )
                )
    return out


def build_unified_timeline(
    detailed_income: LedgerData | None,
    detailed_expenses: LedgerData | None,
    year: int | None = None,
    *,
    cache: AggregationCache | None = None,
) -> list[TimelineTransaction]:
    """Flatten income and expense ledgers into one newest-first event list.

    Month positions map to calendar months of ``year`` (default: the current
    year). A supplied ``cache`` is cleared, since aggregations over the previous
    timeline are stale.
    """

    if cache is not None:
        cache.clear()
    active_year = year or logical_today().year
    transactions = _ledger_transactions(detailed_income, FlowType.INCOME, active_year)
    transactions += _ledger_transactions(detailed_expenses, FlowType.EXPENSE, active_year)
    transactions.sort(key=lambda t: t.date, reverse=True)
    return transactions


def _norm(text: str | None) -> str:
    return (text or "").strip().lower()


def _matches_path(tx: TimelineTransaction, drill_path: Sequence[str], flow: FlowType) -> bool:
    if tx.flow != flow:
        return False
    if len(drill_path) > 0 and _norm(tx.category) != _norm(drill_path[0]):
        return False
    if len(drill_path) > 1 and _norm(tx.sub_category) != _norm(drill_path[1]):
        return False
    return True


def _aggregate_dimensions(
    timeline: Sequence[TimelineTransaction], drill_path: Sequence[str], flow: FlowType
) -> list[DimensionBucket]:
    depth = len(drill_path)
    groups: dict[str, DimensionBucket] = {}
    for tx in timeline:
        if not _matches_path(tx, drill_path, flow):
            continue
        if depth == 0:
            key = tx.category or "Uncategorized"
        elif depth == 1:
            key = tx.sub_category or "Other"
        elif depth == 2:
            key = tx.date[:7]
        else:
            continue
        bucket = groups.setdefault(key, DimensionBucket(name=key))
        bucket.total += abs(tx.amount)
        bucket.count += 1
    return list(groups.values())


def aggregate_dimensions(
    timeline: Sequence[TimelineTransaction],
    drill_path: Sequence[str],
    flow: FlowType,
    *,
    cache: AggregationCache | None = None,
) -> list[DimensionBucket]:
    """Group ``flow`` transactions one level below ``drill_path``.

    - ``[]`` → by category
    - ``[category]`` → by sub-category within it
    - ``[category, sub_category]`` → by month (``YYYY-MM``)
    """

    if cache is None:
        return _aggregate_dimensions(timeline, drill_path, flow)
    return cache.get_or_compute(
        "aggregate_dimensions",
        [timeline, list(drill_path), flow],
        lambda: _aggregate_dimensions(timeline, drill_path, flow),
    )


def _aggregate_comparative_trend(
    active: Sequence[TimelineTransaction],
    shadow: Sequence[TimelineTransaction],
    drill_path: Sequence[str],
    flow: FlowType,
) -> list[TrendPoint]:
    points: dict[str, TrendPoint] = {}
    for tx in active:
        if _matches_path(tx, drill_path, flow):
            month = tx.date[:7]
            points.setdefault(month, TrendPoint(label=month)).current += abs(tx.amount)
    for tx in shadow:
        if _matches_path(tx, drill_path, flow):
            month = tx.date[:7]
            points.setdefault(month, TrendPoint(label=month)).shadow += abs(tx.amount)
    return sorted(points.values(), key=lambda p: p.label)


def aggregate_comparative_trend(
    active: Sequence[TimelineTransaction],
    shadow: Sequence[TimelineTransaction],
    drill_path: Sequence[str],
    flow: FlowType,
    *,
    cache: AggregationCache | None = None,
) -> list[TrendPoint]:
    """Monthly totals of the active window next to the comparison window."""

    if cache is None:
        return _aggregate_comparative_trend(active, shadow, drill_path, flow)
    return cache.get_or_compute(
        "aggregate_comparative_trend",
        [active, shadow, list(drill_path), flow],
        lambda: _aggregate_comparative_trend(active, shadow, drill_path, flow),
    )


def calculate_dimension_average(
    timeline: Sequence[TimelineTransaction],
    drill_path: Sequence[str],
    flow: FlowType,
    months: int = 12,
) -> float:
    total = sum(abs(tx.amount) for tx in timeline if _matches_path(tx, drill_path, flow))
    return total / (months or 1)


__all__ = [
    "aggregate_comparative_trend",
    "aggregate_dimensions",
    "build_unified_timeline",
    "calculate_dimension_average",
]
