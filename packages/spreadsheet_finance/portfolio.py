"""Portfolio Reconciler and portfolio-log history helpers.

Snapshot positions come from the holdings sheet; trades are an append-only log
of what happened since. Reconciliation adds each ticker's net trade volume to
its snapshot quantity, split across accounts in proportion to what each
account already holds, so that for every ticker::

    sum(reconciled quantities) == sum(snapshot quantities) + net trade volume
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime

from .logging_setup import get_logger
from .models import (
    Investment,
    PortfolioAttribution,
    PortfolioHistory,
    PortfolioHistoryPoint,
    PortfolioLogEntry,
    Trade,
    TradeSide,
)
from .normalizers import detect_ticker_currency, normalize_ticker
from .temporal import DateRange, TimeFocus, is_date_in_window

_logger = get_logger("spreadsheet_finance.portfolio")

DERIVED_ACCOUNT = "Trade Derived"
# Net trade volume below this is a fully closed position.
QUANTITY_EPSILON = 1e-6


# ---------------------------------------------------------------------------
# Reconciliation
# ---------------------------------------------------------------------------


def net_trade_quantities(trades: Iterable[Trade]) -> dict[str, float]:
    """Return signed net volume per normalized ticker (BUY adds, SELL subtracts)."""

    net: dict[str, float] = {}
    for trade in trades:
        qty = abs(trade.quantity)
        if qty == 0:
            continue
        ticker = normalize_ticker(trade.ticker)
        signed = qty if trade.side == TradeSide.BUY else -qty
        net[ticker] = net.get(ticker, 0.0) + signed
    return net


def _derived_position(ticker: str, quantity: float) -> Investment:
    return Investment(
        id=f"derived-{ticker}",
        ticker=ticker,
        name=ticker,
        quantity=quantity,
        avg_price=0.0,
        current_price=0.0,
        account_name=DERIVED_ACCOUNT,
        asset_class="Other",
        native_currency=detect_ticker_currency(ticker),
    )


def reconcile_investments(
    investments: Sequence[Investment], trades: Iterable[Trade]
) -> list[Investment]:
    """Merge snapshot positions with trade-derived deltas.

    - Tickers held in the snapshot get their net trade volume distributed by
      each account's share of the ticker's snapshot total. When that total is
      exactly zero (placeholder rows) the first account takes the whole delta.
    - Tickers only seen in trades become one position in the
      ``"Trade Derived"`` account, unless their net volume is ~0.

    Per ticker, the reconciled quantities sum to the snapshot total plus the net
    trade volume up to float rounding of the proportional shares.

    Snapshot groups keep their sheet order; derived positions follow in order of
    first trade.
    """

    remaining = net_trade_quantities(trades)

    groups: dict[str, list[Investment]] = {}
    for inv in investments:
        groups.setdefault(normalize_ticker(inv.ticker), []).append(inv)

    result: list[Investment] = []
    for ticker, group in groups.items():
        net = remaining.pop(ticker, 0.0)
        total = sum(inv.quantity for inv in group)
        if total == 0:
            for idx, inv in enumerate(group):
                result.append(inv.model_copy(update={"quantity": net if idx == 0 else 0.0}))
        else:
            for inv in group:
                share = net * inv.quantity / total
                result.append(inv.model_copy(update={"quantity": inv.quantity + share}))

    derived = 0
    for ticker, net in remaining.items():
        if abs(net) < QUANTITY_EPSILON:
            continue
        result.append(_derived_position(ticker, net))
        derived += 1

    _logger.info(
        "reconcile:complete positions=%d tickers=%d derived=%d",
        len(result),
        len(groups),
        derived,
    )
    return result


# ---------------------------------------------------------------------------
# Portfolio log history
# ---------------------------------------------------------------------------


def process_portfolio_history(
    history: Sequence[PortfolioLogEntry],
    focus: TimeFocus,
    custom_range: DateRange | None = None,
    context_year: int | None = None,
    *,
    now: datetime | None = None,
) -> PortfolioHistory:
    """Return in-window log points with totals and % change vs the first point.

    ``account_keys`` lists every account seen anywhere in ``history`` (sorted),
    even when the window itself is empty.
    """

    if not history:
        return PortfolioHistory()

    account_keys = tuple(
        sorted({key for entry in history for key in entry.accounts if key.strip()})
    )
    ordered = sorted(history, key=lambda e: e.date)
    in_window = [
        entry
        for entry in ordered
        if is_date_in_window(entry.date, focus, custom_range, context_year, now=now)
    ]
    if not in_window:
        return PortfolioHistory(account_keys=account_keys)

    anchor_total = sum(in_window[0].accounts.values())
    points = []
    for entry in in_window:
        total = sum(entry.accounts.values())
        change = (total - anchor_total) / anchor_total * 100 if anchor_total > 0 else 0.0
        points.append(
            PortfolioHistoryPoint(
                date=entry.date,
                accounts=dict(entry.accounts),
                total_value=total,
                percent_change=change,
            )
        )
    return PortfolioHistory(points=tuple(points), account_keys=account_keys)


def calculate_portfolio_attribution(
    points: Sequence[PortfolioHistoryPoint],
    trades: Iterable[Trade],
    focus: TimeFocus,
    custom_range: DateRange | None = None,
    override_end_value: float | None = None,
    context_year: int | None = None,
    *,
    now: datetime | None = None,
) -> PortfolioAttribution | None:
    """Split growth between the first and last point into contributions and alpha.

    Contributions are BUY totals minus SELL totals of trades inside the window;
    market alpha is whatever growth remains. Returns ``None`` without points.
    """

    if not points:
        return None

    start_value = points[0].total_value
    end_value = override_end_value if override_end_value is not None else points[-1].total_value
    growth = end_value - start_value

    contributions = 0.0
    for trade in trades:
        if not is_date_in_window(trade.date, focus, custom_range, context_year, now=now):
            continue
        amount = abs(trade.total)
        contributions += amount if trade.side == TradeSide.BUY else -amount

    alpha = growth - contributions
    return PortfolioAttribution(
        start_value=start_value,
        end_value=end_value,
        total_growth=growth,
        contributions=contributions,
        market_alpha=alpha,
        alpha_percentage=alpha / start_value * 100 if start_value > 0 else 0.0,
    )


__all__ = [
    "DERIVED_ACCOUNT",
    "QUANTITY_EPSILON",
    "calculate_portfolio_attribution",
    "net_trade_quantities",
    "process_portfolio_history",
    "reconcile_investments",
]
