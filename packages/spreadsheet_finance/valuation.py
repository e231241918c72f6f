"""Valuation Resolver: pick an authoritative price and value positions.

Price priority for a ticker:

1. a live quote (``is_live=True``);
2. the most recent trade carrying a market price;
3. the absolute fill price of the most recent trade;
4. the caller's fallback, usually the price typed into the sheet.

No tier raises; a missing source falls through to the next one.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import TypeAlias

from .currency import PRIMARY_CURRENCY, ExchangeRates, convert_to_base
from .models import (
    Investment,
    PriceResolution,
    Trade,
    TradeSide,
    ValuationResult,
    ValuedHolding,
)
from .normalizers import normalize_ticker
from .portfolio import QUANTITY_EPSILON

LivePrices: TypeAlias = Mapping[str, float]


def _most_recent_first(trades: Iterable[Trade]) -> list[Trade]:
    # Stable: trades on the same day keep their sheet order.
    return sorted(trades, key=lambda t: t.date, reverse=True)


def resolve_ticker_price(
    ticker: str,
    live_prices: LivePrices,
    trades: Sequence[Trade],
    fallback_price: float = 0.0,
) -> PriceResolution:
    """Return the price to value ``ticker`` at and whether it is live."""

    norm = normalize_ticker(ticker)
    live = live_prices.get(norm)
    if live:
        return PriceResolution(live, True)

    ticker_trades = _most_recent_first(t for t in trades if normalize_ticker(t.ticker) == norm)
    if ticker_trades:
        for trade in ticker_trades:
            if trade.market_price and trade.market_price > 0:
                return PriceResolution(trade.market_price, False)
        if ticker_trades[0].price:
            return PriceResolution(abs(ticker_trades[0].price), False)

    return PriceResolution(fallback_price, False)


def calculate_valuation(
    quantity: float,
    price: float,
    currency: str | None = None,
    rates: ExchangeRates | None = None,
    *,
    is_live: bool = False,
    base_currency: str = PRIMARY_CURRENCY,
) -> ValuationResult:
    """Value ``quantity`` at ``price`` in native and base currency.

    Residual quantities below ``1e-6`` are worth exactly zero.
    """

    code = currency or base_currency
    if abs(quantity) < QUANTITY_EPSILON:
        return ValuationResult(0.0, 0.0, price, is_live, code)
    native = quantity * price
    base = convert_to_base(native, currency, rates, base_currency=base_currency)
    return ValuationResult(native, base, price, is_live, code)


def calculate_synthetic_avg_price(
    ticker: str,
    trades: Iterable[Trade],
    sheet_avg_price: float = 0.0,
) -> float:
    """Weighted average cost of the ticker's BUY trades.

    Each buy costs ``|total|`` or, when the total is blank, ``|quantity × price|``.
    Without buys the sheet's own average price is returned.
    """

    norm = normalize_ticker(ticker)
    total_cost = 0.0
    total_qty = 0.0
    for trade in trades:
        if trade.side != TradeSide.BUY or normalize_ticker(trade.ticker) != norm:
            continue
        total_qty += abs(trade.quantity)
        total_cost += abs(trade.total or trade.quantity * trade.price)
    if total_qty > 0:
        return total_cost / total_qty
    return sheet_avg_price


def value_holdings(
    holdings: Iterable[Investment],
    trades: Iterable[Trade],
    live_prices: LivePrices | None = None,
    rates: ExchangeRates | None = None,
    *,
    base_currency: str = PRIMARY_CURRENCY,
) -> list[ValuedHolding]:
    """Price and value every holding; the sheet ``current_price`` is the fallback."""

    quotes = {normalize_ticker(k): v for k, v in (live_prices or {}).items()}
    by_ticker: dict[str, list[Trade]] = {}
    for trade in trades:
        by_ticker.setdefault(normalize_ticker(trade.ticker), []).append(trade)

    valued: list[ValuedHolding] = []
    for holding in holdings:
        ticker = normalize_ticker(holding.ticker)
        resolution = resolve_ticker_price(
            ticker, quotes, by_ticker.get(ticker, []), holding.current_price
        )
        valuation = calculate_valuation(
            holding.quantity,
            resolution.price,
            holding.native_currency,
            rates,
            is_live=resolution.is_live,
            base_currency=base_currency,
        )
        valued.append(ValuedHolding(position=holding, valuation=valuation))
    return valued


__all__ = [
    "LivePrices",
    "calculate_synthetic_avg_price",
    "calculate_valuation",
    "resolve_ticker_price",
    "value_holdings",
]
