from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime

import pytest

from spreadsheet_finance.models import Investment, PortfolioLogEntry, Trade, TradeSide
from spreadsheet_finance.portfolio import (
    DERIVED_ACCOUNT,
    calculate_portfolio_attribution,
    net_trade_quantities,
    process_portfolio_history,
    reconcile_investments,
)
from spreadsheet_finance.temporal import TimeFocus

NOW = datetime(2024, 5, 15, 12, 0)


def _inv(ticker: str, quantity: float, account: str, idx: int = 1) -> Investment:
    return Investment(
        id=f"inv-{account}-{ticker}",
        row_index=idx,
        ticker=ticker,
        quantity=quantity,
        account_name=account,
    )


def _trade(
    ticker: str,
    side: TradeSide,
    quantity: float,
    *,
    when: date = date(2024, 1, 5),
    total: float = 0.0,
) -> Trade:
    return Trade(
        id=f"t-{ticker}-{side}-{quantity}-{when}",
        row_index=1,
        date=when,
        ticker=ticker,
        side=side,
        quantity=quantity,
        total=total,
    )


def _by_account(positions: list[Investment]) -> dict[tuple[str, str], float]:
    return {(p.ticker, p.account_name): p.quantity for p in positions}


# ---- reconciliation ------------------------------------------------------------


def test_net_trade_quantities_signs_by_side_and_normalizes_tickers():
    trades = [
        _trade("AAPL", TradeSide.BUY, 10),
        _trade("aapl", TradeSide.SELL, 4),
        _trade("xeqt.to", TradeSide.BUY, 3),
        _trade("MSFT", TradeSide.BUY, 0),
    ]
    assert net_trade_quantities(trades) == {"AAPL": 6.0, "XEQT": 3.0}


def test_net_buy_is_split_proportionally_across_accounts():
    investments = [_inv("AAPL", 10, "Questrade"), _inv("AAPL", 5, "Wealthsimple")]
    trades = [_trade("AAPL", TradeSide.BUY, 30)]

    result = _by_account(reconcile_investments(investments, trades))

    assert result == {("AAPL", "Questrade"): 30.0, ("AAPL", "Wealthsimple"): 15.0}


def test_ticker_only_in_trades_becomes_derived_position():
    trades = [_trade("TSLA", TradeSide.BUY, 12), _trade("TSLA", TradeSide.SELL, 2)]

    result = reconcile_investments([], trades)

    assert len(result) == 1
    derived = result[0]
    assert derived.ticker == "TSLA"
    assert derived.quantity == pytest.approx(10.0)
    assert derived.account_name == DERIVED_ACCOUNT
    assert derived.id == "derived-TSLA"
    assert derived.row_index is None
    assert derived.native_currency == "USD"


def test_fully_closed_trade_only_position_is_omitted():
    trades = [_trade("MSFT", TradeSide.BUY, 5), _trade("MSFT", TradeSide.SELL, 5)]
    assert reconcile_investments([], trades) == []


def test_zero_quantity_group_gives_whole_delta_to_first_account():
    investments = [_inv("VFV", 0, "TFSA"), _inv("VFV", 0, "RRSP")]
    trades = [_trade("VFV", TradeSide.BUY, 4)]

    result = _by_account(reconcile_investments(investments, trades))

    assert result == {("VFV", "TFSA"): 4.0, ("VFV", "RRSP"): 0.0}


def test_snapshot_without_trades_is_unchanged_and_inputs_not_mutated():
    investments = [_inv("AAPL", 10, "Questrade")]
    trades = [_trade("AAPL", TradeSide.SELL, 4)]

    result = reconcile_investments(investments, trades)

    assert result[0].quantity == 6.0
    assert result[0].id == investments[0].id
    assert investments[0].quantity == 10.0
    assert reconcile_investments(investments, []) == investments


def test_snapshot_order_kept_and_derived_positions_follow():
    investments = [_inv("AAPL", 1, "A"), _inv("MSFT", 1, "A"), _inv("AAPL", 1, "B")]
    trades = [_trade("NVDA", TradeSide.BUY, 2), _trade("MSFT", TradeSide.BUY, 1)]

    result = reconcile_investments(investments, trades)

    assert [(p.ticker, p.account_name) for p in result] == [
        ("AAPL", "A"),
        ("AAPL", "B"),
        ("MSFT", "A"),
        ("NVDA", DERIVED_ACCOUNT),
    ]


def test_reconciliation_preserves_total_quantity_per_ticker():
    investments = [
        _inv("AAPL", 3, "A"),
        _inv("AAPL", 7.5, "B"),
        _inv("AAPL", 0.25, "C"),
        _inv("BTC", 0.1, "Crypto"),
        _inv("VFV", 0, "TFSA"),
    ]
    trades = [
        _trade("AAPL", TradeSide.BUY, 1.3),
        _trade("AAPL", TradeSide.SELL, 4.7),
        _trade("btc", TradeSide.BUY, 0.033),
        _trade("VFV", TradeSide.BUY, 9),
        _trade("VFV", TradeSide.SELL, 2.5),
        _trade("SHOP", TradeSide.BUY, 3),
    ]

    result = reconcile_investments(investments, trades)

    before: dict[str, float] = defaultdict(float)
    for inv in investments:
        before[inv.ticker] += inv.quantity
    after: dict[str, float] = defaultdict(float)
    for pos in result:
        after[pos.ticker] += pos.quantity

    net = net_trade_quantities(trades)
    for ticker in set(before) | set(net):
        assert after[ticker] == pytest.approx(before.get(ticker, 0.0) + net.get(ticker, 0.0))


# ---- portfolio history ---------------------------------------------------------


def _log(when: date, **accounts: float) -> PortfolioLogEntry:
    return PortfolioLogEntry(id=f"log-{when}", row_index=1, date=when, accounts=accounts)


HISTORY = [
    _log(date(2024, 3, 31), TFSA=150, RRSP=150),
    _log(date(2023, 12, 31), TFSA=100),
    _log(date(2024, 1, 31), TFSA=100, RRSP=100),
]


def test_process_portfolio_history_filters_sorts_and_computes_change():
    history = process_portfolio_history(HISTORY, TimeFocus.YTD, now=NOW)

    assert history.account_keys == ("RRSP", "TFSA")
    assert [p.date for p in history.points] == [date(2024, 1, 31), date(2024, 3, 31)]
    assert [p.total_value for p in history.points] == [200.0, 300.0]
    assert [p.percent_change for p in history.points] == [0.0, pytest.approx(50.0)]


def test_process_portfolio_history_empty_window_keeps_account_keys():
    history = process_portfolio_history(HISTORY, TimeFocus.MTD, now=NOW)
    assert history.points == ()
    assert history.account_keys == ("RRSP", "TFSA")


def test_process_portfolio_history_empty_input():
    history = process_portfolio_history([], TimeFocus.FULL_YEAR, now=NOW)
    assert history.points == () and history.account_keys == ()


# ---- attribution ---------------------------------------------------------------


def _attribution_trades() -> list[Trade]:
    return [
        _trade("AAPL", TradeSide.BUY, 1, when=date(2024, 2, 1), total=50),
        _trade("AAPL", TradeSide.SELL, 1, when=date(2024, 3, 1), total=-20),
        _trade("AAPL", TradeSide.BUY, 1, when=date(2023, 6, 1), total=1000),
    ]


def test_attribution_splits_growth_into_contributions_and_alpha():
    points = process_portfolio_history(HISTORY, TimeFocus.YTD, now=NOW).points

    result = calculate_portfolio_attribution(
        points, _attribution_trades(), TimeFocus.YTD, now=NOW
    )

    assert result is not None
    assert result.start_value == 200.0
    assert result.end_value == 300.0
    assert result.total_growth == 100.0
    assert result.contributions == pytest.approx(30.0)
    assert result.market_alpha == pytest.approx(70.0)
    assert result.alpha_percentage == pytest.approx(35.0)


def test_attribution_override_end_value():
    points = process_portfolio_history(HISTORY, TimeFocus.YTD, now=NOW).points
    result = calculate_portfolio_attribution(
        points, _attribution_trades(), TimeFocus.YTD, override_end_value=250.0, now=NOW
    )
    assert result is not None
    assert result.total_growth == 50.0
    assert result.market_alpha == pytest.approx(20.0)


def test_attribution_without_points_is_none():
    assert calculate_portfolio_attribution([], [], TimeFocus.YTD, now=NOW) is None
