from __future__ import annotations

import textwrap
from datetime import date

import pytest

from spreadsheet_finance.ingest.adapters.universal import UniversalParser, convert_value
from spreadsheet_finance.ingest.tabular import find_schema_header_index, parse_lines, split_lines
from spreadsheet_finance.models import Asset, Investment, Trade, TradeSide
from spreadsheet_finance.schemas import REGISTRY_SCHEMAS, FieldType


def _dedent(s: str) -> str:
    return textwrap.dedent(s).strip("\n")


def _parse(text: str, schema_id: str):
    rows = parse_lines(split_lines(_dedent(text)))
    schema = REGISTRY_SCHEMAS[schema_id]
    return UniversalParser.parse(rows, find_schema_header_index(rows, schema), schema)


ASSETS_CSV = """
    Asset Name,Type,Value,Currency
    My TFSA (Questrade),Investment,"$12,500.00",CAD
    Chequing,Cash,1500,
    ,,,
    ,Cash,100,CAD
    """

TRADES_CSV = """
    Date,Symbol,Action,Quantity,Price,Total
    2024-01-05,AAPL,Buy,10,150,1500
    2024-02-01,BTC-USD,,-0.5,40000,-20000
    2024-03-01,3991,SELL,-5,10,50
    not a date,MSFT,Buy,1,300,300
    """

INVESTMENTS_CSV = """
    Ticker,Name,Quantity,Book Value,Account,Currency
    xeqt.to,iShares Core Equity,100,"2,500.00",TFSA,
    ,Meta Platforms (META),10,3000,Margin,
    AAPL,Apple,5,,Questrade,USD
    """


# ---- convert_value -------------------------------------------------------------


@pytest.mark.parametrize(
    ("raw", "value_type", "fallback", "expected"),
    [
        ("$1,000", FieldType.NUMBER, 0.0, 1000.0),
        ("  ", FieldType.NUMBER, 0.0, 0.0),
        (None, FieldType.STRING, "CAD", "CAD"),
        (" Cash ", FieldType.STRING, None, "Cash"),
        ("2024-01-05", FieldType.DATE, None, date(2024, 1, 5)),
        ("soon", FieldType.DATE, None, None),
        ("Cancelled", FieldType.BOOLEAN, True, False),
        ("xeqt.to", FieldType.TICKER, None, "XEQT"),
    ],
)
def test_convert_value(raw, value_type, fallback, expected):
    assert convert_value(raw, value_type, fallback) == expected


# ---- registry parsing ----------------------------------------------------------


def test_assets_rows_map_to_models_and_skip_blank_and_rejected_rows():
    assets = _parse(ASSETS_CSV, "assets")

    assert [type(a) for a in assets] == [Asset, Asset]
    tfsa, chequing = assets
    assert tfsa.name == "My TFSA (Questrade)"
    assert tfsa.asset_type == "TFSA"
    assert tfsa.value == 12500.0
    assert tfsa.row_index == 1
    assert chequing.asset_type == "Cash"
    assert chequing.currency == "CAD"
    assert chequing.last_updated is None
    assert chequing.row_index == 2


def test_accepted_rows_get_unique_ids():
    assets = _parse(ASSETS_CSV, "assets")
    ids = {a.id for a in assets}
    assert len(ids) == len(assets)
    assert all(ids)


def test_trades_side_normalization_and_rejection():
    trades = _parse(TRADES_CSV, "trades")

    assert [t.ticker for t in trades] == ["AAPL", "BTC-USD", "3991"]
    assert all(isinstance(t, Trade) for t in trades)

    aapl, btc, numeric = trades
    assert aapl.side == TradeSide.BUY
    assert aapl.date == date(2024, 1, 5)
    assert aapl.account == "Crypto Core"
    assert aapl.market_price is None

    # No side cell: the negative quantity makes it a sell.
    assert btc.side == TradeSide.SELL
    assert btc.quantity == 0.5

    assert numeric.side == TradeSide.SELL
    assert numeric.quantity == 5.0


def test_trade_quantities_are_never_negative():
    assert all(t.quantity >= 0 for t in _parse(TRADES_CSV, "trades"))


def test_investments_post_process():
    investments = _parse(INVESTMENTS_CSV, "investments")

    assert all(isinstance(i, Investment) for i in investments)
    xeqt, meta, aapl = investments

    assert xeqt.ticker == "XEQT"
    assert xeqt.avg_price == pytest.approx(25.0)
    assert xeqt.native_currency == "CAD"
    assert xeqt.account_name == "TFSA"
    assert xeqt.asset_class == "Other"

    assert meta.ticker == "META"
    assert meta.avg_price == pytest.approx(300.0)
    assert meta.native_currency == "USD"

    assert aapl.avg_price == 0.0
    assert aapl.native_currency == "USD"


def test_entity_count_matches_rows_with_required_fields():
    text = """
        Service,Cost,Status
        Netflix,$16.99,Active
        Spotify,,Active
        ,9.99,Active
        Gym,45,cancelled
        """
    subs = _parse(text, "subscriptions")

    assert [s.name for s in subs] == ["Netflix", "Gym"]
    assert subs[0].cost == pytest.approx(16.99)
    assert subs[0].period == "Monthly"
    assert subs[1].active is False


def test_header_found_below_title_rows_and_reordered_columns():
    text = """
        Net Worth Tracker,,
        ,,
        Net Worth,Date
        "$100,000",2024-01-31
        "$102,500.50",2024-02-29
        """
    entries = _parse(text, "logData")

    assert [(e.date, e.value) for e in entries] == [
        (date(2024, 1, 31), 100000.0),
        (date(2024, 2, 29), 102500.5),
    ]
    assert [e.row_index for e in entries] == [3, 4]


def test_schema_without_model_returns_dicts():
    rows = parse_lines(["Date,Value", "2024-01-05,ok"])
    schema = REGISTRY_SCHEMAS["portfolioLog"]
    records = UniversalParser.parse(rows, 0, schema)

    assert len(records) == 1
    assert records[0]["date"] == date(2024, 1, 5)
    assert records[0]["value_marker"] == "ok"
    assert records[0]["row_index"] == 1


def test_header_index_past_end_returns_empty():
    assert UniversalParser.parse([["a"]], 3, REGISTRY_SCHEMAS["assets"]) == []


def test_reparse_is_structurally_identical_ignoring_ids():
    first = [t.model_dump(exclude={"id"}) for t in _parse(TRADES_CSV, "trades")]
    second = [t.model_dump(exclude={"id"}) for t in _parse(TRADES_CSV, "trades")]
    assert first == second
