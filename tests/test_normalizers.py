from __future__ import annotations

import pytest

from spreadsheet_finance.classification import resolve_asset_type
from spreadsheet_finance.normalizers import (
    UNKNOWN_TICKER,
    detect_ticker_currency,
    normalize_ticker,
    parse_boolean,
    parse_number,
)

# ---- parse_number --------------------------------------------------------------


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("$1,200.50", 1200.5),
        ("(500)", -500.0),
        ("  (1,000.25) ", -1000.25),
        ("-$45.10", -45.1),
        ("CA$ 3 400", 3400.0),
        ("1.234.567", 1.234567),
        ("12-31", 12.0),
        ("42", 42.0),
        (7, 7.0),
        (2.5, 2.5),
    ],
)
def test_parse_number_accepts_spreadsheet_formats(raw, expected):
    assert parse_number(raw) == pytest.approx(expected)


@pytest.mark.parametrize(
    "raw",
    ["", "   ", None, "abc", "--", "N/A", "$", "()", True, float("nan"), float("inf")],
)
def test_parse_number_never_raises_and_degrades_to_zero(raw):
    assert parse_number(raw) == 0.0


# ---- parse_boolean -------------------------------------------------------------


@pytest.mark.parametrize("raw", ["true", "YES", " Active ", "1"])
def test_parse_boolean_true_tokens(raw):
    assert parse_boolean(raw) is True


@pytest.mark.parametrize("raw", ["false", "No", "inactive", "0", "Cancelled"])
def test_parse_boolean_false_tokens(raw):
    assert parse_boolean(raw) is False


def test_parse_boolean_unknown_returns_fallback():
    assert parse_boolean("paused", True) is True
    assert parse_boolean("paused") is None
    assert parse_boolean(None, False) is False


# ---- tickers -------------------------------------------------------------------


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("aapl", "AAPL"),
        ("  msft ", "MSFT"),
        ("meta platforms (META)", "META"),
        ("xeqt.to", "XEQT"),
        ("ABC.V", "ABC"),
        ("REI.UN", "REI"),
        ("Bitcoin", "BTC"),
        ("ethereum", "ETH"),
        ("BTC-USD", "BTC-USD"),
        ("3991", "3991"),
        ("BRK.B", "BRK.B"),
    ],
)
def test_normalize_ticker(raw, expected):
    assert normalize_ticker(raw) == expected


@pytest.mark.parametrize("raw", ["", "   ", None])
def test_normalize_ticker_empty_is_unknown(raw):
    assert normalize_ticker(raw) == UNKNOWN_TICKER


@pytest.mark.parametrize(
    ("ticker", "context", "expected"),
    [
        ("XEQT.TO", None, "CAD"),
        ("abc.v", None, "CAD"),
        ("BTC-CAD", None, "CAD"),
        ("BTC-USD", "My TFSA", "USD"),
        ("AAPL", "Questrade TFSA", "CAD"),
        ("AAPL", "spousal rrsp", "CAD"),
        ("AAPL", "Margin", "USD"),
        ("AAPL", None, "USD"),
        (None, None, "USD"),
    ],
)
def test_detect_ticker_currency(ticker, context, expected):
    assert detect_ticker_currency(ticker, context) == expected


# ---- registered account classification ------------------------------------------


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("My TFSA (Questrade)", "TFSA"),
        ("Spousal RRSP", "RRSP"),
        ("Group RSP", "RRSP"),
        ("FHSA - Wealthsimple", "FHSA"),
        ("Alberta LAPP", "LAPP"),
        ("Kids RESP", "RESP"),
    ],
)
def test_resolve_asset_type_detects_registered_accounts(name, expected):
    assert resolve_asset_type(name, "Investment") == expected


def test_resolve_asset_type_keeps_current_type_without_token():
    assert resolve_asset_type("Chequing", "Cash") == "Cash"
    assert resolve_asset_type(None, "Other") == "Other"
