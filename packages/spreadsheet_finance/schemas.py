"""Schema Registry: declarative field tables for every registry-style sheet.

Each :class:`SchemaDefinition` maps an output property name to the header
aliases that may carry it, the coercion to apply, whether the row is rejected
without it, and the fallback used when its column is missing or the cell is
blank. Supporting a new spreadsheet layout means adding alias strings here,
not writing parsing code.

Schema-specific clean-up after coercion is named by a :class:`PostProcess`
tag and dispatched in :func:`apply_post_process`, so the registry itself stays
plain data.
"""

from __future__ import annotations

from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass
from enum import StrEnum
from types import MappingProxyType
from typing import Any, TypeAlias

from .classification import resolve_asset_type
from .normalizers import UNKNOWN_TICKER, detect_ticker_currency, normalize_ticker

# ---------------------------------------------------------------------------
# Definitions
# ---------------------------------------------------------------------------


class FieldType(StrEnum):
    STRING = "string"
    NUMBER = "number"
    DATE = "date"
    BOOLEAN = "boolean"
    TICKER = "ticker"


class PostProcess(StrEnum):
    ASSET_TYPE = "asset_type"
    INVESTMENT = "investment"
    TRADE_SIDE = "trade_side"


@dataclass(frozen=True, slots=True)
class FieldDefinition:
    """One output property and the header aliases that may supply it.

    Aliases are tried in order; the first one that resolves against a header
    row wins.
    """

    aliases: tuple[str, ...]
    value_type: FieldType = FieldType.STRING
    required: bool = False
    fallback: Any = None

    def __post_init__(self) -> None:
        if not self.aliases:
            raise ValueError("FieldDefinition requires at least one alias")


@dataclass(frozen=True, slots=True)
class SchemaDefinition:
    id: str
    fields: Mapping[str, FieldDefinition]
    post_process: PostProcess | None = None

    def __post_init__(self) -> None:
        if not self.fields:
            raise ValueError(f"SchemaDefinition {self.id!r} declares no fields")
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    @property
    def keywords(self) -> tuple[str, ...]:
        """Every alias of every field, used for header-row discovery."""

        return tuple(alias for fd in self.fields.values() for alias in fd.aliases)


def _f(
    *aliases: str,
    value_type: FieldType = FieldType.STRING,
    required: bool = False,
    fallback: Any = None,
) -> FieldDefinition:
    return FieldDefinition(aliases=aliases, value_type=value_type, required=required, fallback=fallback)


_NUM = FieldType.NUMBER
_DATE = FieldType.DATE
_TICKER = FieldType.TICKER

# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

_DATE_ALIASES = ("date", "time", "timestamp", "week ending")
_CURRENCY_ALIASES = ("currency", "curr", "ccy")

REGISTRY_SCHEMAS: Mapping[str, SchemaDefinition] = MappingProxyType(
    {
        "assets": SchemaDefinition(
            id="assets",
            fields={
                "name": _f(
                    "asset name", "name", "account", "asset", "item", "description",
                    "holding", "security", "symbol/name",
                    required=True,
                ),
                "asset_type": _f(
                    "asset category", "type", "category", "class", "asset type", "kind",
                    "asset class",
                    fallback="Other",
                ),
                "value": _f(
                    "value", "amount", "balance", "current value", "market value", "total",
                    "market val",
                    value_type=_NUM,
                ),
                "currency": _f(*_CURRENCY_ALIASES, fallback="CAD"),
                "last_updated": _f(
                    "date updated", "last updated", "date", "updated", "as of", value_type=_DATE
                ),
            },
            post_process=PostProcess.ASSET_TYPE,
        ),
        "investments": SchemaDefinition(
            id="investments",
            fields={
                "ticker": _f(
                    "ticker", "symbol", "code", "stock", "instrument", "asset", "holding",
                    "symbol/name",
                    value_type=_TICKER,
                ),
                "name": _f("name", "description", "investment", "security", "company", "symbol/name"),
                "quantity": _f("quantity", "qty", "units", "shares", "count", value_type=_NUM, fallback=0.0),
                "avg_price": _f(
                    "avg price", "average price", "avg cost", "unit cost", "average cost",
                    "average cos",
                    value_type=_NUM, fallback=0.0,
                ),
                "book_value": _f(
                    "book value", "total cost", "acb", "cost basis", value_type=_NUM, fallback=0.0
                ),
                "current_price": _f(
                    "current price", "price", "market price", "market value", "unit price",
                    "last price",
                    value_type=_NUM, fallback=0.0,
                ),
                "account_name": _f(
                    "account", "account name", "location", "held in", "portfolio",
                    fallback="Uncategorized",
                ),
                "asset_class": _f(
                    "asset class", "class", "type", "category", "sector", fallback="Other"
                ),
                "market_value": _f(
                    "market value", "value", "total value", "market val", value_type=_NUM, fallback=0.0
                ),
                "native_currency": _f(*_CURRENCY_ALIASES),
            },
            post_process=PostProcess.INVESTMENT,
        ),
        "trades": SchemaDefinition(
            id="trades",
            fields={
                "date": _f(
                    "transaction date", "trade date", "date", "time", "executed",
                    value_type=_DATE, required=True,
                ),
                "ticker": _f(
                    "asset symbol", "ticker", "symbol", "code", "asset", "product", "security",
                    "instrument",
                    value_type=_TICKER, required=True,
                ),
                # No fallback: an absent side column lets the quantity sign decide.
                "side": _f("type", "action", "side", "transaction", "buy/sell"),
                "quantity": _f("shares", "quantity", "qty", "units", "volume", value_type=_NUM, fallback=0.0),
                "price": _f(
                    "purchase", "purchase price", "buy price", "execution price", "exec price",
                    "unit cost", "cost", "unit price", "fill price", "price", "amount", "rate",
                    value_type=_NUM, fallback=0.0,
                ),
                "market_price": _f(
                    "market price", "current price", "last price", "current", "close",
                    "live price", "mark",
                    value_type=_NUM,
                ),
                "total": _f(
                    "book value", "total", "value", "total value", "net amount", "settlement",
                    value_type=_NUM, fallback=0.0,
                ),
                "fee": _f("fee", "commission", "transaction fee", value_type=_NUM, fallback=0.0),
                "account": _f("account", "portfolio", "held in", "source", fallback="Crypto Core"),
            },
            post_process=PostProcess.TRADE_SIDE,
        ),
        "subscriptions": SchemaDefinition(
            id="subscriptions",
            fields={
                "name": _f(
                    "name", "service", "subscription", "item", "merchant", "description",
                    required=True,
                ),
                "cost": _f(
                    "cost", "price", "amount", "monthly cost", "value", "payment",
                    value_type=_NUM, required=True,
                ),
                "period": _f("period", "frequency", "billing cycle", fallback="Monthly"),
                "category": _f("category", "type", "kind", fallback="General"),
                "active": _f("active", "status", value_type=FieldType.BOOLEAN, fallback=True),
                "payment_method": _f("payment method", "account", "card", "source"),
            },
        ),
        "accounts": SchemaDefinition(
            id="accounts",
            fields={
                "institution": _f(
                    "institution name", "bank name", "institution", "bank", "provider", "source",
                    required=True,
                ),
                "name": _f("nickname", "label", "account name", "account", fallback="Account"),
                "account_type": _f("account type", "type", "category", fallback="Checking"),
                "payment_type": _f(
                    "payment type", "method", "network", "card type", fallback="Card"
                ),
                "account_number": _f(
                    "account number", "number", "last 4", "card number", fallback="****"
                ),
                "transaction_type": _f("transaction type", "class", "entry type"),
                "currency": _f(*_CURRENCY_ALIASES, fallback="CAD"),
                "purpose": _f("purpose", "description", "usage", "merchant", fallback="General"),
            },
        ),
        "journal": SchemaDefinition(
            id="journal",
            fields={
                "date": _f("date", "timestamp", "transaction date", value_type=_DATE, required=True),
                "description": _f("description", "merchant", "item", "vendor", required=True),
                "canonical_name": _f(
                    "unified identity", "canonical name", "clean merchant", "brand"
                ),
                "category": _f("category", "type", "group", fallback="Uncategorized"),
                "sub_category": _f(
                    "sub-category", "subcategory", "sub category", "label", fallback="Other"
                ),
                "amount": _f("amount", "value", "cost", "total", value_type=_NUM, required=True),
                "source": _f("source", "account", "bank", "card"),
                "transaction_id": _f("transaction id", "id", "txid", "reference"),
            },
        ),
        "logData": SchemaDefinition(
            id="logData",
            fields={
                "date": _f(*_DATE_ALIASES, value_type=_DATE, required=True),
                "value": _f(
                    "net worth", "total", "value", "amount", "balance", "equity",
                    value_type=_NUM, required=True,
                ),
            },
        ),
        "portfolioLog": SchemaDefinition(
            id="portfolioLog",
            fields={
                "date": _f(*_DATE_ALIASES, value_type=_DATE, required=True),
                "value_marker": _f("value", "balance", "amount"),
            },
        ),
    }
)


# ---------------------------------------------------------------------------
# Post-processing
# ---------------------------------------------------------------------------

Record: TypeAlias = MutableMapping[str, Any]


def _post_process_asset_type(record: Record) -> Record:
    record["asset_type"] = resolve_asset_type(record.get("name"), record.get("asset_type"))
    return record


def _post_process_investment(record: Record) -> Record:
    if not record.get("ticker"):
        name = record.get("name")
        record["ticker"] = normalize_ticker(name) if name else UNKNOWN_TICKER

    quantity = record.get("quantity") or 0.0
    book_value = record.get("book_value") or 0.0
    if not record.get("avg_price") and book_value and quantity > 0:
        record["avg_price"] = book_value / quantity

    if not record.get("native_currency"):
        record["native_currency"] = detect_ticker_currency(
            record.get("ticker"), record.get("account_name")
        )
    return record


def _post_process_trade_side(record: Record) -> Record:
    quantity = record.get("quantity") or 0.0
    raw = str(record.get("side") or "").upper()
    if "SELL" in raw:
        record["side"] = "SELL"
    elif "BUY" in raw:
        record["side"] = "BUY"
    else:
        record["side"] = "SELL" if quantity < 0 else "BUY"
    record["quantity"] = abs(quantity)
    return record


def apply_post_process(tag: PostProcess | None, record: Record) -> Record:
    """Run the named clean-up step for a freshly coerced record."""

    match tag:
        case None:
            return record
        case PostProcess.ASSET_TYPE:
            return _post_process_asset_type(record)
        case PostProcess.INVESTMENT:
            return _post_process_investment(record)
        case PostProcess.TRADE_SIDE:
            return _post_process_trade_side(record)
    raise ValueError(f"Unknown post-process step: {tag!r}")


__all__ = [
    "REGISTRY_SCHEMAS",
    "FieldDefinition",
    "FieldType",
    "PostProcess",
    "Record",
    "SchemaDefinition",
    "apply_post_process",
]
