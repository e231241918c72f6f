"""Typed records produced and consumed by ``spreadsheet_finance``.

Registry rows are parsed into one concrete pydantic model per entity kind, so
downstream reconciliation and valuation only ever see the fields a schema
actually produces. Every registry entity carries a generated ``id`` and the
physical ``row_index`` it came from, which lets edit flows write back to the
exact source row.

Derived, never-persisted results (valuations, timeline events, aggregation
buckets) are frozen dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import StrEnum
from typing import NamedTuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

# ---------------------------------------------------------------------------
# Registry entities
# ---------------------------------------------------------------------------


class _Entity(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", str_strip_whitespace=True)

    id: str
    # ``None`` for records that do not come from a sheet row (derived positions).
    row_index: int | None = Field(default=None, ge=0)


class Asset(_Entity):
    name: str
    asset_type: str | None = "Other"
    value: float | None = None
    currency: str = "CAD"
    last_updated: date | None = None


class Investment(_Entity):
    """A snapshot position as entered in the holdings sheet."""

    ticker: str
    name: str | None = None
    quantity: float = 0.0
    avg_price: float = 0.0
    book_value: float = 0.0
    current_price: float = 0.0
    account_name: str = "Uncategorized"
    asset_class: str = "Other"
    market_value: float = 0.0
    native_currency: str | None = None


class TradeSide(StrEnum):
    BUY = "BUY"
    SELL = "SELL"


class Trade(_Entity):
    """An append-only trade event; ``quantity`` is never negative."""

    date: date
    ticker: str
    side: TradeSide = TradeSide.BUY
    quantity: float = Field(default=0.0, ge=0)
    price: float = 0.0
    market_price: float | None = None
    total: float = 0.0
    fee: float = 0.0
    account: str = "Crypto Core"


class Subscription(_Entity):
    name: str
    cost: float
    period: str = "Monthly"
    category: str = "General"
    active: bool = True
    payment_method: str | None = None


class BankAccount(_Entity):
    institution: str
    name: str = "Account"
    account_type: str = "Checking"
    payment_type: str = "Card"
    account_number: str = "****"
    transaction_type: str | None = None
    currency: str = "CAD"
    purpose: str = "General"


class JournalEntry(_Entity):
    date: date
    description: str
    canonical_name: str | None = None
    category: str = "Uncategorized"
    sub_category: str = "Other"
    amount: float
    source: str | None = None
    transaction_id: str | None = None


class NetWorthEntry(_Entity):
    date: date
    value: float


class PortfolioLogEntry(_Entity):
    """One dated row of the portfolio log: account name → balance."""

    date: date
    accounts: dict[str, float]


class DebtEntry(_Entity):
    name: str
    date: date
    starting_balance: float = 0.0
    monthly_payment: float = 0.0
    amount_owed: float = 0.0
    interest_rate: float = 0.0


# ---------------------------------------------------------------------------
# Ledger matrices
# ---------------------------------------------------------------------------


class LedgerItem(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    monthly_values: list[float]
    total: float
    row_index: int | None = None

    @classmethod
    def from_values(cls, name: str, values: list[float], row_index: int | None = None) -> LedgerItem:
        return cls(name=name, monthly_values=values, total=sum(values), row_index=row_index)


class LedgerCategory(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    sub_categories: list[LedgerItem]
    total: float
    row_index: int | None = None

    @model_validator(mode="after")
    def _total_matches_items(self) -> LedgerCategory:
        expected = sum(sub.total for sub in self.sub_categories)
        if abs(expected - self.total) > 1e-6:
            raise ValueError(f"category total {self.total} != sum of sub-items {expected}")
        return self

    @classmethod
    def from_items(
        cls, name: str, items: list[LedgerItem], row_index: int | None = None
    ) -> LedgerCategory:
        return cls(
            name=name,
            sub_categories=items,
            total=sum(item.total for item in items),
            row_index=row_index,
        )


class LedgerData(BaseModel):
    """A category × month matrix.

    ``months`` keeps the raw header labels (e.g. ``"Jan-24"``); every
    ``LedgerItem.monthly_values`` is aligned with it.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    months: list[str] = Field(default_factory=list)
    categories: list[LedgerCategory] = Field(default_factory=list)

    @model_validator(mode="after")
    def _values_align_with_months(self) -> LedgerData:
        width = len(self.months)
        for category in self.categories:
            for sub in category.sub_categories:
                if len(sub.monthly_values) != width:
                    raise ValueError(
                        f"{category.name}/{sub.name} has {len(sub.monthly_values)} values for {width} months"
                    )
        return self


class IncomeEntry(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    date: date
    month_str: str
    amount: float


class ExpenseEntry(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    date: date
    month_str: str
    categories: dict[str, float]
    total: float


class IncomeAndExpenses(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    income: list[IncomeEntry] = Field(default_factory=list)
    expenses: list[ExpenseEntry] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Valuation
# ---------------------------------------------------------------------------


class PriceResolution(NamedTuple):
    price: float
    is_live: bool


@dataclass(frozen=True, slots=True)
class ValuationResult:
    native_value: float
    base_value: float
    price: float
    is_live: bool
    currency: str


@dataclass(frozen=True, slots=True)
class ValuedHolding:
    """A reconciled position together with the price used to value it."""

    position: Investment
    valuation: ValuationResult

    @property
    def ticker(self) -> str:
        return self.position.ticker


# ---------------------------------------------------------------------------
# Portfolio history
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PortfolioHistoryPoint:
    date: date
    accounts: dict[str, float]
    total_value: float
    percent_change: float


@dataclass(frozen=True, slots=True)
class PortfolioHistory:
    points: tuple[PortfolioHistoryPoint, ...] = ()
    account_keys: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class PortfolioAttribution:
    """Growth of the portfolio split into contributions and market return."""

    start_value: float
    end_value: float
    total_growth: float
    contributions: float
    market_alpha: float
    alpha_percentage: float


# ---------------------------------------------------------------------------
# Timeline
# ---------------------------------------------------------------------------


class FlowType(StrEnum):
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


@dataclass(frozen=True, slots=True)
class TimelineTransaction:
    id: str
    date: str
    description: str
    category: str
    sub_category: str
    amount: float
    flow: FlowType


@dataclass(slots=True)
class DimensionBucket:
    name: str
    total: float = 0.0
    count: int = 0


@dataclass(slots=True)
class TrendPoint:
    label: str
    current: float = 0.0
    shadow: float = 0.0


__all__ = [
    "Asset",
    "BankAccount",
    "DebtEntry",
    "DimensionBucket",
    "ExpenseEntry",
    "FlowType",
    "IncomeAndExpenses",
    "IncomeEntry",
    "Investment",
    "JournalEntry",
    "LedgerCategory",
    "LedgerData",
    "LedgerItem",
    "NetWorthEntry",
    "PortfolioAttribution",
    "PortfolioHistory",
    "PortfolioHistoryPoint",
    "PortfolioLogEntry",
    "PriceResolution",
    "Subscription",
    "TimelineTransaction",
    "Trade",
    "TradeSide",
    "TrendPoint",
    "ValuationResult",
    "ValuedHolding",
]
