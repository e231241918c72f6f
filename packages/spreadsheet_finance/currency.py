"""Conversion of native-currency amounts into the reporting currency."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TypeAlias

PRIMARY_CURRENCY = "CAD"

# Applied to USD amounts when no USD rate was supplied. A deliberate
# approximation kept as-is; do not update it silently.
USD_FALLBACK_RATE = 1.35

ExchangeRates: TypeAlias = Mapping[str, float]


def convert_to_base(
    amount: float,
    currency: str | None = None,
    rates: ExchangeRates | None = None,
    *,
    base_currency: str = PRIMARY_CURRENCY,
) -> float:
    """Convert ``amount`` from ``currency`` into ``base_currency``.

    ``rates`` maps an upper-case currency code to its multiplier into the base
    currency. Amounts already in the base currency (or without a currency) are
    returned unchanged. A missing rate never raises: USD uses
    :data:`USD_FALLBACK_RATE` and anything else is treated as 1:1.
    """

    if not currency:
        return amount
    code = currency.upper().strip()
    if code == base_currency.upper():
        return amount

    rate = rates.get(code) if rates is not None else None
    if rate is None:
        if code == "USD":
            return amount * USD_FALLBACK_RATE
        return amount
    return amount * rate


__all__ = ["PRIMARY_CURRENCY", "USD_FALLBACK_RATE", "ExchangeRates", "convert_to_base"]
