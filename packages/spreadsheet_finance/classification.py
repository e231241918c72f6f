"""Registered-account classification for asset registry rows."""

from __future__ import annotations

# Checked in order; the first matching token wins.
_REGISTERED_ACCOUNT_TOKENS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("TFSA", ("TFSA", "TAX FREE SAVINGS")),
    ("RRSP", ("RRSP", "RSP", "RETIREMENT SAVINGS")),
    ("FHSA", ("FHSA", "FIRST HOME SAVINGS")),
    ("LAPP", ("LAPP", "PENSION PLAN")),
    ("RESP", ("RESP", "EDUCATION SAVINGS")),
)


def resolve_asset_type(name: str | None, current_type: str | None) -> str | None:
    """Return the registered account type implied by ``name``.

    ``"My TFSA (Questrade)"`` → ``"TFSA"``. Names without a recognised token
    keep ``current_type`` unchanged.
    """

    upper = (name or "").upper()
    for account_type, tokens in _REGISTERED_ACCOUNT_TOKENS:
        if any(token in upper for token in tokens):
            return account_type
    return current_type


__all__ = ["resolve_asset_type"]
