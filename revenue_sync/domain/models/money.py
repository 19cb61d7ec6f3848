# revenue_sync/domain/models/money.py
"""Decimal helpers for base-currency amounts."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

ZERO = Decimal("0")
CENT = Decimal("0.01")
RATIO_PLACES = Decimal("0.0001")


def to_decimal(value, default: str = "0") -> Decimal:
    """
    Safely convert incoming float/str/Decimal/None to Decimal.
    """
    if value is None:
        return Decimal(default)

    if isinstance(value, Decimal):
        return value

    try:
        # str() first so floats keep their shortest repr (0.1 -> "0.1")
        return Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        return Decimal(default)


def round_money(value) -> Decimal:
    """Round to paise, half away from zero."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def round_ratio(value) -> Decimal:
    """Round a split ratio to 4 decimal places."""
    return to_decimal(value).quantize(RATIO_PLACES, rounding=ROUND_HALF_UP)
