"""
Domain: Monetary amounts.

All prices, subtotals, fees and totals are Decimal values with two fractional
digits. Floats are accepted at the edges (form input, JSON) but are converted
through their string form so 0.1 stays 0.10.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

_CENTS = Decimal("0.01")

ZERO = Decimal("0.00")


def to_money(value: Any) -> Decimal:
    """Convert a price-like value to a Decimal quantized to cents."""

    if isinstance(value, bool):
        raise ValueError("Monetary value must be numeric")
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value))
        except InvalidOperation:
            raise ValueError(f"Invalid monetary value: {value!r}") from None
    if not amount.is_finite():
        raise ValueError(f"Invalid monetary value: {value!r}")
    return amount.quantize(_CENTS, rounding=ROUND_HALF_UP)
