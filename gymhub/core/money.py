"""Decimal helpers for prices and totals."""

from decimal import Decimal, ROUND_HALF_UP
from typing import Union

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value: Union[Decimal, int, float, str, None]) -> Decimal:
    """Coerce to a Decimal rounded half-up to cents. None becomes 0.00."""
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        # str() keeps floats from dragging binary noise into the amount
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def format_money(value: Decimal) -> str:
    return f"{to_money(value):.2f}"
