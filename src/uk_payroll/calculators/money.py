"""Money helpers: rounding points and minor-unit conversion.

All internal arithmetic is done in pounds as ``Decimal``. Values crossing the
storage boundary are integer pence.
"""

from __future__ import annotations

from decimal import ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_UP, Decimal
from typing import Any

PENNY = Decimal("0.01")
POUND = Decimal("1")
ZERO = Decimal("0")
PENCE_PER_POUND = 100


def round_money(amount: Decimal) -> Decimal:
    """Round to 2 decimal places, half up."""
    return amount.quantize(PENNY, rounding=ROUND_HALF_UP)


def ceil_penny(amount: Decimal) -> Decimal:
    """Round up to the next whole penny (towards positive infinity)."""
    return amount.quantize(PENNY, rounding=ROUND_CEILING)


def floor_pounds(amount: Decimal) -> Decimal:
    """Round down to a whole pound (towards negative infinity)."""
    return amount.quantize(POUND, rounding=ROUND_FLOOR)


def to_pence(amount: Decimal) -> int:
    """Convert pounds to integer pence, rounding half up at the penny."""
    return int(round_money(amount) * PENCE_PER_POUND)


def from_pence(pence: int) -> Decimal:
    """Convert integer pence to pounds with 2 decimal places."""
    return (Decimal(pence) / PENCE_PER_POUND).quantize(PENNY)


def to_decimal(value: Any) -> Decimal:
    """Coerce an int, float, str or Decimal into a Decimal.

    Floats go through ``str`` so 0.1 stays 0.1. Booleans are refused since
    ``True`` is an int in Python.

    Raises:
        TypeError: If the value is not numeric.
        InvalidOperation: If a string cannot be parsed.
    """
    if isinstance(value, bool):
        raise TypeError("boolean is not a numeric amount")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, str):
        return Decimal(value.strip())
    raise TypeError(f"unsupported numeric type: {type(value).__name__}")
