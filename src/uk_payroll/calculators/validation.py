"""Input validation at the calculator boundary.

Each validator returns the normalized value or raises
:class:`InvalidNumericInputError` carrying the field and offending value.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

from uk_payroll.calculators.errors import InvalidNumericInputError, PayrollInputError
from uk_payroll.calculators.money import ZERO, to_decimal
from uk_payroll.calculators.tax_year import parse_tax_year

DEFAULT_GROSS_PAY_CEILING = Decimal("10000000")
FIRST_PERIOD = 1
LAST_PERIOD = 12


def _finite_decimal(field: str, value: Any) -> Decimal:
    try:
        amount = to_decimal(value)
    except (TypeError, InvalidOperation):
        raise InvalidNumericInputError(field, value, "not a number") from None
    if amount.is_nan():
        raise InvalidNumericInputError(field, value, "not a number")
    if amount.is_infinite():
        raise InvalidNumericInputError(field, value, "must be finite")
    return amount


def validate_gross_pay(
    value: Any,
    ceiling: Decimal = DEFAULT_GROSS_PAY_CEILING,
    field: str = "gross_pay",
) -> Decimal:
    """Gross pay must be finite, non-negative and no larger than ``ceiling``."""
    amount = _finite_decimal(field, value)
    if amount < ZERO:
        raise InvalidNumericInputError(field, value, "must not be negative")
    if amount > ceiling:
        raise InvalidNumericInputError(field, value, f"exceeds the ceiling of {ceiling}")
    return amount


def validate_tax_paid(value: Any, field: str = "tax_paid_ytd") -> Decimal:
    """Tax already paid must be finite. Negative values are carried refunds."""
    return _finite_decimal(field, value)


def validate_period(value: Any, field: str = "period") -> int:
    """Period must be an integer from 1 to 12."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidNumericInputError(field, value, "must be an integer")
    if not FIRST_PERIOD <= value <= LAST_PERIOD:
        raise InvalidNumericInputError(
            field, value, f"must be between {FIRST_PERIOD} and {LAST_PERIOD}"
        )
    return value


def validate_rate(value: Any, field: str) -> Decimal:
    """Contribution rates are fractions between 0 and 1."""
    rate = _finite_decimal(field, value)
    if not ZERO <= rate <= Decimal("1"):
        raise InvalidNumericInputError(field, value, "must be between 0 and 1")
    return rate


def validate_tax_year(value: Any, field: str = "tax_year") -> str:
    """Tax year labels look like ``2025-26`` and span consecutive years."""
    try:
        parse_tax_year(value)
    except (TypeError, ValueError) as exc:
        raise PayrollInputError(str(exc), field=field, value=value) from None
    return value


def validate_days(value: Any, field: str) -> Decimal:
    """Day counts must be finite and not negative. Fractions are allowed."""
    days = _finite_decimal(field, value)
    if days < ZERO:
        raise InvalidNumericInputError(field, value, "must not be negative")
    return days
