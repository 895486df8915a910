"""Gross pay from hours worked at an employee's numbered rates."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from uk_payroll.calculators.errors import PayrollInputError
from uk_payroll.calculators.money import ZERO, round_money
from uk_payroll.calculators.validation import validate_gross_pay

logger = logging.getLogger(__name__)

RATE_LABEL_PATTERN = re.compile(r"^rate\s*(\d+)$", re.IGNORECASE)


class RateSlot(int, Enum):
    """The four rates an employee can be paid at."""

    RATE_1 = 1
    RATE_2 = 2
    RATE_3 = 3
    RATE_4 = 4


class UnknownRateSlotError(PayrollInputError):
    """Raised when a rate label does not name one of the four slots."""

    code = "UNKNOWN_RATE_SLOT"

    def __init__(self, label: str):
        self.label = label
        super().__init__(f"Unknown rate type '{label}'", field="rate_type", value=label)


@dataclass(frozen=True)
class EmployeeRates:
    """An employee's hourly rate and optional additional rates."""

    hourly: Decimal | None = None
    rate_2: Decimal | None = None
    rate_3: Decimal | None = None
    rate_4: Decimal | None = None


def _first_set(*values: Decimal | None) -> Decimal:
    for value in values:
        if value:
            return round_money(value)
    return ZERO


def resolve_rate(slot: RateSlot, rates: EmployeeRates) -> Decimal:
    """Return the rate paid for a slot.

    Rate 2 falls back to the hourly rate and rate 3 falls back to rate 2.
    Rates 1 and 4 have no fallback. An unset rate resolves to zero.
    """
    if slot is RateSlot.RATE_1:
        return _first_set(rates.hourly)
    if slot is RateSlot.RATE_2:
        return _first_set(rates.rate_2, rates.hourly)
    if slot is RateSlot.RATE_3:
        return _first_set(rates.rate_3, rates.rate_2)
    if slot is RateSlot.RATE_4:
        return _first_set(rates.rate_4)
    raise ValueError(f"Unhandled rate slot {slot!r}")


def parse_rate_slot(label: str | None) -> RateSlot:
    """Map an imported rate label such as ``"Rate 2"`` to a slot.

    An empty label and ``"standard"`` both mean rate 1.

    Raises:
        UnknownRateSlotError: If the label names no slot.
    """
    text = (label or "").strip()
    if not text or text.lower() == "standard":
        return RateSlot.RATE_1
    match = RATE_LABEL_PATTERN.match(text)
    if match:
        try:
            return RateSlot(int(match.group(1)))
        except ValueError:
            pass
    raise UnknownRateSlotError(text)


def gross_from_hours(
    entries: Iterable[tuple[RateSlot, Decimal]], rates: EmployeeRates
) -> Decimal:
    """Sum hours x resolved rate across entries, rounded to pence."""
    total = ZERO
    for slot, hours in entries:
        hours = validate_gross_pay(hours, field="hours")
        rate = resolve_rate(slot, rates)
        if rate == ZERO:
            logger.warning("No rate set for %s; %s hours paid at zero", slot.name, hours)
        total += hours * rate
    return round_money(total)
