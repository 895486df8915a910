"""Tax code parsing and classification.

Every input either yields a :class:`TaxCodeDescriptor` or raises a classified
error. Nothing is defaulted.

Free pay follows the HMRC tables: the numeric part is multiplied by 10, 9 is
added, the result is divided by the number of periods and rounded up to the
next penny. ``1257L`` therefore gives an annual allowance of 12,570 and monthly
free pay of 1,048.25.
"""

from __future__ import annotations

import logging
import re
from decimal import Decimal

from uk_payroll.calculators.errors import UnrecognizedTaxCodeError, UnsupportedTaxRegionError
from uk_payroll.calculators.money import ZERO, ceil_penny
from uk_payroll.calculators.types import TaxCodeDescriptor, TaxCodeKind

logger = logging.getLogger(__name__)

MAX_TAX_CODE_LENGTH = 10
PERIODS_PER_YEAR = 12
INFINITE_ALLOWANCE = Decimal("Infinity")

STANDARD_PATTERN = re.compile(r"^(\d+)[LMNT]$")
K_CODE_PATTERN = re.compile(r"^K(\d+)$")
ALPHANUMERIC_PATTERN = re.compile(r"^[A-Z0-9]+$")

FLAT_CODES: dict[str, TaxCodeKind] = {
    "BR": TaxCodeKind.BASIC_RATE_FLAT,
    "D0": TaxCodeKind.HIGHER_RATE_FLAT,
    "D1": TaxCodeKind.ADDITIONAL_RATE_FLAT,
}

REGION_PREFIXES: dict[str, str] = {
    "S": "Scotland",
    "C": "Wales",
}

# Scottish flat-rate codes that have no counterpart in the default region.
REGIONAL_ONLY_CODES = frozenset({"D2", "D3", "D4", "D5", "D6", "D7", "D8"})


def monthly_free_pay(numeric_part: int) -> Decimal:
    """Monthly free pay for the numeric part of a code, before sign."""
    return ceil_penny(Decimal(numeric_part * 10 + 9) / PERIODS_PER_YEAR)


def parse_tax_code(code: str) -> TaxCodeDescriptor:
    """Parse a tax code string.

    Raises:
        UnrecognizedTaxCodeError: The code does not match any known pattern.
        UnsupportedTaxRegionError: The code carries a regional prefix.
    """
    if not isinstance(code, str):
        raise UnrecognizedTaxCodeError(repr(code))

    normalized = code.strip().upper()
    if not normalized or len(normalized) > MAX_TAX_CODE_LENGTH:
        raise UnrecognizedTaxCodeError(code)
    if not ALPHANUMERIC_PATTERN.match(normalized):
        raise UnrecognizedTaxCodeError(code)

    descriptor = _match_default_region(normalized)
    if descriptor is not None:
        return descriptor

    region = REGION_PREFIXES.get(normalized[0])
    if region is not None:
        remainder = normalized[1:]
        if remainder in REGIONAL_ONLY_CODES or _match_default_region(remainder) is not None:
            logger.debug("Rejecting regional tax code %s (%s)", normalized, region)
            raise UnsupportedTaxRegionError(normalized, region)

    raise UnrecognizedTaxCodeError(code)


def _match_default_region(code: str) -> TaxCodeDescriptor | None:
    """Classify a normalized code against the default-region patterns."""
    if code == "0T":
        return TaxCodeDescriptor(
            code=code,
            kind=TaxCodeKind.EMERGENCY_ZERO,
            annual_allowance=ZERO,
            monthly_free_pay=ZERO,
        )

    if code == "NT":
        return TaxCodeDescriptor(
            code=code,
            kind=TaxCodeKind.NO_TAX,
            annual_allowance=INFINITE_ALLOWANCE,
            monthly_free_pay=INFINITE_ALLOWANCE,
        )

    flat_kind = FLAT_CODES.get(code)
    if flat_kind is not None:
        return TaxCodeDescriptor(
            code=code,
            kind=flat_kind,
            annual_allowance=ZERO,
            monthly_free_pay=ZERO,
        )

    match = STANDARD_PATTERN.match(code)
    if match:
        digits = int(match.group(1))
        return TaxCodeDescriptor(
            code=code,
            kind=TaxCodeKind.STANDARD,
            annual_allowance=Decimal(digits * 10),
            monthly_free_pay=monthly_free_pay(digits),
        )

    match = K_CODE_PATTERN.match(code)
    if match:
        digits = int(match.group(1))
        # K0 would be a zero deduction, which is not a K code.
        if digits == 0:
            return None
        return TaxCodeDescriptor(
            code=code,
            kind=TaxCodeKind.NEGATIVE,
            annual_allowance=Decimal(-digits * 10),
            monthly_free_pay=-monthly_free_pay(digits),
        )

    return None
