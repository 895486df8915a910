"""Error taxonomy for the calculation engines."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


class PayrollInputError(ValueError):
    """Base class for inputs rejected before any calculation runs."""

    code = "INVALID_INPUT"

    def __init__(self, message: str, field: str | None = None, value: Any = None):
        self.field = field
        self.value = value
        super().__init__(message)


class UnrecognizedTaxCodeError(PayrollInputError):
    """Raised when a tax code matches no known pattern."""

    code = "UNRECOGNIZED_TAX_CODE"

    def __init__(self, tax_code: str):
        self.tax_code = tax_code
        super().__init__(f"Unrecognized tax code '{tax_code}'", field="tax_code", value=tax_code)


class UnsupportedTaxRegionError(PayrollInputError):
    """Raised for a regional tax code whose band table is not implemented."""

    code = "UNSUPPORTED_TAX_REGION"

    def __init__(self, tax_code: str, region: str):
        self.tax_code = tax_code
        self.region = region
        super().__init__(
            f"Tax code '{tax_code}' uses the {region} rates, which are not supported",
            field="tax_code",
            value=tax_code,
        )


class InvalidNumericInputError(PayrollInputError):
    """Raised when a numeric input is negative, non-finite or out of range."""

    code = "INVALID_NUMERIC_INPUT"

    def __init__(self, field: str, value: Any, reason: str):
        self.reason = reason
        super().__init__(f"Invalid {field} {value!r}: {reason}", field=field, value=value)


class OutOfSequencePeriodError(PayrollInputError):
    """Raised when the prior snapshot is not the immediately preceding period."""

    code = "OUT_OF_SEQUENCE_PERIOD"

    def __init__(
        self,
        tax_year: str,
        expected_period: int,
        actual_period: int | None,
        reason: str | None = None,
    ):
        self.tax_year = tax_year
        self.expected_period = expected_period
        self.actual_period = actual_period
        msg = (
            f"Settlement for {tax_year} needs the snapshot of period {expected_period}, "
            f"got {actual_period if actual_period is not None else 'none'}"
        )
        if reason:
            msg += f": {reason}"
        super().__init__(msg, field="prior_snapshot", value=actual_period)


class BandTableNotFoundError(LookupError):
    """Raised when no band table is registered for a tax year."""

    code = "BAND_TABLE_NOT_FOUND"

    def __init__(self, tax_year: str):
        self.tax_year = tax_year
        super().__init__(f"No band table registered for tax year '{tax_year}'")


@dataclass(frozen=True)
class IntegrityWarning:
    """Non-fatal consistency signal attached to a result.

    Integrity warnings are logged and carried on the result. They never stop a
    calculation.
    """

    code: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": dict(self.details)}
