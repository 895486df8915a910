"""Type definitions for the settlement pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any

from uk_payroll.calculators.errors import IntegrityWarning
from uk_payroll.calculators.money import ZERO, from_pence


class TaxCodeKind(str, Enum):
    """How a tax code's allowance is applied."""

    STANDARD = "STANDARD"
    NEGATIVE = "NEGATIVE"
    BASIC_RATE_FLAT = "BASIC_RATE_FLAT"
    HIGHER_RATE_FLAT = "HIGHER_RATE_FLAT"
    ADDITIONAL_RATE_FLAT = "ADDITIONAL_RATE_FLAT"
    NO_TAX = "NO_TAX"
    EMERGENCY_ZERO = "EMERGENCY_ZERO"


FLAT_RATE_KINDS = frozenset(
    {
        TaxCodeKind.BASIC_RATE_FLAT,
        TaxCodeKind.HIGHER_RATE_FLAT,
        TaxCodeKind.ADDITIONAL_RATE_FLAT,
    }
)


class TaxBasis(str, Enum):
    """Cumulative (year-to-date) or non-cumulative (period only) tax."""

    CUMULATIVE = "CUMULATIVE"
    NON_CUMULATIVE = "NON_CUMULATIVE"


class StudentLoanPlan(str, Enum):
    """Student loan repayment plans."""

    PLAN_1 = "PLAN_1"
    PLAN_2 = "PLAN_2"
    PLAN_4 = "PLAN_4"
    PLAN_5 = "PLAN_5"
    POSTGRADUATE = "POSTGRADUATE"


class PensionModel(str, Enum):
    """Pension contribution models."""

    FLAT = "FLAT"
    TIERED = "TIERED"


@dataclass(frozen=True)
class TaxCodeDescriptor:
    """Parsed form of a tax code.

    ``annual_allowance`` is signed whole pounds, negative for K codes and
    ``Decimal("Infinity")`` for NT. ``monthly_free_pay`` follows the same sign.
    """

    code: str
    kind: TaxCodeKind
    annual_allowance: Decimal
    monthly_free_pay: Decimal

    @property
    def is_flat_rate(self) -> bool:
        return self.kind in FLAT_RATE_KINDS

    @property
    def is_no_tax(self) -> bool:
        return self.kind is TaxCodeKind.NO_TAX


@dataclass(frozen=True)
class TaxBracket:
    """Tax bracket for progressive taxation."""

    name: str
    min_amount: Decimal
    max_amount: Decimal | None  # None = no upper limit
    rate: Decimal  # As decimal, e.g., 0.20 for 20%


@dataclass(frozen=True)
class IncomeTaxResult:
    """Income tax for one period.

    On the non-cumulative basis the year-to-date totals are the prior totals
    plus this period, and ``free_pay_ytd`` is not set.
    """

    basis: TaxBasis
    free_pay: Decimal
    taxable_pay: Decimal
    tax_this_period: Decimal
    taxable_pay_ytd: Decimal
    tax_due_ytd: Decimal
    free_pay_ytd: Decimal | None = None


@dataclass(frozen=True)
class NIEarningsBands:
    """Earnings split across the NI reporting bands."""

    at_lel: Decimal = ZERO
    lel_to_pt: Decimal = ZERO
    pt_to_uel: Decimal = ZERO
    above_uel: Decimal = ZERO
    above_st: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        """Sum of the employee reporting bands (excludes ``above_st``)."""
        return self.at_lel + self.lel_to_pt + self.pt_to_uel + self.above_uel


@dataclass(frozen=True)
class NIResult:
    """Employee and employer National Insurance for one period."""

    category: str
    employee_contribution: Decimal
    employer_contribution: Decimal
    bands: NIEarningsBands
    warnings: tuple[IntegrityWarning, ...] = ()


@dataclass(frozen=True)
class StudentLoanDeduction:
    """Repayment for one plan."""

    plan: StudentLoanPlan
    amount: Decimal


@dataclass(frozen=True)
class PensionSelection:
    """Pension scheme choice for an employee.

    For the flat model ``employee_rate`` is required. For the tiered model an
    explicit ``employee_rate`` wins, then ``tier``, then
    ``prior_year_pensionable_pay``, then monthly pay projected over 12 months.
    """

    model: PensionModel
    employee_rate: Decimal | None = None
    employer_rate: Decimal | None = None
    tier: int | None = None
    prior_year_pensionable_pay: Decimal | None = None


@dataclass(frozen=True)
class PensionResult:
    """Employee and employer pension contributions for one period."""

    model: PensionModel
    employee_rate: Decimal
    employer_rate: Decimal
    employee_contribution: Decimal
    employer_contribution: Decimal
    tier: int | None = None
    annualised_pay: Decimal | None = None


@dataclass(frozen=True)
class YTDSnapshot:
    """Cumulative state after a settled period, in integer pence."""

    tax_year: str
    period: int
    tax_code: str
    gross_pay_pence: int
    taxable_pay_pence: int
    tax_pence: int
    ni_pence: int
    employer_ni_pence: int = 0
    student_loan_pence: int = 0
    employee_pension_pence: int = 0
    employer_pension_pence: int = 0

    @property
    def gross_pay(self) -> Decimal:
        return from_pence(self.gross_pay_pence)

    @property
    def taxable_pay(self) -> Decimal:
        return from_pence(self.taxable_pay_pence)

    @property
    def tax_paid(self) -> Decimal:
        return from_pence(self.tax_pence)

    @property
    def ni_paid(self) -> Decimal:
        return from_pence(self.ni_pence)

    def to_canonical_dict(self) -> dict[str, Any]:
        """Return canonical dict for hashing (deterministic ordering)."""
        return {
            "tax_year": self.tax_year,
            "period": self.period,
            "tax_code": self.tax_code,
            "gross_pay_pence": self.gross_pay_pence,
            "taxable_pay_pence": self.taxable_pay_pence,
            "tax_pence": self.tax_pence,
            "ni_pence": self.ni_pence,
            "employer_ni_pence": self.employer_ni_pence,
            "student_loan_pence": self.student_loan_pence,
            "employee_pension_pence": self.employee_pension_pence,
            "employer_pension_pence": self.employer_pension_pence,
        }


@dataclass(frozen=True)
class PeriodInput:
    """Everything needed to settle one employee-period, except prior state."""

    tax_year: str
    period: int
    gross_pay: Decimal
    tax_code: str
    basis: TaxBasis = TaxBasis.CUMULATIVE
    ni_category: str = "A"
    student_loan_plans: tuple[StudentLoanPlan, ...] = ()
    pension: PensionSelection | None = None

    def to_canonical_dict(self) -> dict[str, Any]:
        """Return canonical dict for hashing (deterministic ordering)."""
        pension = None
        if self.pension is not None:
            pension = {
                "model": self.pension.model.value,
                "employee_rate": _str_or_none(self.pension.employee_rate),
                "employer_rate": _str_or_none(self.pension.employer_rate),
                "tier": self.pension.tier,
                "prior_year_pensionable_pay": _str_or_none(
                    self.pension.prior_year_pensionable_pay
                ),
            }
        return {
            "tax_year": self.tax_year,
            "period": self.period,
            "gross_pay": str(self.gross_pay),
            "tax_code": self.tax_code,
            "basis": self.basis.value,
            "ni_category": self.ni_category,
            "student_loan_plans": sorted(p.value for p in self.student_loan_plans),
            "pension": pension,
        }


@dataclass(frozen=True)
class SettlementResult:
    """Result of settling one employee-period."""

    calculation_id: str
    band_table_version: str
    tax_year: str
    period: int
    basis: TaxBasis
    tax_code: TaxCodeDescriptor
    gross_pay: Decimal
    free_pay: Decimal
    taxable_pay: Decimal
    taxable_pay_ytd: Decimal
    tax_due_ytd: Decimal
    tax_this_period: Decimal
    ni: NIResult
    student_loans: tuple[StudentLoanDeduction, ...]
    pension: PensionResult | None
    net_pay: Decimal
    ytd: YTDSnapshot
    warnings: tuple[IntegrityWarning, ...] = field(default_factory=tuple)

    @property
    def student_loan_total(self) -> Decimal:
        return sum((d.amount for d in self.student_loans), ZERO)

    @property
    def is_refund(self) -> bool:
        return self.tax_this_period < 0


def _str_or_none(value: Decimal | None) -> str | None:
    return str(value) if value is not None else None
