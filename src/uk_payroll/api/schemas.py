"""Pydantic schemas for API request/response models."""

from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from uk_payroll.calculators.types import (
    PensionModel,
    PensionSelection,
    PeriodInput,
    SettlementResult,
    StudentLoanPlan,
    TaxBasis,
    TaxCodeDescriptor,
    TaxCodeKind,
    YTDSnapshot,
)
from uk_payroll.sickness.types import (
    EligibilityRule,
    EntitlementSummary,
    EntitlementUnit,
    SicknessRecord,
    WorkDay,
    Weekday,
)


def _finite(value: Decimal) -> Decimal | None:
    """NT codes carry an infinite allowance, which JSON cannot hold."""
    return value if value.is_finite() else None


# ============================================================================
# Errors
# ============================================================================


class ErrorResponse(BaseModel):
    """Schema for error response."""

    detail: str
    code: str | None = None
    field: str | None = None
    context: dict[str, Any] | None = None


# ============================================================================
# Tax codes
# ============================================================================


class TaxCodeResponse(BaseModel):
    """Parsed tax code. Allowance fields are null for NT."""

    code: str
    kind: TaxCodeKind
    annual_allowance: Decimal | None
    monthly_free_pay: Decimal | None
    is_flat_rate: bool
    is_no_tax: bool

    @classmethod
    def from_descriptor(cls, descriptor: TaxCodeDescriptor) -> TaxCodeResponse:
        return cls(
            code=descriptor.code,
            kind=descriptor.kind,
            annual_allowance=_finite(descriptor.annual_allowance),
            monthly_free_pay=_finite(descriptor.monthly_free_pay),
            is_flat_rate=descriptor.is_flat_rate,
            is_no_tax=descriptor.is_no_tax,
        )


class TaxPeriodResponse(BaseModel):
    """The monthly tax period containing a date."""

    on: date
    tax_year: str
    period: int
    period_start: date
    period_end: date


# ============================================================================
# Settlement
# ============================================================================


class PensionSelectionSchema(BaseModel):
    """Pension scheme selection for a period."""

    model: PensionModel
    employee_rate: Decimal | None = None
    employer_rate: Decimal | None = None
    tier: int | None = None
    prior_year_pensionable_pay: Decimal | None = None

    def to_selection(self) -> PensionSelection:
        return PensionSelection(
            model=self.model,
            employee_rate=self.employee_rate,
            employer_rate=self.employer_rate,
            tier=self.tier,
            prior_year_pensionable_pay=self.prior_year_pensionable_pay,
        )


class PeriodInputSchema(BaseModel):
    """One employee-period to settle."""

    tax_year: str | None = Field(default=None, examples=["2025-26"])
    period: int
    gross_pay: Decimal
    tax_code: str
    basis: TaxBasis = TaxBasis.CUMULATIVE
    ni_category: str = "A"
    student_loan_plans: list[StudentLoanPlan] = Field(default_factory=list)
    pension: PensionSelectionSchema | None = None

    def to_period_input(self, default_tax_year: str) -> PeriodInput:
        """Build the calculator input. A missing tax year means ``default_tax_year``."""
        return PeriodInput(
            tax_year=self.tax_year or default_tax_year,
            period=self.period,
            gross_pay=self.gross_pay,
            tax_code=self.tax_code,
            basis=self.basis,
            ni_category=self.ni_category,
            student_loan_plans=tuple(self.student_loan_plans),
            pension=self.pension.to_selection() if self.pension else None,
        )


class YTDSnapshotSchema(BaseModel):
    """Year-to-date totals after a settled period, in pence."""

    model_config = ConfigDict(from_attributes=True)

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

    def to_snapshot(self) -> YTDSnapshot:
        return YTDSnapshot(**self.model_dump())


class SettlementPreviewRequest(BaseModel):
    """Settle a period against an explicit prior snapshot without storing anything."""

    period_input: PeriodInputSchema
    prior: YTDSnapshotSchema | None = None


class NIBandsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    at_lel: Decimal
    lel_to_pt: Decimal
    pt_to_uel: Decimal
    above_uel: Decimal
    above_st: Decimal


class NIResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    category: str
    employee_contribution: Decimal
    employer_contribution: Decimal
    bands: NIBandsResponse


class StudentLoanResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    plan: StudentLoanPlan
    amount: Decimal


class PensionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    model: PensionModel
    employee_rate: Decimal
    employer_rate: Decimal
    employee_contribution: Decimal
    employer_contribution: Decimal
    tier: int | None = None
    annualised_pay: Decimal | None = None


class WarningResponse(BaseModel):
    code: str
    message: str
    details: dict[str, Any] = Field(default_factory=dict)


class SettlementResponse(BaseModel):
    """Settled period with the snapshot to store for the next one."""

    calculation_id: str
    band_table_version: str
    tax_year: str
    period: int
    basis: TaxBasis
    tax_code: TaxCodeResponse
    gross_pay: Decimal
    free_pay: Decimal | None
    taxable_pay: Decimal
    taxable_pay_ytd: Decimal
    tax_due_ytd: Decimal
    tax_this_period: Decimal
    is_refund: bool
    ni: NIResponse
    student_loans: list[StudentLoanResponse]
    student_loan_total: Decimal
    pension: PensionResponse | None
    net_pay: Decimal
    ytd: YTDSnapshotSchema
    warnings: list[WarningResponse]

    @classmethod
    def from_result(cls, result: SettlementResult) -> SettlementResponse:
        return cls(
            calculation_id=result.calculation_id,
            band_table_version=result.band_table_version,
            tax_year=result.tax_year,
            period=result.period,
            basis=result.basis,
            tax_code=TaxCodeResponse.from_descriptor(result.tax_code),
            gross_pay=result.gross_pay,
            free_pay=_finite(result.free_pay),
            taxable_pay=result.taxable_pay,
            taxable_pay_ytd=result.taxable_pay_ytd,
            tax_due_ytd=result.tax_due_ytd,
            tax_this_period=result.tax_this_period,
            is_refund=result.is_refund,
            ni=NIResponse.model_validate(result.ni),
            student_loans=[StudentLoanResponse.model_validate(d) for d in result.student_loans],
            student_loan_total=result.student_loan_total,
            pension=PensionResponse.model_validate(result.pension) if result.pension else None,
            net_pay=result.net_pay,
            ytd=YTDSnapshotSchema.model_validate(result.ytd),
            warnings=[WarningResponse(**w.to_dict()) for w in result.warnings],
        )


class StoredSnapshotResponse(YTDSnapshotSchema):
    """A stored snapshot row."""

    snapshot_id: UUID
    employee_id: str
    calculation_id: str
    band_table_version: str
    created_at: datetime


class StoredSnapshotListResponse(BaseModel):
    items: list[StoredSnapshotResponse]
    total: int


# ============================================================================
# Sickness
# ============================================================================


class SicknessRecordRequest(BaseModel):
    """Create or replace a sickness record."""

    start_date: date
    end_date: date | None = None
    total_days: Decimal | None = None
    is_certified: bool = False
    is_ongoing: bool = False
    notes: str | None = None

    def to_record(self) -> SicknessRecord:
        return SicknessRecord(
            start_date=self.start_date,
            end_date=self.end_date,
            total_days=self.total_days,
            is_certified=self.is_certified,
            is_ongoing=self.is_ongoing,
            notes=self.notes,
        )


class SicknessRecordResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    start_date: date
    end_date: date | None
    total_days: Decimal | None
    is_certified: bool
    is_ongoing: bool
    notes: str | None


class EnrolmentRequest(BaseModel):
    """Enrol an employee in a sickness scheme."""

    scheme_id: str
    hire_date: date


class EligibilityRuleSchema(BaseModel):
    """Service-length band of a sickness scheme."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    service_from: int
    service_to: int | None = None
    service_unit: EntitlementUnit = EntitlementUnit.MONTHS
    full_pay_amount: Decimal
    full_pay_unit: EntitlementUnit
    half_pay_amount: Decimal
    half_pay_unit: EntitlementUnit
    has_waiting_days: bool = False

    def to_rule(self) -> EligibilityRule:
        return EligibilityRule(**self.model_dump())


class SchemeRulesRequest(BaseModel):
    rules: list[EligibilityRuleSchema]


class WorkDaySchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    day: Weekday
    is_working: bool
    start_time: time | None = None
    end_time: time | None = None

    def to_work_day(self) -> WorkDay:
        return WorkDay(**self.model_dump())


class WorkPatternRequest(BaseModel):
    days: list[WorkDaySchema]


class WorkPatternResponse(BaseModel):
    days: list[WorkDaySchema]
    working_days_per_week: int


class EntitlementUsageResponse(BaseModel):
    """Stored entitlement after enrolment or recalculation."""

    model_config = ConfigDict(from_attributes=True)

    employee_id: str
    scheme_id: str
    current_rule_id: str | None
    current_service_months: int
    working_days_per_week: int
    full_pay_entitled_days: Decimal
    half_pay_entitled_days: Decimal
    full_pay_allowance: Decimal
    half_pay_allowance: Decimal
    opening_balance_full_pay: Decimal
    opening_balance_half_pay: Decimal
    opening_balance_date: date | None
    opening_balance_notes: str | None
    waiting_days_apply: bool


class OpeningBalanceRequest(BaseModel):
    """Sickness days brought forward from before enrolment."""

    full_pay_days: Decimal = Field(examples=["3"])
    half_pay_days: Decimal = Field(examples=["1.5"])
    reference_date: date
    notes: str | None = Field(default=None, max_length=1000)


class BandAllocationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_days: Decimal
    full_pay_days: Decimal
    half_pay_days: Decimal
    statutory_days: Decimal
    unpaid_days: Decimal
    waiting_days: Decimal


class SSPUsageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    qualifying_days_per_week: int
    entitled_days: int
    used_rolling: int
    used_current_year: int
    remaining: int


class EntitlementSummaryResponse(BaseModel):
    """Entitlement as of a reference date."""

    model_config = ConfigDict(from_attributes=True)

    employee_id: str
    reference_date: date
    window_start: date
    window_end: date
    service_months: int
    rule_id: str | None
    working_days_per_week: int
    full_pay_allowance: Decimal
    half_pay_allowance: Decimal
    full_pay_used: Decimal
    half_pay_used: Decimal
    full_pay_remaining: Decimal
    half_pay_remaining: Decimal
    opening_balance_full_pay: Decimal
    opening_balance_half_pay: Decimal
    opening_balance_date: date | None
    rolling: BandAllocationResponse
    current_year: BandAllocationResponse
    ssp: SSPUsageResponse

    @classmethod
    def from_summary(cls, summary: EntitlementSummary) -> EntitlementSummaryResponse:
        return cls.model_validate(summary)
