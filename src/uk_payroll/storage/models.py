"""ORM models for settled snapshots and sickness data.

Money is stored in integer pence. Day counts are stored as numerics so half
days survive the round trip.
"""

from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Integer,
    Numeric,
    String,
    Text,
    Time,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from uk_payroll.calculators.types import SettlementResult, YTDSnapshot
from uk_payroll.sickness.types import (
    EligibilityRule,
    EntitlementUnit,
    EntitlementUsage,
    SicknessRecord,
    WorkDay,
    Weekday,
)

DAYS_NUMERIC = Numeric(8, 2)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    type_annotation_map = {
        UUID: Uuid(as_uuid=True),
        datetime: DateTime(timezone=True),
    }


class TimestampMixin:
    """Mixin for models with created_at timestamp."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )


# ===== Payroll =====


class PayrollSnapshot(Base, TimestampMixin):
    """Year-to-date state after a settled period. Written once, never updated."""

    __tablename__ = "payroll_ytd_snapshot"

    snapshot_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    tax_year: Mapped[str] = mapped_column(String(7), nullable=False)
    period: Mapped[int] = mapped_column(Integer, nullable=False)
    tax_code: Mapped[str] = mapped_column(String(10), nullable=False)
    gross_pay_pence: Mapped[int] = mapped_column(BigInteger, nullable=False)
    taxable_pay_pence: Mapped[int] = mapped_column(BigInteger, nullable=False)
    tax_pence: Mapped[int] = mapped_column(BigInteger, nullable=False)
    ni_pence: Mapped[int] = mapped_column(BigInteger, nullable=False)
    employer_ni_pence: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    student_loan_pence: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    employee_pension_pence: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    employer_pension_pence: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    calculation_id: Mapped[str] = mapped_column(String(36), nullable=False)
    band_table_version: Mapped[str] = mapped_column(String(32), nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "employee_id", "tax_year", "period", name="payroll_ytd_snapshot_period_unique"
        ),
        CheckConstraint("period BETWEEN 1 AND 12", name="payroll_ytd_snapshot_period_check"),
    )

    @classmethod
    def from_result(cls, employee_id: str, result: SettlementResult) -> PayrollSnapshot:
        ytd = result.ytd
        return cls(
            employee_id=employee_id,
            tax_year=ytd.tax_year,
            period=ytd.period,
            tax_code=ytd.tax_code,
            gross_pay_pence=ytd.gross_pay_pence,
            taxable_pay_pence=ytd.taxable_pay_pence,
            tax_pence=ytd.tax_pence,
            ni_pence=ytd.ni_pence,
            employer_ni_pence=ytd.employer_ni_pence,
            student_loan_pence=ytd.student_loan_pence,
            employee_pension_pence=ytd.employee_pension_pence,
            employer_pension_pence=ytd.employer_pension_pence,
            calculation_id=result.calculation_id,
            band_table_version=result.band_table_version,
        )

    def to_snapshot(self) -> YTDSnapshot:
        return YTDSnapshot(
            tax_year=self.tax_year,
            period=self.period,
            tax_code=self.tax_code,
            gross_pay_pence=self.gross_pay_pence,
            taxable_pay_pence=self.taxable_pay_pence,
            tax_pence=self.tax_pence,
            ni_pence=self.ni_pence,
            employer_ni_pence=self.employer_ni_pence,
            student_loan_pence=self.student_loan_pence,
            employee_pension_pence=self.employee_pension_pence,
            employer_pension_pence=self.employer_pension_pence,
        )


# ===== Sickness =====


class SicknessEnrolment(Base, TimestampMixin):
    """Links an employee to a sickness scheme and records the service start."""

    __tablename__ = "sickness_enrolment"

    employee_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    scheme_id: Mapped[str] = mapped_column(String(64), nullable=False)
    hire_date: Mapped[date] = mapped_column(Date, nullable=False)


class EligibilityRuleRow(Base):
    """One service-length band of a sickness scheme."""

    __tablename__ = "sickness_eligibility_rule"

    rule_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    scheme_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    service_from: Mapped[int] = mapped_column(Integer, nullable=False)
    service_to: Mapped[int | None] = mapped_column(Integer, nullable=True)
    service_unit: Mapped[str] = mapped_column(String(8), nullable=False)
    full_pay_amount: Mapped[Decimal] = mapped_column(DAYS_NUMERIC, nullable=False)
    full_pay_unit: Mapped[str] = mapped_column(String(8), nullable=False)
    half_pay_amount: Mapped[Decimal] = mapped_column(DAYS_NUMERIC, nullable=False)
    half_pay_unit: Mapped[str] = mapped_column(String(8), nullable=False)
    has_waiting_days: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    @classmethod
    def from_rule(cls, scheme_id: str, rule: EligibilityRule) -> EligibilityRuleRow:
        return cls(
            rule_id=rule.id,
            scheme_id=scheme_id,
            service_from=rule.service_from,
            service_to=rule.service_to,
            service_unit=rule.service_unit.value,
            full_pay_amount=rule.full_pay_amount,
            full_pay_unit=rule.full_pay_unit.value,
            half_pay_amount=rule.half_pay_amount,
            half_pay_unit=rule.half_pay_unit.value,
            has_waiting_days=rule.has_waiting_days,
        )

    def to_rule(self) -> EligibilityRule:
        return EligibilityRule(
            id=self.rule_id,
            service_from=self.service_from,
            service_to=self.service_to,
            service_unit=EntitlementUnit(self.service_unit),
            full_pay_amount=Decimal(self.full_pay_amount),
            full_pay_unit=EntitlementUnit(self.full_pay_unit),
            half_pay_amount=Decimal(self.half_pay_amount),
            half_pay_unit=EntitlementUnit(self.half_pay_unit),
            has_waiting_days=self.has_waiting_days,
        )


class SicknessRecordRow(Base, TimestampMixin):
    """A recorded sickness absence."""

    __tablename__ = "sickness_record"

    record_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    total_days: Mapped[Decimal | None] = mapped_column(DAYS_NUMERIC, nullable=True)
    is_certified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_ongoing: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "end_date IS NULL OR end_date >= start_date", name="sickness_record_dates_check"
        ),
    )

    def apply(self, record: SicknessRecord) -> None:
        self.start_date = record.start_date
        self.end_date = record.end_date
        self.total_days = record.total_days
        self.is_certified = record.is_certified
        self.is_ongoing = record.is_ongoing
        self.notes = record.notes

    def to_record(self) -> SicknessRecord:
        return SicknessRecord(
            id=str(self.record_id),
            start_date=self.start_date,
            end_date=self.end_date,
            total_days=Decimal(self.total_days) if self.total_days is not None else None,
            is_certified=self.is_certified,
            is_ongoing=self.is_ongoing,
            notes=self.notes,
        )


class EntitlementUsageRow(Base):
    """Resolved entitlement for an employee. Replaced wholesale on recalculation."""

    __tablename__ = "sickness_entitlement_usage"

    employee_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    scheme_id: Mapped[str] = mapped_column(String(64), nullable=False)
    full_pay_entitled_days: Mapped[Decimal] = mapped_column(DAYS_NUMERIC, nullable=False)
    half_pay_entitled_days: Mapped[Decimal] = mapped_column(DAYS_NUMERIC, nullable=False)
    opening_balance_full_pay: Mapped[Decimal] = mapped_column(DAYS_NUMERIC, nullable=False, default=0)
    opening_balance_half_pay: Mapped[Decimal] = mapped_column(DAYS_NUMERIC, nullable=False, default=0)
    opening_balance_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    opening_balance_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    current_rule_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    current_service_months: Mapped[int] = mapped_column(Integer, nullable=False)
    working_days_per_week: Mapped[int] = mapped_column(Integer, nullable=False)
    waiting_days_apply: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    def apply(self, usage: EntitlementUsage) -> None:
        self.scheme_id = usage.scheme_id
        self.full_pay_entitled_days = usage.full_pay_entitled_days
        self.half_pay_entitled_days = usage.half_pay_entitled_days
        self.opening_balance_full_pay = usage.opening_balance_full_pay
        self.opening_balance_half_pay = usage.opening_balance_half_pay
        self.opening_balance_date = usage.opening_balance_date
        self.opening_balance_notes = usage.opening_balance_notes
        self.current_rule_id = usage.current_rule_id
        self.current_service_months = usage.current_service_months
        self.working_days_per_week = usage.working_days_per_week
        self.waiting_days_apply = usage.waiting_days_apply

    def to_usage(self) -> EntitlementUsage:
        return EntitlementUsage(
            employee_id=self.employee_id,
            scheme_id=self.scheme_id,
            full_pay_entitled_days=Decimal(self.full_pay_entitled_days),
            half_pay_entitled_days=Decimal(self.half_pay_entitled_days),
            current_rule_id=self.current_rule_id,
            current_service_months=self.current_service_months,
            working_days_per_week=self.working_days_per_week,
            opening_balance_full_pay=Decimal(self.opening_balance_full_pay),
            opening_balance_half_pay=Decimal(self.opening_balance_half_pay),
            opening_balance_date=self.opening_balance_date,
            opening_balance_notes=self.opening_balance_notes,
            waiting_days_apply=self.waiting_days_apply,
        )


class WorkPatternDayRow(Base):
    """One weekday of an employee's work pattern."""

    __tablename__ = "work_pattern_day"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    employee_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    day: Mapped[str] = mapped_column(String(9), nullable=False)
    is_working: Mapped[bool] = mapped_column(Boolean, nullable=False)
    start_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    end_time: Mapped[time | None] = mapped_column(Time, nullable=True)

    __table_args__ = (
        UniqueConstraint("employee_id", "day", name="work_pattern_day_unique"),
    )

    def to_work_day(self) -> WorkDay:
        return WorkDay(
            day=Weekday(self.day),
            is_working=self.is_working,
            start_time=self.start_time,
            end_time=self.end_time,
        )
