"""Type definitions for sickness entitlement."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, time
from decimal import Decimal
from enum import Enum

from uk_payroll.calculators.errors import PayrollInputError

logger = logging.getLogger(__name__)

DAYS_ZERO = Decimal("0")


class Weekday(str, Enum):
    """Days of the week, Monday first to match ``date.weekday()``."""

    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"

    @classmethod
    def of(cls, day: date) -> Weekday:
        return WEEKDAYS[day.weekday()]


WEEKDAYS: tuple[Weekday, ...] = tuple(Weekday)


class EntitlementUnit(str, Enum):
    """Unit a service length or entitlement amount is declared in."""

    DAYS = "days"
    WEEKS = "weeks"
    MONTHS = "months"


class InvalidWorkPatternError(PayrollInputError):
    """Raised when a weekly pattern is not exactly one entry per weekday."""

    code = "INVALID_WORK_PATTERN"

    def __init__(self, reason: str, days: list[str] | None = None):
        self.reason = reason
        self.days = days or []
        message = f"Invalid work pattern: {reason}"
        if self.days:
            message += f" ({', '.join(self.days)})"
        super().__init__(message, field="work_pattern", value=self.days)


class InvalidEligibilityRulesError(PayrollInputError):
    """Raised when a scheme's rules leave gaps or overlap."""

    code = "INVALID_ELIGIBILITY_RULES"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid eligibility rules: {reason}", field="rules")


@dataclass(frozen=True)
class WorkDay:
    """One weekday of a work pattern."""

    day: Weekday
    is_working: bool
    start_time: time | None = None
    end_time: time | None = None


@dataclass(frozen=True)
class WorkPattern:
    """A complete weekly pattern: exactly seven days, Monday first."""

    days: tuple[WorkDay, ...]

    def __post_init__(self) -> None:
        if tuple(d.day for d in self.days) != WEEKDAYS:
            raise InvalidWorkPatternError(
                "pattern must list each weekday once, Monday first",
                [d.day.value for d in self.days],
            )

    @classmethod
    def from_days(cls, days: Iterable[WorkDay], strict: bool = True) -> WorkPattern:
        """Build a pattern from stored days in any order.

        With ``strict`` a duplicate or missing weekday raises. Without it the
        last duplicate wins and missing weekdays are added as non-working, each
        default being logged.
        """
        by_day: dict[Weekday, WorkDay] = {}
        duplicates: list[str] = []
        for work_day in days:
            if work_day.day in by_day:
                duplicates.append(work_day.day.value)
            by_day[work_day.day] = work_day

        missing = [d.value for d in WEEKDAYS if d not in by_day]
        if strict and duplicates:
            raise InvalidWorkPatternError("duplicate weekdays", duplicates)
        if strict and missing:
            raise InvalidWorkPatternError("missing weekdays", missing)
        if duplicates:
            logger.warning("Work pattern repeats %s; using the last entry", ", ".join(duplicates))
        for name in missing:
            logger.warning("Work pattern has no entry for %s; treating it as non-working", name)
            by_day[Weekday(name)] = WorkDay(day=Weekday(name), is_working=False)

        return cls(days=tuple(by_day[d] for d in WEEKDAYS))

    @classmethod
    def standard(cls) -> WorkPattern:
        """Monday to Friday."""
        return cls(
            days=tuple(WorkDay(day=d, is_working=i < 5) for i, d in enumerate(WEEKDAYS))
        )

    def is_working(self, day: Weekday) -> bool:
        return self.days[WEEKDAYS.index(day)].is_working

    @property
    def working_weekdays(self) -> frozenset[Weekday]:
        return frozenset(d.day for d in self.days if d.is_working)

    @property
    def working_days_per_week(self) -> int:
        return len(self.working_weekdays)


@dataclass(frozen=True)
class EligibilityRule:
    """Service-length band ``[service_from, service_to)`` and its entitlement."""

    id: str
    service_from: int
    service_to: int | None
    service_unit: EntitlementUnit
    full_pay_amount: Decimal
    full_pay_unit: EntitlementUnit
    half_pay_amount: Decimal
    half_pay_unit: EntitlementUnit
    has_waiting_days: bool = False


@dataclass(frozen=True)
class SicknessRecord:
    """A period of sickness absence.

    ``total_days`` is the stored day count; when it is None the count is
    derived from the work pattern. An open-ended record without
    ``is_ongoing`` is treated as a single day.
    """

    start_date: date
    end_date: date | None = None
    total_days: Decimal | None = None
    is_certified: bool = False
    is_ongoing: bool = False
    id: str | None = None
    notes: str | None = None

    def effective_end(self, reference_date: date) -> date:
        """End date used for window overlap and day counting."""
        if self.end_date is not None:
            return self.end_date
        if self.is_ongoing:
            return max(self.start_date, reference_date)
        return self.start_date


@dataclass(frozen=True)
class EntitlementUsage:
    """Resolved entitlement for one employee and scheme.

    Replaced, never edited, when the applicable rule, service length or
    work pattern changes. Opening balances carry over on replacement.
    """

    employee_id: str
    scheme_id: str
    full_pay_entitled_days: Decimal
    half_pay_entitled_days: Decimal
    current_rule_id: str | None
    current_service_months: int
    working_days_per_week: int
    opening_balance_full_pay: Decimal = DAYS_ZERO
    opening_balance_half_pay: Decimal = DAYS_ZERO
    opening_balance_date: date | None = None
    opening_balance_notes: str | None = None
    waiting_days_apply: bool = False

    @property
    def full_pay_allowance(self) -> Decimal:
        return self.full_pay_entitled_days + self.opening_balance_full_pay

    @property
    def half_pay_allowance(self) -> Decimal:
        return self.half_pay_entitled_days + self.opening_balance_half_pay


@dataclass(frozen=True)
class BandAllocation:
    """Sickness days split across the payment bands in priority order."""

    total_days: Decimal = DAYS_ZERO
    full_pay_days: Decimal = DAYS_ZERO
    half_pay_days: Decimal = DAYS_ZERO
    statutory_days: Decimal = DAYS_ZERO
    unpaid_days: Decimal = DAYS_ZERO
    waiting_days: Decimal = DAYS_ZERO


@dataclass(frozen=True)
class RecordAllocation:
    """How one sickness record is paid."""

    record: SicknessRecord
    days: Decimal
    allocation: BandAllocation

    @property
    def description(self) -> str:
        parts = []
        a = self.allocation
        for label, value in (
            ("waiting", a.waiting_days),
            ("full pay", a.full_pay_days),
            ("half pay", a.half_pay_days),
            ("SSP", a.statutory_days),
            ("unpaid", a.unpaid_days),
        ):
            if value > 0:
                parts.append(f"{value} {label}")
        return ", ".join(parts) if parts else "no days"


@dataclass(frozen=True)
class SSPUsage:
    """Statutory sick pay days used under the linking rules."""

    qualifying_days_per_week: int
    entitled_days: int
    used_rolling: int
    used_current_year: int

    @property
    def remaining(self) -> int:
        return max(0, self.entitled_days - self.used_rolling)


@dataclass(frozen=True)
class EntitlementSummary:
    """Point-in-time entitlement as of a reference date."""

    employee_id: str
    reference_date: date
    window_start: date
    window_end: date
    service_months: int
    rule_id: str | None
    working_days_per_week: int
    full_pay_allowance: Decimal
    half_pay_allowance: Decimal
    rolling: BandAllocation
    current_year: BandAllocation
    ssp: SSPUsage
    opening_balance_full_pay: Decimal = DAYS_ZERO
    opening_balance_half_pay: Decimal = DAYS_ZERO
    opening_balance_date: date | None = None

    @property
    def full_pay_used(self) -> Decimal:
        return self.rolling.full_pay_days

    @property
    def half_pay_used(self) -> Decimal:
        return self.rolling.half_pay_days

    @property
    def full_pay_remaining(self) -> Decimal:
        return max(DAYS_ZERO, self.full_pay_allowance - self.rolling.full_pay_days)

    @property
    def half_pay_remaining(self) -> Decimal:
        return max(DAYS_ZERO, self.half_pay_allowance - self.rolling.half_pay_days)

    @property
    def ssp_entitled_days(self) -> int:
        return self.ssp.entitled_days

    @property
    def ssp_remaining_days(self) -> int:
        return self.ssp.remaining
