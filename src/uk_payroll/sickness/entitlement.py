"""Sickness entitlement over a rolling 12-month window.

Usage is counted from records overlapping ``[reference - 1 year + 1 day,
reference]`` and consumed in priority order: full pay, then half pay, then
statutory sick pay. Each band is capped at its allowance before the rest
spills into the next. Calendar-year usage is allocated separately, record by
record, and reported alongside the rolling figures.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import replace
from datetime import date, timedelta
from decimal import ROUND_FLOOR, Decimal

from uk_payroll.sickness.eligibility import (
    EligibilityRuleResolver,
    service_months_between,
)
from uk_payroll.sickness.ssp import MAX_WEEKS, WAITING_DAYS, calculate_ssp_usage
from uk_payroll.sickness.types import (
    DAYS_ZERO,
    BandAllocation,
    EligibilityRule,
    EntitlementSummary,
    EntitlementUnit,
    EntitlementUsage,
    RecordAllocation,
    SicknessRecord,
    WorkPattern,
)
from uk_payroll.sickness.working_days import count_working_days

logger = logging.getLogger(__name__)

WEEKS_PER_YEAR = Decimal("52.14")
MONTHS_PER_YEAR = 12


def entitled_days(amount: Decimal, unit: EntitlementUnit, working_days_per_week: int) -> Decimal:
    """Convert an entitlement amount to working days.

    Weeks are multiplied by working days per week. Months use 52.14 weeks a
    year and are floored to whole days.
    """
    amount = Decimal(amount)
    if unit is EntitlementUnit.DAYS:
        return amount
    if unit is EntitlementUnit.WEEKS:
        return amount * working_days_per_week
    if unit is EntitlementUnit.MONTHS:
        days = Decimal(working_days_per_week) * WEEKS_PER_YEAR / MONTHS_PER_YEAR * amount
        return days.to_integral_value(rounding=ROUND_FLOOR)
    raise ValueError(f"Unhandled entitlement unit {unit!r}")


def rolling_window(reference_date: date) -> tuple[date, date]:
    """Return ``(start, end)`` of the 12 months ending on ``reference_date``."""
    try:
        anchor = reference_date.replace(year=reference_date.year - 1)
    except ValueError:
        # 29 February has no counterpart in the previous year.
        anchor = date(reference_date.year - 1, 2, 28)
    return anchor + timedelta(days=1), reference_date


def record_days(record: SicknessRecord, pattern: WorkPattern, reference_date: date) -> Decimal:
    """Stored day count, or working days between start and effective end."""
    if record.total_days is not None:
        return Decimal(record.total_days)
    end = record.effective_end(reference_date)
    return Decimal(count_working_days(record.start_date, end, pattern))


def overlaps(record: SicknessRecord, window_start: date, window_end: date, reference_date: date) -> bool:
    return record.start_date <= window_end and record.effective_end(reference_date) >= window_start


def allocate_days(
    total: Decimal,
    full_allowance: Decimal,
    half_allowance: Decimal,
    statutory_allowance: Decimal,
) -> BandAllocation:
    """Split a day total across full pay, half pay, SSP and unpaid."""
    remaining = max(DAYS_ZERO, Decimal(total))
    full = min(remaining, max(DAYS_ZERO, full_allowance))
    remaining -= full
    half = min(remaining, max(DAYS_ZERO, half_allowance))
    remaining -= half
    statutory = min(remaining, max(DAYS_ZERO, statutory_allowance))
    remaining -= statutory
    return BandAllocation(
        total_days=Decimal(total),
        full_pay_days=full,
        half_pay_days=half,
        statutory_days=statutory,
        unpaid_days=remaining,
    )


def allocate_records(
    records: Sequence[SicknessRecord],
    full_allowance: Decimal,
    half_allowance: Decimal,
    statutory_allowance: Decimal,
    pattern: WorkPattern,
    reference_date: date,
    waiting_days: bool = False,
) -> list[RecordAllocation]:
    """Allocate records in date order, each drawing down what the previous left."""
    full_left, half_left, statutory_left = full_allowance, half_allowance, statutory_allowance
    allocations = []
    for record in sorted(records, key=lambda r: r.start_date):
        days = record_days(record, pattern, reference_date)
        waiting = min(days, Decimal(WAITING_DAYS)) if waiting_days else DAYS_ZERO
        band = allocate_days(days - waiting, full_left, half_left, statutory_left)
        full_left -= band.full_pay_days
        half_left -= band.half_pay_days
        statutory_left -= band.statutory_days
        allocations.append(
            RecordAllocation(
                record=record,
                days=days,
                allocation=replace(band, total_days=days, waiting_days=waiting),
            )
        )
    return allocations


def _sum_allocations(allocations: Sequence[RecordAllocation]) -> BandAllocation:
    return BandAllocation(
        total_days=sum((a.allocation.total_days for a in allocations), DAYS_ZERO),
        full_pay_days=sum((a.allocation.full_pay_days for a in allocations), DAYS_ZERO),
        half_pay_days=sum((a.allocation.half_pay_days for a in allocations), DAYS_ZERO),
        statutory_days=sum((a.allocation.statutory_days for a in allocations), DAYS_ZERO),
        unpaid_days=sum((a.allocation.unpaid_days for a in allocations), DAYS_ZERO),
        waiting_days=sum((a.allocation.waiting_days for a in allocations), DAYS_ZERO),
    )


def build_entitlement_usage(
    employee_id: str,
    scheme_id: str,
    rules: Sequence[EligibilityRule],
    hire_date: date,
    as_of: date,
    pattern: WorkPattern | None,
    resolver: EligibilityRuleResolver | None = None,
    previous: EntitlementUsage | None = None,
) -> EntitlementUsage:
    """Resolve the applicable rule and convert its entitlement to days.

    Opening balances are taken from ``previous`` when given.
    """
    resolver = resolver or EligibilityRuleResolver()
    if pattern is None:
        logger.warning(
            "No work pattern given for employee %s; using Monday to Friday", employee_id
        )
        pattern = WorkPattern.standard()
    service_months = service_months_between(hire_date, as_of)
    rule = resolver.resolve(service_months, rules)
    per_week = pattern.working_days_per_week

    if rule is None:
        full_days = half_days = DAYS_ZERO
    else:
        full_days = entitled_days(rule.full_pay_amount, rule.full_pay_unit, per_week)
        half_days = entitled_days(rule.half_pay_amount, rule.half_pay_unit, per_week)

    usage = EntitlementUsage(
        employee_id=employee_id,
        scheme_id=scheme_id,
        full_pay_entitled_days=full_days,
        half_pay_entitled_days=half_days,
        current_rule_id=rule.id if rule else None,
        current_service_months=service_months,
        working_days_per_week=per_week,
        waiting_days_apply=bool(rule and rule.has_waiting_days),
    )
    if previous is not None:
        usage = replace(
            usage,
            opening_balance_full_pay=previous.opening_balance_full_pay,
            opening_balance_half_pay=previous.opening_balance_half_pay,
            opening_balance_date=previous.opening_balance_date,
            opening_balance_notes=previous.opening_balance_notes,
        )
    return usage


def needs_recalculation(current: EntitlementUsage, fresh: EntitlementUsage) -> bool:
    """True when the rule, service length or day conversion has changed."""
    return (
        current.current_rule_id != fresh.current_rule_id
        or current.current_service_months != fresh.current_service_months
        or current.working_days_per_week != fresh.working_days_per_week
        or current.full_pay_entitled_days != fresh.full_pay_entitled_days
        or current.half_pay_entitled_days != fresh.half_pay_entitled_days
        or current.waiting_days_apply != fresh.waiting_days_apply
    )


class SicknessEntitlementEngine:
    """Computes an entitlement summary as of any reference date."""

    def summarize(
        self,
        usage: EntitlementUsage,
        records: Sequence[SicknessRecord],
        pattern: WorkPattern | None,
        reference_date: date | None = None,
    ) -> EntitlementSummary:
        reference = reference_date or date.today()
        if pattern is None:
            logger.warning(
                "No work pattern given for employee %s; using Monday to Friday",
                usage.employee_id,
            )
            pattern = WorkPattern.standard()
        window_start, window_end = rolling_window(reference)
        per_week = pattern.working_days_per_week
        statutory_allowance = Decimal(MAX_WEEKS * per_week)

        in_window = [r for r in records if overlaps(r, window_start, window_end, reference)]
        rolling_total = sum((record_days(r, pattern, reference) for r in in_window), DAYS_ZERO)
        rolling = allocate_days(
            rolling_total,
            usage.full_pay_allowance,
            usage.half_pay_allowance,
            statutory_allowance,
        )

        this_year = [
            r for r in records if r.start_date.year == reference.year and r.start_date <= reference
        ]
        current_year = _sum_allocations(
            allocate_records(
                this_year,
                usage.full_pay_allowance,
                usage.half_pay_allowance,
                statutory_allowance,
                pattern,
                reference,
                waiting_days=usage.waiting_days_apply,
            )
        )

        ssp = calculate_ssp_usage(records, pattern, reference, window_start)

        logger.debug(
            "Entitlement for %s as of %s: window %s..%s, %d records, %s days used",
            usage.employee_id,
            reference,
            window_start,
            window_end,
            len(in_window),
            rolling_total,
        )
        return EntitlementSummary(
            employee_id=usage.employee_id,
            reference_date=reference,
            window_start=window_start,
            window_end=window_end,
            service_months=usage.current_service_months,
            rule_id=usage.current_rule_id,
            working_days_per_week=per_week,
            full_pay_allowance=usage.full_pay_allowance,
            half_pay_allowance=usage.half_pay_allowance,
            rolling=rolling,
            current_year=current_year,
            ssp=ssp,
            opening_balance_full_pay=usage.opening_balance_full_pay,
            opening_balance_half_pay=usage.opening_balance_half_pay,
            opening_balance_date=usage.opening_balance_date,
        )
