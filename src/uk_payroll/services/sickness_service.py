"""Sickness maintenance and entitlement queries over stored data."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import replace
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from uk_payroll.calculators.errors import InvalidNumericInputError, PayrollInputError
from uk_payroll.calculators.validation import validate_days
from uk_payroll.config import Settings, get_settings
from uk_payroll.sickness.eligibility import (
    EligibilityRuleResolver,
    NoMatchFallbackPolicy,
    validate_rules,
)
from uk_payroll.sickness.entitlement import (
    SicknessEntitlementEngine,
    build_entitlement_usage,
    needs_recalculation,
)
from uk_payroll.sickness.types import (
    EligibilityRule,
    EntitlementSummary,
    EntitlementUsage,
    SicknessRecord,
    WorkDay,
    WorkPattern,
)
from uk_payroll.storage.models import SicknessEnrolment
from uk_payroll.storage.repositories import SicknessStore

logger = logging.getLogger(__name__)


class EmployeeNotEnrolledError(LookupError):
    """Raised when an employee has no sickness scheme enrolment."""

    code = "EMPLOYEE_NOT_ENROLLED"

    def __init__(self, employee_id: str):
        self.employee_id = employee_id
        super().__init__(f"Employee {employee_id} is not enrolled in a sickness scheme")


class SicknessRecordNotFoundError(LookupError):
    """Raised when a sickness record does not exist for the employee."""

    code = "SICKNESS_RECORD_NOT_FOUND"

    def __init__(self, employee_id: str, record_id: UUID):
        self.employee_id = employee_id
        self.record_id = record_id
        super().__init__(f"Sickness record {record_id} not found for employee {employee_id}")


def validate_record(record: SicknessRecord) -> SicknessRecord:
    if record.end_date is not None and record.end_date < record.start_date:
        raise PayrollInputError(
            "Sickness record ends before it starts",
            field="end_date",
            value=record.end_date.isoformat(),
        )
    if record.total_days is not None and record.total_days < 0:
        raise InvalidNumericInputError("total_days", record.total_days, "must not be negative")
    if record.is_ongoing and record.end_date is not None:
        raise PayrollInputError(
            "An ongoing sickness record cannot have an end date",
            field="is_ongoing",
            value=True,
        )
    return record


class SicknessService:
    """Keeps entitlement usage current as records, patterns and service change.

    Every record change triggers a usage refresh. Summaries for an arbitrary
    reference date are computed in memory and never written back.
    """

    def __init__(
        self,
        session: AsyncSession,
        settings: Settings | None = None,
        engine: SicknessEntitlementEngine | None = None,
    ):
        self.session = session
        self.store = SicknessStore(session)
        self.settings = settings or get_settings()
        self.resolver = EligibilityRuleResolver(
            NoMatchFallbackPolicy(self.settings.rule_fallback_policy)
        )
        self.engine = engine or SicknessEntitlementEngine()

    # ----- Scheme and enrolment -----

    async def set_scheme_rules(self, scheme_id: str, rules: Sequence[EligibilityRule]) -> None:
        validate_rules(rules)
        await self.store.save_rules(scheme_id, rules)

    async def enrol(
        self,
        employee_id: str,
        scheme_id: str,
        hire_date: date,
        as_of: date | None = None,
    ) -> EntitlementUsage:
        await self.store.save_enrolment(
            SicknessEnrolment(employee_id=employee_id, scheme_id=scheme_id, hire_date=hire_date)
        )
        return await self.refresh_usage(employee_id, as_of)

    async def _require_enrolment(self, employee_id: str) -> SicknessEnrolment:
        enrolment = await self.store.get_enrolment(employee_id)
        if enrolment is None:
            raise EmployeeNotEnrolledError(employee_id)
        return enrolment

    # ----- Work pattern -----

    async def get_work_pattern(self, employee_id: str) -> WorkPattern:
        """Stored pattern, or Monday to Friday when none is stored."""
        days = await self.store.list_work_pattern(employee_id)
        if not days:
            logger.warning(
                "No work pattern stored for employee %s; using Monday to Friday", employee_id
            )
            return WorkPattern.standard()
        return WorkPattern.from_days(days, strict=self.settings.strict_work_patterns)

    async def set_work_pattern(
        self, employee_id: str, days: Sequence[WorkDay], as_of: date | None = None
    ) -> WorkPattern:
        pattern = WorkPattern.from_days(days, strict=self.settings.strict_work_patterns)
        await self.store.save_work_pattern(employee_id, pattern.days)
        if await self.store.get_enrolment(employee_id) is not None:
            await self.refresh_usage(employee_id, as_of)
        return pattern

    # ----- Usage -----

    async def _build_usage(
        self,
        enrolment: SicknessEnrolment,
        as_of: date,
        previous: EntitlementUsage | None,
    ) -> tuple[EntitlementUsage, WorkPattern]:
        rules = await self.store.list_rules(enrolment.scheme_id)
        pattern = await self.get_work_pattern(enrolment.employee_id)
        usage = build_entitlement_usage(
            enrolment.employee_id,
            enrolment.scheme_id,
            rules,
            enrolment.hire_date,
            as_of,
            pattern,
            resolver=self.resolver,
            previous=previous,
        )
        return usage, pattern

    async def refresh_usage(self, employee_id: str, as_of: date | None = None) -> EntitlementUsage:
        """Replace the stored usage if its rule, service length or conversion changed."""
        enrolment = await self._require_enrolment(employee_id)
        current = await self.store.get_entitlement_usage(employee_id)
        fresh, _ = await self._build_usage(enrolment, as_of or date.today(), current)
        if current is not None and not needs_recalculation(current, fresh):
            return current
        logger.info(
            "Entitlement usage for %s now follows rule %s (%d months service)",
            employee_id,
            fresh.current_rule_id,
            fresh.current_service_months,
        )
        return await self.store.save_entitlement_usage(fresh)

    async def set_opening_balance(
        self,
        employee_id: str,
        full_pay_days: Decimal,
        half_pay_days: Decimal,
        reference_date: date,
        notes: str | None = None,
    ) -> EntitlementUsage:
        """Record sickness days brought forward from before enrolment.

        Replaces any earlier opening balance. The days add to the entitled
        allowances in every later summary and survive recalculation.
        """
        full = validate_days(full_pay_days, "full_pay_days")
        half = validate_days(half_pay_days, "half_pay_days")
        enrolment = await self._require_enrolment(employee_id)
        current = await self.store.get_entitlement_usage(employee_id)
        if current is None:
            current, _ = await self._build_usage(enrolment, reference_date, None)
        usage = replace(
            current,
            opening_balance_full_pay=full,
            opening_balance_half_pay=half,
            opening_balance_date=reference_date,
            opening_balance_notes=notes,
        )
        logger.info(
            "Opening balance for %s set to %s full / %s half pay days as of %s",
            employee_id,
            full,
            half,
            reference_date,
        )
        return await self.store.save_entitlement_usage(usage)

    async def entitlement_summary(
        self, employee_id: str, reference_date: date | None = None
    ) -> EntitlementSummary:
        """Entitlement as of ``reference_date`` (default today)."""
        reference = reference_date or date.today()
        enrolment = await self._require_enrolment(employee_id)
        previous = await self.store.get_entitlement_usage(employee_id)
        usage, pattern = await self._build_usage(enrolment, reference, previous)
        records = await self.store.list_records(employee_id)
        return self.engine.summarize(usage, records, pattern, reference)

    # ----- Records -----

    async def list_records(self, employee_id: str) -> list[SicknessRecord]:
        return await self.store.list_records(employee_id)

    async def add_record(self, employee_id: str, record: SicknessRecord) -> SicknessRecord:
        await self._require_enrolment(employee_id)
        stored = await self.store.add_record(employee_id, validate_record(record))
        await self.refresh_usage(employee_id)
        return stored

    async def update_record(
        self, employee_id: str, record_id: UUID, record: SicknessRecord
    ) -> SicknessRecord:
        await self._require_enrolment(employee_id)
        stored = await self.store.update_record(employee_id, record_id, validate_record(record))
        if stored is None:
            raise SicknessRecordNotFoundError(employee_id, record_id)
        await self.refresh_usage(employee_id)
        return stored

    async def delete_record(self, employee_id: str, record_id: UUID) -> None:
        await self._require_enrolment(employee_id)
        if not await self.store.delete_record(employee_id, record_id):
            raise SicknessRecordNotFoundError(employee_id, record_id)
        await self.refresh_usage(employee_id)
