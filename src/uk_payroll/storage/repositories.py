"""Stores for settled snapshots and sickness data.

Stores only read and write rows. Calculation lives in the calculators and
the sickness engine, which never import this module.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from uk_payroll.calculators.types import SettlementResult, YTDSnapshot
from uk_payroll.sickness.types import (
    EligibilityRule,
    EntitlementUsage,
    SicknessRecord,
    WorkDay,
)
from uk_payroll.storage.models import (
    EligibilityRuleRow,
    EntitlementUsageRow,
    PayrollSnapshot,
    SicknessEnrolment,
    SicknessRecordRow,
    WorkPatternDayRow,
)

logger = logging.getLogger(__name__)


class SnapshotStore:
    """Read and append year-to-date snapshots."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, employee_id: str, tax_year: str, period: int) -> YTDSnapshot | None:
        row = await self._get_row(employee_id, tax_year, period)
        return row.to_snapshot() if row else None

    async def get_prior_period(
        self, employee_id: str, tax_year: str, period: int
    ) -> YTDSnapshot | None:
        """Snapshot of the period immediately before ``period``, if stored."""
        if period <= 1:
            return None
        return await self.get(employee_id, tax_year, period - 1)

    async def latest(self, employee_id: str, tax_year: str) -> YTDSnapshot | None:
        result = await self.session.execute(
            select(PayrollSnapshot)
            .where(
                PayrollSnapshot.employee_id == employee_id,
                PayrollSnapshot.tax_year == tax_year,
            )
            .order_by(PayrollSnapshot.period.desc())
            .limit(1)
        )
        row = result.scalar_one_or_none()
        return row.to_snapshot() if row else None

    async def list_for_year(self, employee_id: str, tax_year: str) -> list[PayrollSnapshot]:
        result = await self.session.execute(
            select(PayrollSnapshot)
            .where(
                PayrollSnapshot.employee_id == employee_id,
                PayrollSnapshot.tax_year == tax_year,
            )
            .order_by(PayrollSnapshot.period)
        )
        return list(result.scalars().all())

    async def save(self, employee_id: str, result: SettlementResult) -> PayrollSnapshot:
        row = PayrollSnapshot.from_result(employee_id, result)
        self.session.add(row)
        await self.session.flush()
        logger.debug(
            "Stored snapshot %s/%s period %d (calculation %s)",
            employee_id,
            row.tax_year,
            row.period,
            row.calculation_id,
        )
        return row

    async def _get_row(
        self, employee_id: str, tax_year: str, period: int
    ) -> PayrollSnapshot | None:
        result = await self.session.execute(
            select(PayrollSnapshot).where(
                PayrollSnapshot.employee_id == employee_id,
                PayrollSnapshot.tax_year == tax_year,
                PayrollSnapshot.period == period,
            )
        )
        return result.scalar_one_or_none()


class SicknessStore:
    """Sickness records, enrolment, rules, work patterns and entitlement usage."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # ----- Records -----

    async def list_records(self, employee_id: str) -> list[SicknessRecord]:
        result = await self.session.execute(
            select(SicknessRecordRow)
            .where(SicknessRecordRow.employee_id == employee_id)
            .order_by(SicknessRecordRow.start_date)
        )
        return [row.to_record() for row in result.scalars().all()]

    async def get_record(self, employee_id: str, record_id: UUID) -> SicknessRecord | None:
        row = await self._get_record_row(employee_id, record_id)
        return row.to_record() if row else None

    async def add_record(self, employee_id: str, record: SicknessRecord) -> SicknessRecord:
        row = SicknessRecordRow(employee_id=employee_id)
        row.apply(record)
        self.session.add(row)
        await self.session.flush()
        return row.to_record()

    async def update_record(
        self, employee_id: str, record_id: UUID, record: SicknessRecord
    ) -> SicknessRecord | None:
        row = await self._get_record_row(employee_id, record_id)
        if row is None:
            return None
        row.apply(record)
        await self.session.flush()
        return row.to_record()

    async def delete_record(self, employee_id: str, record_id: UUID) -> bool:
        result = await self.session.execute(
            delete(SicknessRecordRow).where(
                SicknessRecordRow.employee_id == employee_id,
                SicknessRecordRow.record_id == record_id,
            )
        )
        return (result.rowcount or 0) > 0

    async def _get_record_row(
        self, employee_id: str, record_id: UUID
    ) -> SicknessRecordRow | None:
        result = await self.session.execute(
            select(SicknessRecordRow).where(
                SicknessRecordRow.employee_id == employee_id,
                SicknessRecordRow.record_id == record_id,
            )
        )
        return result.scalar_one_or_none()

    # ----- Enrolment and rules -----

    async def get_enrolment(self, employee_id: str) -> SicknessEnrolment | None:
        return await self.session.get(SicknessEnrolment, employee_id)

    async def save_enrolment(self, enrolment: SicknessEnrolment) -> SicknessEnrolment:
        merged = await self.session.merge(enrolment)
        await self.session.flush()
        return merged

    async def list_rules(self, scheme_id: str) -> list[EligibilityRule]:
        result = await self.session.execute(
            select(EligibilityRuleRow).where(EligibilityRuleRow.scheme_id == scheme_id)
        )
        return [row.to_rule() for row in result.scalars().all()]

    async def save_rules(self, scheme_id: str, rules: Sequence[EligibilityRule]) -> None:
        """Replace a scheme's rules."""
        await self.session.execute(
            delete(EligibilityRuleRow).where(EligibilityRuleRow.scheme_id == scheme_id)
        )
        self.session.add_all(EligibilityRuleRow.from_rule(scheme_id, rule) for rule in rules)
        await self.session.flush()

    # ----- Work pattern -----

    async def list_work_pattern(self, employee_id: str) -> list[WorkDay]:
        result = await self.session.execute(
            select(WorkPatternDayRow)
            .where(WorkPatternDayRow.employee_id == employee_id)
            .order_by(WorkPatternDayRow.id)
        )
        return [row.to_work_day() for row in result.scalars().all()]

    async def save_work_pattern(self, employee_id: str, days: Sequence[WorkDay]) -> None:
        """Replace an employee's work pattern."""
        await self.session.execute(
            delete(WorkPatternDayRow).where(WorkPatternDayRow.employee_id == employee_id)
        )
        self.session.add_all(
            WorkPatternDayRow(
                employee_id=employee_id,
                day=d.day.value,
                is_working=d.is_working,
                start_time=d.start_time,
                end_time=d.end_time,
            )
            for d in days
        )
        await self.session.flush()

    # ----- Entitlement usage -----

    async def get_entitlement_usage(self, employee_id: str) -> EntitlementUsage | None:
        row = await self.session.get(EntitlementUsageRow, employee_id)
        return row.to_usage() if row else None

    async def save_entitlement_usage(self, usage: EntitlementUsage) -> EntitlementUsage:
        """Insert or replace the usage row for ``usage.employee_id``."""
        row = await self.session.get(EntitlementUsageRow, usage.employee_id)
        if row is None:
            row = EntitlementUsageRow(employee_id=usage.employee_id)
            self.session.add(row)
        row.apply(usage)
        await self.session.flush()
        return usage
