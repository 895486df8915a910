"""Stored settlement: fetch the prior snapshot, settle, append the new one."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from uk_payroll.calculators.bands import BandTableRegistry, get_band_tables
from uk_payroll.calculators.errors import OutOfSequencePeriodError
from uk_payroll.calculators.settlement import PeriodSettlementEngine
from uk_payroll.calculators.types import PeriodInput, SettlementResult, YTDSnapshot
from uk_payroll.calculators.validation import validate_period
from uk_payroll.config import Settings, get_settings
from uk_payroll.database import acquire_settlement_lock
from uk_payroll.storage.models import PayrollSnapshot
from uk_payroll.storage.repositories import SnapshotStore

logger = logging.getLogger(__name__)


class PeriodAlreadySettledError(Exception):
    """Raised when a snapshot already exists for the employee-period."""

    code = "PERIOD_ALREADY_SETTLED"

    def __init__(self, employee_id: str, tax_year: str, period: int):
        self.employee_id = employee_id
        self.tax_year = tax_year
        self.period = period
        super().__init__(
            f"Period {period} of {tax_year} is already settled for employee {employee_id}"
        )


class PayrollService:
    """Settles employee-periods against stored year-to-date snapshots.

    Settlement for one employee and tax year is serialized with a database
    lock, so two concurrent requests can never both read the same prior
    snapshot and append competing successors.
    """

    def __init__(
        self,
        session: AsyncSession,
        registry: BandTableRegistry | None = None,
        settings: Settings | None = None,
    ):
        self.session = session
        self.snapshots = SnapshotStore(session)
        self.registry = registry or get_band_tables()
        self.settings = settings or get_settings()

    def engine_for(self, tax_year: str) -> PeriodSettlementEngine:
        return PeriodSettlementEngine.for_tax_year(
            tax_year, registry=self.registry, settings=self.settings
        )

    def preview(
        self, period_input: PeriodInput, prior: YTDSnapshot | None = None
    ) -> SettlementResult:
        """Settle without touching storage."""
        return self.engine_for(period_input.tax_year).settle(period_input, prior)

    async def settle(self, employee_id: str, period_input: PeriodInput) -> SettlementResult:
        """Settle the next period for an employee and store its snapshot.

        Raises:
            PeriodAlreadySettledError: The period already has a snapshot.
            OutOfSequencePeriodError: Earlier periods are stored but N-1 is not,
                or later periods are already stored.
            PayrollInputError: Any invalid input.
        """
        tax_year = period_input.tax_year
        period = validate_period(period_input.period)
        engine = self.engine_for(tax_year)

        await acquire_settlement_lock(self.session, employee_id, tax_year)

        if await self.snapshots.get(employee_id, tax_year, period) is not None:
            raise PeriodAlreadySettledError(employee_id, tax_year, period)

        prior = await self.snapshots.get_prior_period(employee_id, tax_year, period)
        latest = await self.snapshots.latest(employee_id, tax_year)
        if latest is not None and latest.period > period:
            raise OutOfSequencePeriodError(
                tax_year, period - 1, latest.period, "later periods are already settled"
            )
        if prior is None and latest is not None:
            raise OutOfSequencePeriodError(
                tax_year, period - 1, latest.period, "stored periods have a gap"
            )

        result = engine.settle(period_input, prior)
        await self.snapshots.save(employee_id, result)
        logger.info(
            "Settled %s %s period %d (calculation %s)",
            employee_id,
            tax_year,
            period,
            result.calculation_id,
        )
        return result

    async def list_snapshots(self, employee_id: str, tax_year: str) -> list[PayrollSnapshot]:
        return await self.snapshots.list_for_year(employee_id, tax_year)
