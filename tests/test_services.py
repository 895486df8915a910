"""Service tests against an in-memory database.

Covers stored settlement sequencing and sickness maintenance.
"""

import logging
from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from uk_payroll.calculators.errors import (
    InvalidNumericInputError,
    OutOfSequencePeriodError,
    PayrollInputError,
)
from uk_payroll.calculators.types import PeriodInput
from uk_payroll.services import (
    EmployeeNotEnrolledError,
    PayrollService,
    PeriodAlreadySettledError,
    SicknessRecordNotFoundError,
    SicknessService,
)
from uk_payroll.sickness.types import (
    InvalidEligibilityRulesError,
    InvalidWorkPatternError,
    SicknessRecord,
    WorkDay,
    Weekday,
)
from uk_payroll.storage import SicknessStore, SnapshotStore

from tests.conftest import REFERENCE_DATE, nhs_rules, pattern_of

pytestmark = pytest.mark.asyncio

EMPLOYEE = "emp-001"


def period_input(period: int, gross: str = "3000") -> PeriodInput:
    return PeriodInput(
        tax_year="2025-26",
        period=period,
        gross_pay=Decimal(gross),
        tax_code="1257L",
    )


@pytest.fixture
def payroll(session: AsyncSession, registry, settings) -> PayrollService:
    return PayrollService(session, registry=registry, settings=settings)


@pytest.fixture
def sickness(session: AsyncSession, settings) -> SicknessService:
    return SicknessService(session, settings=settings)


class TestSnapshotStore:
    """Snapshot rows round-trip through the store."""

    async def test_save_and_get(self, session: AsyncSession, payroll: PayrollService):
        result = payroll.preview(period_input(1))
        store = SnapshotStore(session)
        row = await store.save(EMPLOYEE, result)

        assert isinstance(row.snapshot_id, UUID)
        assert await store.get(EMPLOYEE, "2025-26", 1) == result.ytd
        assert await store.get(EMPLOYEE, "2025-26", 2) is None
        assert await store.get("someone-else", "2025-26", 1) is None

    async def test_prior_of_first_period(self, session: AsyncSession):
        assert await SnapshotStore(session).get_prior_period(EMPLOYEE, "2025-26", 1) is None


class TestStoredSettlement:
    """Settlement reads the prior snapshot and appends the next."""

    async def test_sequence_uses_stored_prior(self, payroll: PayrollService):
        first = await payroll.settle(EMPLOYEE, period_input(1))
        second = await payroll.settle(EMPLOYEE, period_input(2))

        assert first.tax_this_period == Decimal("390.20")
        assert second.taxable_pay_ytd == Decimal("3903")
        assert second.tax_due_ytd == Decimal("780.60")
        assert second.tax_this_period == Decimal("390.40")
        assert second.ytd.gross_pay_pence == 600000

        stored = await payroll.list_snapshots(EMPLOYEE, "2025-26")
        assert [row.period for row in stored] == [1, 2]
        assert stored[1].calculation_id == second.calculation_id
        assert stored[1].band_table_version == "2025-26.1"

    async def test_repeat_period_rejected(self, payroll: PayrollService):
        await payroll.settle(EMPLOYEE, period_input(1))
        with pytest.raises(PeriodAlreadySettledError) as exc_info:
            await payroll.settle(EMPLOYEE, period_input(1, gross="5000"))
        assert exc_info.value.period == 1
        assert exc_info.value.code == "PERIOD_ALREADY_SETTLED"

    async def test_gap_rejected(self, payroll: PayrollService):
        await payroll.settle(EMPLOYEE, period_input(1))
        with pytest.raises(OutOfSequencePeriodError, match="gap"):
            await payroll.settle(EMPLOYEE, period_input(3))

    async def test_earlier_period_after_later_rejected(self, payroll: PayrollService):
        await payroll.settle(EMPLOYEE, period_input(2))
        with pytest.raises(OutOfSequencePeriodError, match="later periods"):
            await payroll.settle(EMPLOYEE, period_input(1))

    async def test_new_starter_may_begin_mid_year(self, payroll: PayrollService):
        result = await payroll.settle(EMPLOYEE, period_input(4))
        assert result.period == 4
        assert result.ytd.gross_pay_pence == 300000

    async def test_employees_are_independent(self, payroll: PayrollService):
        await payroll.settle(EMPLOYEE, period_input(1))
        other = await payroll.settle("emp-002", period_input(1))
        assert other.period == 1

    async def test_invalid_input_stores_nothing(self, payroll: PayrollService):
        with pytest.raises(InvalidNumericInputError):
            await payroll.settle(EMPLOYEE, period_input(1, gross="-1"))
        assert await payroll.list_snapshots(EMPLOYEE, "2025-26") == []

    async def test_invalid_period(self, payroll: PayrollService):
        with pytest.raises(PayrollInputError):
            await payroll.settle(EMPLOYEE, period_input(13))


class TestSicknessStore:
    async def test_record_crud(self, session: AsyncSession):
        store = SicknessStore(session)
        stored = await store.add_record(
            EMPLOYEE, SicknessRecord(start_date=date(2025, 7, 1), total_days=Decimal("1.5"))
        )
        record_id = UUID(stored.id)

        assert (await store.get_record(EMPLOYEE, record_id)).total_days == Decimal("1.5")
        assert await store.get_record("emp-002", record_id) is None

        updated = await store.update_record(
            EMPLOYEE, record_id, SicknessRecord(start_date=date(2025, 7, 1), end_date=date(2025, 7, 2))
        )
        assert updated.end_date == date(2025, 7, 2)
        assert updated.total_days is None

        assert await store.delete_record(EMPLOYEE, record_id)
        assert not await store.delete_record(EMPLOYEE, record_id)
        assert await store.list_records(EMPLOYEE) == []

    async def test_rules_replace(self, session: AsyncSession):
        store = SicknessStore(session)
        await store.save_rules("nhs", nhs_rules())
        await store.save_rules("nhs", nhs_rules()[:1])
        rules = await store.list_rules("nhs")
        assert [r.id for r in rules] == ["first-year"]
        assert rules[0] == nhs_rules()[0]

    async def test_work_pattern_replace(self, session: AsyncSession):
        store = SicknessStore(session)
        await store.save_work_pattern(EMPLOYEE, pattern_of("Monday").days)
        await store.save_work_pattern(EMPLOYEE, pattern_of("Tuesday").days)
        days = await store.list_work_pattern(EMPLOYEE)
        assert len(days) == 7
        assert [d.day for d in days if d.is_working] == [Weekday.TUESDAY]


class TestSicknessService:
    """Enrolment, records and entitlement summaries."""

    async def enrol(self, sickness: SicknessService, hire_date=date(2020, 1, 1)):
        await sickness.set_scheme_rules("nhs", nhs_rules())
        return await sickness.enrol(EMPLOYEE, "nhs", hire_date, as_of=REFERENCE_DATE)

    async def test_enrol_resolves_rule(self, sickness: SicknessService):
        usage = await self.enrol(sickness)
        assert usage.current_rule_id == "five-plus"
        assert usage.current_service_months == 67
        assert usage.full_pay_entitled_days == Decimal("130")
        assert await sickness.store.get_entitlement_usage(EMPLOYEE) == usage

    async def test_invalid_rules_rejected(self, sickness: SicknessService):
        with pytest.raises(InvalidEligibilityRulesError):
            await sickness.set_scheme_rules("nhs", nhs_rules()[1:])

    async def test_refresh_keeps_current_usage_when_unchanged(self, sickness: SicknessService):
        usage = await self.enrol(sickness)
        assert await sickness.refresh_usage(EMPLOYEE, as_of=REFERENCE_DATE) == usage

    async def test_refresh_on_service_anniversary(self, sickness: SicknessService):
        await self.enrol(sickness, hire_date=date(2024, 8, 1))
        before = await sickness.refresh_usage(EMPLOYEE, as_of=date(2025, 7, 31))
        after = await sickness.refresh_usage(EMPLOYEE, as_of=date(2025, 8, 1))
        assert before.current_rule_id == "first-year"
        assert after.current_rule_id == "one-to-five"
        assert (await sickness.store.get_entitlement_usage(EMPLOYEE)).current_rule_id == "one-to-five"

    async def test_work_pattern_change_rescales_entitlement(self, sickness: SicknessService):
        await self.enrol(sickness)
        await sickness.set_work_pattern(
            EMPLOYEE, pattern_of("Monday", "Wednesday", "Friday").days, as_of=REFERENCE_DATE
        )
        usage = await sickness.store.get_entitlement_usage(EMPLOYEE)
        assert usage.working_days_per_week == 3
        assert usage.full_pay_entitled_days == Decimal("78")

    async def test_default_work_pattern(self, sickness: SicknessService, caplog):
        with caplog.at_level(logging.WARNING):
            pattern = await sickness.get_work_pattern(EMPLOYEE)
        assert pattern.working_days_per_week == 5
        assert f"No work pattern stored for employee {EMPLOYEE}" in caplog.text

    async def test_incomplete_work_pattern_rejected(self, sickness: SicknessService):
        with pytest.raises(InvalidWorkPatternError):
            await sickness.set_work_pattern(EMPLOYEE, [WorkDay(day=Weekday.MONDAY, is_working=True)])

    async def test_records_require_enrolment(self, sickness: SicknessService):
        with pytest.raises(EmployeeNotEnrolledError):
            await sickness.add_record(EMPLOYEE, SicknessRecord(start_date=date(2025, 7, 1)))

    async def test_summary(self, sickness: SicknessService):
        await self.enrol(sickness)
        await sickness.add_record(EMPLOYEE, SicknessRecord(start_date=date(2025, 2, 3), total_days=Decimal("1")))
        await sickness.add_record(
            EMPLOYEE,
            SicknessRecord(start_date=date(2025, 2, 10), end_date=date(2025, 2, 11), total_days=Decimal("2")),
        )
        await sickness.add_record(
            EMPLOYEE, SicknessRecord(start_date=date(2025, 7, 15), end_date=date(2025, 7, 29))
        )

        summary = await sickness.entitlement_summary(EMPLOYEE, REFERENCE_DATE)
        assert summary.rule_id == "five-plus"
        assert summary.rolling.total_days == Decimal("14")
        assert summary.full_pay_remaining == Decimal("116")
        assert summary.ssp.used_rolling == 8

    async def test_opening_balance_adds_to_allowance(self, sickness: SicknessService):
        await self.enrol(sickness)
        usage = await sickness.set_opening_balance(
            EMPLOYEE, Decimal("3"), Decimal("1.5"), date(2025, 4, 1), notes="Carried from payroll v1"
        )
        assert usage.full_pay_allowance == Decimal("133")
        assert usage.half_pay_allowance == Decimal("131.5")
        stored = await sickness.store.get_entitlement_usage(EMPLOYEE)
        assert stored.opening_balance_date == date(2025, 4, 1)
        assert stored.opening_balance_notes == "Carried from payroll v1"

        await sickness.add_record(
            EMPLOYEE, SicknessRecord(start_date=date(2025, 7, 15), end_date=date(2025, 7, 29))
        )
        summary = await sickness.entitlement_summary(EMPLOYEE, REFERENCE_DATE)
        assert summary.opening_balance_full_pay == Decimal("3")
        assert summary.opening_balance_date == date(2025, 4, 1)
        assert summary.full_pay_allowance == Decimal("133")
        assert summary.full_pay_remaining == Decimal("122")

    async def test_opening_balance_is_replaced(self, sickness: SicknessService):
        await self.enrol(sickness)
        await sickness.set_opening_balance(EMPLOYEE, Decimal("3"), Decimal("1.5"), date(2025, 4, 1))
        usage = await sickness.set_opening_balance(EMPLOYEE, Decimal("0"), Decimal("2"), date(2025, 5, 1))
        assert usage.opening_balance_full_pay == Decimal("0")
        assert usage.half_pay_allowance == Decimal("132")
        assert usage.opening_balance_notes is None

    async def test_opening_balance_survives_recalculation(self, sickness: SicknessService):
        await self.enrol(sickness, hire_date=date(2024, 8, 1))
        await sickness.set_opening_balance(EMPLOYEE, Decimal("5"), Decimal("0"), date(2024, 8, 1))
        before = await sickness.refresh_usage(EMPLOYEE, as_of=date(2025, 7, 31))
        after = await sickness.refresh_usage(EMPLOYEE, as_of=date(2025, 8, 1))
        assert before.current_rule_id == "first-year"
        assert after.current_rule_id == "one-to-five"
        assert before.opening_balance_full_pay == Decimal("5")
        assert after.opening_balance_full_pay == Decimal("5")
        assert after.opening_balance_date == date(2024, 8, 1)

    @pytest.mark.parametrize("full,half", [("-1", "0"), ("0", "-0.5"), ("Infinity", "0")])
    async def test_opening_balance_rejects_invalid_days(self, sickness: SicknessService, full, half):
        await self.enrol(sickness)
        with pytest.raises(InvalidNumericInputError):
            await sickness.set_opening_balance(EMPLOYEE, Decimal(full), Decimal(half), date(2025, 4, 1))

    async def test_opening_balance_requires_enrolment(self, sickness: SicknessService):
        with pytest.raises(EmployeeNotEnrolledError):
            await sickness.set_opening_balance(EMPLOYEE, Decimal("3"), Decimal("0"), date(2025, 4, 1))

    async def test_update_and_delete_record(self, sickness: SicknessService):
        await self.enrol(sickness)
        stored = await sickness.add_record(EMPLOYEE, SicknessRecord(start_date=date(2025, 7, 1)))
        record_id = UUID(stored.id)

        updated = await sickness.update_record(
            EMPLOYEE, record_id, SicknessRecord(start_date=date(2025, 7, 1), end_date=date(2025, 7, 4))
        )
        assert updated.end_date == date(2025, 7, 4)

        await sickness.delete_record(EMPLOYEE, record_id)
        assert await sickness.list_records(EMPLOYEE) == []

    async def test_missing_record(self, sickness: SicknessService):
        await self.enrol(sickness)
        with pytest.raises(SicknessRecordNotFoundError):
            await sickness.delete_record(EMPLOYEE, uuid4())
        with pytest.raises(SicknessRecordNotFoundError):
            await sickness.update_record(EMPLOYEE, uuid4(), SicknessRecord(start_date=date(2025, 7, 1)))

    @pytest.mark.parametrize(
        "record,error",
        [
            (SicknessRecord(start_date=date(2025, 7, 2), end_date=date(2025, 7, 1)), PayrollInputError),
            (SicknessRecord(start_date=date(2025, 7, 1), total_days=Decimal("-1")), InvalidNumericInputError),
            (SicknessRecord(start_date=date(2025, 7, 1), end_date=date(2025, 7, 2), is_ongoing=True), PayrollInputError),
        ],
    )
    async def test_invalid_records(self, sickness: SicknessService, record, error):
        await self.enrol(sickness)
        with pytest.raises(error):
            await sickness.add_record(EMPLOYEE, record)
