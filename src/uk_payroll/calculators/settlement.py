"""Period settlement: one employee, one monthly period.

Settlement is a pure function of ``(PeriodInput, prior YTDSnapshot)``. The
prior snapshot must be the stored result of the immediately preceding period
in the same tax year; ``None`` means nothing has been paid this tax year yet.
Reading and writing snapshots is left to the caller.
"""

from __future__ import annotations

import hashlib
import json
import logging
from decimal import Decimal
from uuid import UUID

from uk_payroll.calculators.bands import BandTable, BandTableRegistry, get_band_tables
from uk_payroll.calculators.contributions import (
    NationalInsuranceCalculator,
    PensionCalculator,
    StudentLoanCalculator,
)
from uk_payroll.calculators.errors import OutOfSequencePeriodError, PayrollInputError
from uk_payroll.calculators.income_tax import IncomeTaxCalculator
from uk_payroll.calculators.money import ZERO, round_money, to_pence
from uk_payroll.calculators.tax_code import parse_tax_code
from uk_payroll.calculators.types import (
    PeriodInput,
    SettlementResult,
    TaxBasis,
    YTDSnapshot,
)
from uk_payroll.calculators.validation import (
    DEFAULT_GROSS_PAY_CEILING,
    validate_gross_pay,
    validate_period,
    validate_tax_paid,
    validate_tax_year,
)
from uk_payroll.config import Settings, get_settings

logger = logging.getLogger(__name__)


class PeriodSettlementEngine:
    """Settles employee-periods against one tax year's band table.

    The engine holds no per-employee state; the same instance can settle any
    number of employees, concurrently if needed.
    """

    def __init__(
        self,
        table: BandTable,
        engine_version: str = "1.0.0",
        gross_pay_ceiling: Decimal = DEFAULT_GROSS_PAY_CEILING,
    ):
        self.table = table
        self.engine_version = engine_version
        self.gross_pay_ceiling = gross_pay_ceiling
        self.income_tax = IncomeTaxCalculator(table, gross_pay_ceiling)
        self.national_insurance = NationalInsuranceCalculator(table, gross_pay_ceiling)
        self.student_loans = StudentLoanCalculator(table, gross_pay_ceiling)
        self.pensions = PensionCalculator(table, gross_pay_ceiling)

    @classmethod
    def for_tax_year(
        cls,
        tax_year: str,
        registry: BandTableRegistry | None = None,
        settings: Settings | None = None,
    ) -> PeriodSettlementEngine:
        """Build an engine from the configured band tables and settings."""
        settings = settings or get_settings()
        registry = registry or get_band_tables()
        return cls(
            registry.get(validate_tax_year(tax_year)),
            engine_version=settings.engine_version,
            gross_pay_ceiling=settings.gross_pay_ceiling,
        )

    def settle(self, period_input: PeriodInput, prior: YTDSnapshot | None = None) -> SettlementResult:
        """Settle one period.

        Raises:
            PayrollInputError: Any invalid input, including tax code errors.
            OutOfSequencePeriodError: ``prior`` is not period N-1 of this tax year.
        """
        period = validate_period(period_input.period)
        gross = validate_gross_pay(period_input.gross_pay, self.gross_pay_ceiling)
        tax_year = validate_tax_year(period_input.tax_year)
        if tax_year != self.table.tax_year:
            raise PayrollInputError(
                f"Input is for {period_input.tax_year} but the band table is {self.table.tax_year}",
                field="tax_year",
                value=period_input.tax_year,
            )
        tax_code = parse_tax_code(period_input.tax_code)
        self._check_prior(period_input.tax_year, period, prior)

        prior_gross = prior.gross_pay if prior else ZERO
        prior_taxable = prior.taxable_pay if prior else ZERO
        prior_tax = validate_tax_paid(prior.tax_paid if prior else ZERO)
        gross_ytd = prior_gross + gross

        if period_input.basis is TaxBasis.CUMULATIVE:
            tax = self.income_tax.cumulative(
                tax_code,
                period,
                gross_ytd,
                tax_paid_ytd=prior_tax,
                prior_taxable_pay_ytd=prior_taxable,
            )
        else:
            tax = self.income_tax.non_cumulative(
                tax_code,
                gross,
                prior_taxable_pay_ytd=prior_taxable,
                tax_paid_ytd=prior_tax,
            )

        ni = self.national_insurance.calculate(gross, period_input.ni_category)
        student_loans = self.student_loans.calculate(gross, period_input.student_loan_plans)
        pension = self.pensions.calculate(gross, period_input.pension)

        student_loan_total = sum((d.amount for d in student_loans), ZERO)
        employee_pension = pension.employee_contribution if pension else ZERO
        employer_pension = pension.employer_contribution if pension else ZERO
        net_pay = round_money(
            gross - tax.tax_this_period - ni.employee_contribution - student_loan_total - employee_pension
        )

        ytd = self._next_snapshot(
            period_input,
            prior,
            gross_ytd=gross_ytd,
            taxable_ytd=tax.taxable_pay_ytd,
            tax_due_ytd=tax.tax_due_ytd,
            ni_employee=ni.employee_contribution,
            ni_employer=ni.employer_contribution,
            student_loan=student_loan_total,
            employee_pension=employee_pension,
            employer_pension=employer_pension,
        )

        result = SettlementResult(
            calculation_id=self._generate_calculation_id(period_input, prior),
            band_table_version=self.table.version,
            tax_year=period_input.tax_year,
            period=period,
            basis=period_input.basis,
            tax_code=tax_code,
            gross_pay=round_money(gross),
            free_pay=tax.free_pay,
            taxable_pay=tax.taxable_pay,
            taxable_pay_ytd=tax.taxable_pay_ytd,
            tax_due_ytd=tax.tax_due_ytd,
            tax_this_period=tax.tax_this_period,
            ni=ni,
            student_loans=student_loans,
            pension=pension,
            net_pay=net_pay,
            ytd=ytd,
            warnings=ni.warnings,
        )
        logger.debug(
            "Settled %s period %d: gross=%s tax=%s ni=%s net=%s",
            period_input.tax_year,
            period,
            gross,
            result.tax_this_period,
            ni.employee_contribution,
            net_pay,
        )
        return result

    def _check_prior(self, tax_year: str, period: int, prior: YTDSnapshot | None) -> None:
        if prior is None:
            if period > 1:
                logger.info(
                    "No prior snapshot for %s period %d; treating year-to-date as zero",
                    tax_year,
                    period,
                )
            return
        if period == 1:
            raise OutOfSequencePeriodError(
                tax_year, 0, prior.period, "period 1 starts the tax year"
            )
        if prior.tax_year != tax_year:
            raise OutOfSequencePeriodError(
                tax_year,
                period - 1,
                prior.period,
                f"prior snapshot belongs to {prior.tax_year}",
            )
        if prior.period != period - 1:
            raise OutOfSequencePeriodError(tax_year, period - 1, prior.period)
        if prior.gross_pay_pence < 0:
            raise PayrollInputError(
                "Prior gross pay YTD must not be negative",
                field="prior_snapshot.gross_pay_pence",
                value=prior.gross_pay_pence,
            )

    @staticmethod
    def _next_snapshot(
        period_input: PeriodInput,
        prior: YTDSnapshot | None,
        *,
        gross_ytd: Decimal,
        taxable_ytd: Decimal,
        tax_due_ytd: Decimal,
        ni_employee: Decimal,
        ni_employer: Decimal,
        student_loan: Decimal,
        employee_pension: Decimal,
        employer_pension: Decimal,
    ) -> YTDSnapshot:
        return YTDSnapshot(
            tax_year=period_input.tax_year,
            period=period_input.period,
            tax_code=period_input.tax_code.strip().upper(),
            gross_pay_pence=to_pence(gross_ytd),
            taxable_pay_pence=to_pence(taxable_ytd),
            tax_pence=to_pence(tax_due_ytd),
            ni_pence=(prior.ni_pence if prior else 0) + to_pence(ni_employee),
            employer_ni_pence=(prior.employer_ni_pence if prior else 0) + to_pence(ni_employer),
            student_loan_pence=(prior.student_loan_pence if prior else 0) + to_pence(student_loan),
            employee_pension_pence=(
                (prior.employee_pension_pence if prior else 0) + to_pence(employee_pension)
            ),
            employer_pension_pence=(
                (prior.employer_pension_pence if prior else 0) + to_pence(employer_pension)
            ),
        )

    def _generate_calculation_id(self, period_input: PeriodInput, prior: YTDSnapshot | None) -> str:
        """Generate deterministic calculation ID."""
        data = {
            "engine_version": self.engine_version,
            "band_table_version": self.table.version,
            "input": period_input.to_canonical_dict(),
            "prior": prior.to_canonical_dict() if prior else None,
        }
        json_str = json.dumps(data, sort_keys=True)
        hash_bytes = hashlib.sha256(json_str.encode()).digest()
        return str(UUID(bytes=hash_bytes[:16]))
