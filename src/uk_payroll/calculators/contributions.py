"""National Insurance, student loan and pension contributions."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from decimal import Decimal

from uk_payroll.calculators.bands import BandTable, PensionTier
from uk_payroll.calculators.errors import IntegrityWarning, PayrollInputError
from uk_payroll.calculators.money import PENNY, ZERO, round_money
from uk_payroll.calculators.types import (
    NIEarningsBands,
    NIResult,
    PensionModel,
    PensionResult,
    PensionSelection,
    StudentLoanDeduction,
    StudentLoanPlan,
)
from uk_payroll.calculators.validation import (
    DEFAULT_GROSS_PAY_CEILING,
    validate_gross_pay,
    validate_rate,
)

logger = logging.getLogger(__name__)

MONTHS_PER_YEAR = 12
BAND_SUM_TOLERANCE = PENNY


class NationalInsuranceCalculator:
    """Class 1 NI for a monthly pay period.

    Earnings are reported in the HMRC bands: up to LEL, LEL to PT, PT to UEL
    and above UEL. Employee NI is charged on PT to UEL at the main rate and
    above UEL at the additional rate. Employer NI is charged above ST, or
    above UST for categories with employer relief.
    """

    def __init__(self, table: BandTable, gross_pay_ceiling: Decimal = DEFAULT_GROSS_PAY_CEILING):
        self.table = table
        self.gross_pay_ceiling = gross_pay_ceiling

    def calculate(self, gross_pay: Decimal, category: str = "A") -> NIResult:
        """Calculate NI for one period.

        Raises:
            PayrollInputError: If the category letter is not in the band table.
        """
        gross = validate_gross_pay(gross_pay, self.gross_pay_ceiling)
        ni = self.table.ni
        letter = (category or "").strip().upper()
        ni_category = ni.categories.get(letter)
        if ni_category is None:
            raise PayrollInputError(
                f"Unknown NI category '{category}'", field="ni_category", value=category
            )
        rates = ni.rate_groups[ni_category.employee_group]

        bands = self.earnings_bands(gross)
        employee = round_money(bands.pt_to_uel * rates.main + bands.above_uel * rates.additional)

        if ni_category.employer_relief:
            employer_base = max(ZERO, gross - ni.ust)
        else:
            employer_base = bands.above_st
        employer = round_money(employer_base * ni.employer_rate)

        warnings = tuple(self.integrity_warnings(gross, bands))
        for warning in warnings:
            logger.warning("NI integrity check %s: %s", warning.code, warning.message)

        logger.debug(
            "NI category %s on %s: employee=%s employer=%s", letter, gross, employee, employer
        )
        return NIResult(
            category=letter,
            employee_contribution=employee,
            employer_contribution=employer,
            bands=bands,
            warnings=warnings,
        )

    def earnings_bands(self, gross: Decimal) -> NIEarningsBands:
        """Split gross pay across the reporting bands."""
        ni = self.table.ni
        if gross <= ni.lel:
            at_lel, lel_to_pt, pt_to_uel, above_uel = gross, ZERO, ZERO, ZERO
        elif gross <= ni.pt:
            at_lel, lel_to_pt, pt_to_uel, above_uel = ni.lel, gross - ni.lel, ZERO, ZERO
        elif gross <= ni.uel:
            at_lel, lel_to_pt, pt_to_uel, above_uel = ni.lel, ni.pt - ni.lel, gross - ni.pt, ZERO
        else:
            at_lel = ni.lel
            lel_to_pt = ni.pt - ni.lel
            pt_to_uel = ni.uel - ni.pt
            above_uel = gross - ni.uel

        return NIEarningsBands(
            at_lel=round_money(at_lel),
            lel_to_pt=round_money(lel_to_pt),
            pt_to_uel=round_money(pt_to_uel),
            above_uel=round_money(above_uel),
            above_st=round_money(max(ZERO, gross - ni.st)),
        )

    def integrity_warnings(self, gross: Decimal, bands: NIEarningsBands) -> list[IntegrityWarning]:
        """Check reported bands against gross pay and the table's LEL."""
        warnings: list[IntegrityWarning] = []
        difference = abs(bands.total - gross)
        if difference > BAND_SUM_TOLERANCE:
            warnings.append(
                IntegrityWarning(
                    code="NI_BAND_SUM_MISMATCH",
                    message=f"NI earnings bands sum to {bands.total}, gross pay is {gross}",
                    details={"bands_total": str(bands.total), "gross_pay": str(gross)},
                )
            )
        lel = self.table.ni.lel
        if gross > lel and bands.at_lel != lel:
            warnings.append(
                IntegrityWarning(
                    code="NI_LEL_BAND_MISMATCH",
                    message=f"Earnings at LEL reported as {bands.at_lel}, expected {lel}",
                    details={"at_lel": str(bands.at_lel), "expected": str(lel)},
                )
            )
        return warnings


class StudentLoanCalculator:
    """Student loan repayments from annualised monthly pay."""

    def __init__(self, table: BandTable, gross_pay_ceiling: Decimal = DEFAULT_GROSS_PAY_CEILING):
        self.table = table
        self.gross_pay_ceiling = gross_pay_ceiling

    def calculate(
        self, gross_pay: Decimal, plans: Iterable[StudentLoanPlan]
    ) -> tuple[StudentLoanDeduction, ...]:
        """One deduction per selected plan. No plans gives an empty tuple.

        Raises:
            PayrollInputError: If a plan has no threshold in the band table.
        """
        gross = validate_gross_pay(gross_pay, self.gross_pay_ceiling)
        annual = gross * MONTHS_PER_YEAR
        deductions = []
        for plan in dict.fromkeys(plans):
            threshold = self.table.student_loans.get(plan)
            if threshold is None:
                raise PayrollInputError(
                    f"No student loan threshold for {plan.value} in {self.table.tax_year}",
                    field="student_loan_plans",
                    value=plan.value,
                )
            excess = max(ZERO, annual - threshold.annual_threshold)
            amount = round_money(excess / MONTHS_PER_YEAR * threshold.rate)
            deductions.append(StudentLoanDeduction(plan=plan, amount=amount))
        return tuple(deductions)


class PensionCalculator:
    """Flat-rate or tiered (NHS-style) pension contributions."""

    def __init__(self, table: BandTable, gross_pay_ceiling: Decimal = DEFAULT_GROSS_PAY_CEILING):
        self.table = table
        self.gross_pay_ceiling = gross_pay_ceiling

    def calculate(self, gross_pay: Decimal, selection: PensionSelection | None) -> PensionResult | None:
        """Contributions for one period, or None when no scheme is selected."""
        if selection is None:
            return None
        gross = validate_gross_pay(gross_pay, self.gross_pay_ceiling)

        if selection.model is PensionModel.FLAT:
            if selection.employee_rate is None:
                raise PayrollInputError(
                    "Flat pension needs an employee rate", field="pension.employee_rate"
                )
            employee_rate = validate_rate(selection.employee_rate, "pension.employee_rate")
            employer_rate = validate_rate(
                selection.employer_rate if selection.employer_rate is not None else ZERO,
                "pension.employer_rate",
            )
            return PensionResult(
                model=PensionModel.FLAT,
                employee_rate=employee_rate,
                employer_rate=employer_rate,
                employee_contribution=round_money(gross * employee_rate),
                employer_contribution=round_money(gross * employer_rate),
            )

        return self._tiered(gross, selection)

    def _tiered(self, gross: Decimal, selection: PensionSelection) -> PensionResult:
        employer_rate = validate_rate(
            selection.employer_rate
            if selection.employer_rate is not None
            else self.table.pension.employer_rate,
            "pension.employer_rate",
        )
        annualised = gross * MONTHS_PER_YEAR
        tier_number: int | None = None

        if selection.employee_rate is not None:
            employee_rate = validate_rate(selection.employee_rate, "pension.employee_rate")
        elif selection.tier is not None:
            tier = self.tier_by_number(selection.tier)
            tier_number, employee_rate = tier.tier, tier.rate
        else:
            if selection.prior_year_pensionable_pay is not None:
                annualised = validate_gross_pay(
                    selection.prior_year_pensionable_pay,
                    self.gross_pay_ceiling * MONTHS_PER_YEAR,
                    field="pension.prior_year_pensionable_pay",
                )
            tier = self.tier_for_pay(annualised)
            tier_number, employee_rate = tier.tier, tier.rate

        return PensionResult(
            model=PensionModel.TIERED,
            employee_rate=employee_rate,
            employer_rate=employer_rate,
            employee_contribution=round_money(gross * employee_rate),
            employer_contribution=round_money(gross * employer_rate),
            tier=tier_number,
            annualised_pay=round_money(annualised),
        )

    def tier_for_pay(self, annual_pay: Decimal) -> PensionTier:
        """Return the tier whose ``[min, max)`` range contains ``annual_pay``."""
        for tier in self.table.pension.tiers:
            if tier.contains(annual_pay):
                return tier
        # Tiers are contiguous from the first minimum, so only pay below it lands here.
        return self.table.pension.tiers[0]

    def tier_by_number(self, number: int) -> PensionTier:
        for tier in self.table.pension.tiers:
            if tier.tier == number:
                return tier
        raise PayrollInputError(
            f"Pension tier {number} does not exist in {self.table.tax_year}",
            field="pension.tier",
            value=number,
        )
