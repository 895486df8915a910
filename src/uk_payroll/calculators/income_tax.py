"""Income tax on the cumulative and non-cumulative bases."""

from __future__ import annotations

import logging
from decimal import Decimal

from uk_payroll.calculators.bands import BandTable
from uk_payroll.calculators.money import ZERO, floor_pounds, round_money
from uk_payroll.calculators.types import IncomeTaxResult, TaxBasis, TaxBracket, TaxCodeDescriptor
from uk_payroll.calculators.validation import (
    DEFAULT_GROSS_PAY_CEILING,
    validate_gross_pay,
    validate_period,
    validate_tax_paid,
)

logger = logging.getLogger(__name__)

INFINITE_FREE_PAY = Decimal("Infinity")
PERIODS_PER_YEAR = 12


class IncomeTaxCalculator:
    """Calculates PAYE income tax from a parsed tax code and a band table.

    Cumulative basis:
        free pay YTD = monthly free pay x period (negative for K codes)
        taxable pay YTD = floor(gross YTD - free pay YTD), never below zero
        tax due YTD = annual brackets applied to taxable pay YTD
        tax this period = tax due YTD - tax paid YTD (may be a refund)

    Non-cumulative basis:
        taxable pay = floor(max(0, gross - monthly free pay))
        tax = monthly brackets (annual / 12, floored) applied to taxable pay
    """

    def __init__(self, table: BandTable, gross_pay_ceiling: Decimal = DEFAULT_GROSS_PAY_CEILING):
        self.table = table
        self.gross_pay_ceiling = gross_pay_ceiling
        self._monthly_brackets = table.monthly_tax_brackets()

    def non_cumulative(
        self,
        tax_code: TaxCodeDescriptor,
        gross_pay: Decimal,
        prior_taxable_pay_ytd: Decimal = ZERO,
        tax_paid_ytd: Decimal = ZERO,
    ) -> IncomeTaxResult:
        """Tax for a single period, ignoring year-to-date figures.

        The prior totals only carry forward into the result's YTD fields.
        """
        gross = validate_gross_pay(gross_pay, self.gross_pay_ceiling)
        paid = validate_tax_paid(tax_paid_ytd)

        if tax_code.is_no_tax:
            return IncomeTaxResult(
                basis=TaxBasis.NON_CUMULATIVE,
                free_pay=INFINITE_FREE_PAY,
                taxable_pay=ZERO,
                tax_this_period=round_money(ZERO),
                taxable_pay_ytd=prior_taxable_pay_ytd,
                tax_due_ytd=paid,
            )

        free_pay = tax_code.monthly_free_pay
        taxable = floor_pounds(max(ZERO, gross - free_pay))

        if tax_code.is_flat_rate:
            tax = round_money(taxable * self.table.flat_rate(tax_code.kind))
        else:
            tax = self.tax_on_taxable_pay(taxable, self._monthly_brackets)

        logger.debug(
            "Non-cumulative tax for %s: gross=%s free_pay=%s taxable=%s tax=%s",
            tax_code.code,
            gross,
            free_pay,
            taxable,
            tax,
        )
        return IncomeTaxResult(
            basis=TaxBasis.NON_CUMULATIVE,
            free_pay=free_pay,
            taxable_pay=taxable,
            tax_this_period=tax,
            taxable_pay_ytd=prior_taxable_pay_ytd + taxable,
            tax_due_ytd=paid + tax,
        )

    def cumulative(
        self,
        tax_code: TaxCodeDescriptor,
        period: int,
        gross_pay_ytd: Decimal,
        tax_paid_ytd: Decimal = ZERO,
        prior_taxable_pay_ytd: Decimal = ZERO,
    ) -> IncomeTaxResult:
        """Tax for a period from year-to-date totals.

        ``tax_paid_ytd`` is the tax recorded on the previous period's snapshot.
        The result is negative when tax already paid exceeds tax due.
        """
        period = validate_period(period)
        gross_ytd = validate_gross_pay(
            gross_pay_ytd, self.gross_pay_ceiling * PERIODS_PER_YEAR, field="gross_pay_ytd"
        )
        paid = validate_tax_paid(tax_paid_ytd)

        free_pay_ytd, taxable_ytd, tax_due = self.tax_due_ytd(tax_code, period, gross_ytd)
        tax_this_period = round_money(tax_due - paid)

        logger.debug(
            "Cumulative tax for %s period %d: gross_ytd=%s free_pay_ytd=%s "
            "taxable_ytd=%s due=%s paid=%s this_period=%s",
            tax_code.code,
            period,
            gross_ytd,
            free_pay_ytd,
            taxable_ytd,
            tax_due,
            paid,
            tax_this_period,
        )
        return IncomeTaxResult(
            basis=TaxBasis.CUMULATIVE,
            free_pay=tax_code.monthly_free_pay,
            taxable_pay=taxable_ytd - prior_taxable_pay_ytd,
            tax_this_period=tax_this_period,
            free_pay_ytd=free_pay_ytd,
            taxable_pay_ytd=taxable_ytd,
            tax_due_ytd=tax_due,
        )

    def tax_due_ytd(
        self, tax_code: TaxCodeDescriptor, period: int, gross_pay_ytd: Decimal
    ) -> tuple[Decimal, Decimal, Decimal]:
        """Return ``(free pay YTD, taxable pay YTD, tax due YTD)``."""
        if tax_code.is_no_tax:
            return INFINITE_FREE_PAY, ZERO, round_money(ZERO)

        free_pay_ytd = tax_code.monthly_free_pay * period
        # Only positive free pay can push this below zero; K codes always add.
        taxable_ytd = floor_pounds(max(ZERO, gross_pay_ytd - free_pay_ytd))

        if tax_code.is_flat_rate:
            tax_due = round_money(taxable_ytd * self.table.flat_rate(tax_code.kind))
        else:
            tax_due = self.tax_on_taxable_pay(taxable_ytd, self.table.tax_brackets)
        return free_pay_ytd, taxable_ytd, tax_due

    @staticmethod
    def tax_on_taxable_pay(taxable: Decimal, brackets: tuple[TaxBracket, ...]) -> Decimal:
        """Apply ascending brackets to a taxable amount.

        Each slice is bounded by its bracket width. Result rounded to pence.
        """
        if taxable <= 0:
            return round_money(ZERO)

        total_tax = ZERO
        for bracket in brackets:
            if taxable <= bracket.min_amount:
                break
            upper = bracket.max_amount if bracket.max_amount is not None else taxable
            slice_amount = min(taxable, upper) - bracket.min_amount
            if slice_amount > 0:
                total_tax += slice_amount * bracket.rate

        return round_money(total_tax)
