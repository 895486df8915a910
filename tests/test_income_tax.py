"""Unit tests for the income tax calculator."""

from decimal import Decimal

import pytest

from uk_payroll.calculators.errors import InvalidNumericInputError
from uk_payroll.calculators.income_tax import IncomeTaxCalculator
from uk_payroll.calculators.tax_code import parse_tax_code
from uk_payroll.calculators.types import TaxBasis, TaxBracket


@pytest.fixture
def calc(table) -> IncomeTaxCalculator:
    return IncomeTaxCalculator(table)


class TestNonCumulative:
    """Period-only tax against monthly brackets."""

    def test_basic_rate_only(self, calc):
        result = calc.non_cumulative(parse_tax_code("1257L"), Decimal("1156.25"))
        assert result.basis is TaxBasis.NON_CUMULATIVE
        assert result.free_pay == Decimal("1048.25")
        assert result.taxable_pay == Decimal("108")
        assert result.tax_this_period == Decimal("21.60")

    def test_taxable_pay_floored_to_whole_pounds(self, calc):
        result = calc.non_cumulative(parse_tax_code("1257L"), Decimal("1200.99"))
        # 1200.99 - 1048.25 = 152.74
        assert result.taxable_pay == Decimal("152")
        assert result.tax_this_period == Decimal("30.40")

    def test_pay_below_free_pay_is_untaxed(self, calc):
        result = calc.non_cumulative(parse_tax_code("1257L"), Decimal("900"))
        assert result.taxable_pay == Decimal("0")
        assert result.tax_this_period == Decimal("0.00")

    def test_higher_rate_slice_uses_monthly_threshold(self, calc):
        """Monthly basic band is floor(37700 / 12) = 3141."""
        result = calc.non_cumulative(parse_tax_code("0T"), Decimal("5000"))
        expected = Decimal("3141") * Decimal("0.20") + (Decimal("5000") - Decimal("3141")) * Decimal("0.40")
        assert result.tax_this_period == expected.quantize(Decimal("0.01"))

    def test_k_code_is_not_clamped(self, calc):
        """K497 adds 414.92 of taxable pay to a 1,000 gross."""
        result = calc.non_cumulative(parse_tax_code("K497"), Decimal("1000"))
        assert result.taxable_pay == Decimal("1414")
        assert result.taxable_pay > Decimal("1000")
        assert result.tax_this_period == Decimal("282.80")

    def test_k_code_on_zero_pay(self, calc):
        result = calc.non_cumulative(parse_tax_code("K497"), Decimal("0"))
        assert result.taxable_pay == Decimal("414")

    def test_br_is_flat_20_percent(self, calc):
        result = calc.non_cumulative(parse_tax_code("BR"), Decimal("2000"))
        assert result.tax_this_period == Decimal("400.00")

    def test_d0_and_d1(self, calc):
        assert calc.non_cumulative(parse_tax_code("D0"), Decimal("2000")).tax_this_period == Decimal("800.00")
        assert calc.non_cumulative(parse_tax_code("D1"), Decimal("2000")).tax_this_period == Decimal("900.00")

    def test_nt_pays_no_tax(self, calc):
        result = calc.non_cumulative(parse_tax_code("NT"), Decimal("50000"))
        assert result.tax_this_period == Decimal("0.00")
        assert result.free_pay.is_infinite()

    def test_year_to_date_totals_carry_prior_figures(self, calc):
        result = calc.non_cumulative(
            parse_tax_code("1257L"),
            Decimal("1156.25"),
            prior_taxable_pay_ytd=Decimal("1951"),
            tax_paid_ytd=Decimal("390.20"),
        )
        assert result.taxable_pay_ytd == Decimal("2059")
        assert result.tax_due_ytd == Decimal("411.80")
        assert result.free_pay_ytd is None

    def test_year_to_date_totals_default_to_this_period(self, calc):
        result = calc.non_cumulative(parse_tax_code("1257L"), Decimal("1156.25"))
        assert result.taxable_pay_ytd == result.taxable_pay
        assert result.tax_due_ytd == result.tax_this_period

    def test_nt_keeps_prior_totals(self, calc):
        result = calc.non_cumulative(
            parse_tax_code("NT"),
            Decimal("3000"),
            prior_taxable_pay_ytd=Decimal("1951"),
            tax_paid_ytd=Decimal("390.20"),
        )
        assert result.taxable_pay_ytd == Decimal("1951")
        assert result.tax_due_ytd == Decimal("390.20")


class TestCumulative:
    """Year-to-date tax against annual brackets."""

    def test_period_one(self, calc):
        result = calc.cumulative(parse_tax_code("1257L"), 1, Decimal("1156.25"))
        assert result.basis is TaxBasis.CUMULATIVE
        assert result.taxable_pay_ytd == Decimal("108")
        assert result.tax_this_period == Decimal("21.60")

    def test_refund_on_zero_pay_period(self, calc):
        """Period 10 with no new pay refunds the tax covered by another month of free pay."""
        result = calc.cumulative(
            parse_tax_code("1257L"),
            10,
            Decimal("20358.23"),
            tax_paid_ytd=Decimal("2184.60"),
        )
        assert result.free_pay_ytd == Decimal("10482.50")
        assert result.taxable_pay_ytd == Decimal("9875")
        assert result.tax_due_ytd == Decimal("1975.00")
        assert result.tax_this_period == Decimal("-209.60")

    def test_consecutive_refunds_stay_negative(self, calc):
        code = parse_tax_code("1257L")
        paid = Decimal("2184.60")
        refunds = []
        for period in (10, 11, 12):
            result = calc.cumulative(code, period, Decimal("20358.23"), tax_paid_ytd=paid)
            refunds.append(result.tax_this_period)
            paid = result.tax_due_ytd
        assert all(r < 0 for r in refunds)

    def test_k_code_free_pay_is_negative(self, calc):
        result = calc.cumulative(parse_tax_code("K497"), 3, Decimal("3000"))
        assert result.free_pay_ytd == Decimal("-1244.76")
        assert result.taxable_pay_ytd == Decimal("4244")
        assert result.taxable_pay_ytd > Decimal("3000")

    def test_negative_prior_tax_is_a_carried_refund(self, calc):
        result = calc.cumulative(
            parse_tax_code("1257L"), 2, Decimal("2312.50"), tax_paid_ytd=Decimal("-10.00")
        )
        # taxable = floor(2312.50 - 2096.50) = 216, due = 43.20
        assert result.tax_this_period == Decimal("53.20")

    def test_nt_refunds_all_prior_tax(self, calc):
        result = calc.cumulative(
            parse_tax_code("NT"), 4, Decimal("8000"), tax_paid_ytd=Decimal("100.00")
        )
        assert result.tax_due_ytd == Decimal("0.00")
        assert result.tax_this_period == Decimal("-100.00")

    def test_taxable_pay_for_period_is_ytd_delta(self, calc):
        result = calc.cumulative(
            parse_tax_code("1257L"),
            2,
            Decimal("2312.50"),
            prior_taxable_pay_ytd=Decimal("108"),
        )
        assert result.taxable_pay_ytd == Decimal("216")
        assert result.taxable_pay == Decimal("108")


class TestInputValidation:
    """Invalid inputs are rejected before any calculation."""

    @pytest.mark.parametrize("gross", [Decimal("-0.01"), Decimal("NaN"), Decimal("Infinity"), "abc", True])
    def test_bad_gross_pay(self, calc, gross):
        with pytest.raises(InvalidNumericInputError) as exc_info:
            calc.non_cumulative(parse_tax_code("1257L"), gross)
        assert exc_info.value.field == "gross_pay"

    def test_gross_pay_above_ceiling(self, table):
        calc = IncomeTaxCalculator(table, gross_pay_ceiling=Decimal("5000"))
        with pytest.raises(InvalidNumericInputError):
            calc.non_cumulative(parse_tax_code("1257L"), Decimal("5000.01"))

    @pytest.mark.parametrize("period", [0, 13, -1, 1.5, "3", True])
    def test_bad_period(self, calc, period):
        with pytest.raises(InvalidNumericInputError) as exc_info:
            calc.cumulative(parse_tax_code("1257L"), period, Decimal("1000"))
        assert exc_info.value.field == "period"

    @pytest.mark.parametrize("paid", [Decimal("NaN"), Decimal("-Infinity")])
    def test_non_finite_tax_paid(self, calc, paid):
        with pytest.raises(InvalidNumericInputError):
            calc.cumulative(parse_tax_code("1257L"), 2, Decimal("1000"), tax_paid_ytd=paid)


class TestBracketSlicing:
    """Slices are bounded by bracket widths."""

    def test_progressive_slices(self):
        brackets = (
            TaxBracket("basic", Decimal("0"), Decimal("100"), Decimal("0.10")),
            TaxBracket("higher", Decimal("100"), None, Decimal("0.50")),
        )
        assert IncomeTaxCalculator.tax_on_taxable_pay(Decimal("150"), brackets) == Decimal("35.00")

    def test_zero_taxable(self):
        brackets = (TaxBracket("basic", Decimal("0"), None, Decimal("0.20")),)
        assert IncomeTaxCalculator.tax_on_taxable_pay(Decimal("0"), brackets) == Decimal("0.00")
