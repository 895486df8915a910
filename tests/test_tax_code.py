"""Unit tests for tax code parsing."""

from decimal import Decimal

import pytest

from uk_payroll.calculators.errors import UnrecognizedTaxCodeError, UnsupportedTaxRegionError
from uk_payroll.calculators.tax_code import monthly_free_pay, parse_tax_code
from uk_payroll.calculators.types import TaxCodeKind


class TestStandardCodes:
    """Numeric codes with an L, M, N or T suffix."""

    def test_1257l(self):
        """1257L gives 12,570 a year and 1,048.25 a month."""
        descriptor = parse_tax_code("1257L")
        assert descriptor.code == "1257L"
        assert descriptor.kind is TaxCodeKind.STANDARD
        assert descriptor.annual_allowance == Decimal("12570")
        assert descriptor.monthly_free_pay == Decimal("1048.25")

    def test_normalizes_case_and_whitespace(self):
        """Input is trimmed and uppercased."""
        assert parse_tax_code("  1257l ").code == "1257L"

    @pytest.mark.parametrize("suffix", ["L", "M", "N", "T"])
    def test_all_suffixes(self, suffix):
        assert parse_tax_code(f"1257{suffix}").kind is TaxCodeKind.STANDARD

    def test_zero_digits_with_suffix(self):
        """0L still parses under the standard rule with no allowance."""
        descriptor = parse_tax_code("0L")
        assert descriptor.kind is TaxCodeKind.STANDARD
        assert descriptor.annual_allowance == Decimal("0")

    def test_free_pay_rounds_up_to_penny(self):
        """(4970 + 9) / 12 = 414.9166... rounds up to 414.92."""
        assert monthly_free_pay(497) == Decimal("414.92")


class TestKCodes:
    """Negative allowance codes."""

    def test_k497(self):
        descriptor = parse_tax_code("K497")
        assert descriptor.kind is TaxCodeKind.NEGATIVE
        assert descriptor.annual_allowance == Decimal("-4970")
        assert descriptor.monthly_free_pay == Decimal("-414.92")

    def test_k0_is_rejected(self):
        with pytest.raises(UnrecognizedTaxCodeError):
            parse_tax_code("K0")


class TestSpecialCodes:
    """Flat-rate, no-tax and emergency codes."""

    @pytest.mark.parametrize(
        "code,kind",
        [
            ("BR", TaxCodeKind.BASIC_RATE_FLAT),
            ("D0", TaxCodeKind.HIGHER_RATE_FLAT),
            ("D1", TaxCodeKind.ADDITIONAL_RATE_FLAT),
        ],
    )
    def test_flat_rate_codes(self, code, kind):
        descriptor = parse_tax_code(code)
        assert descriptor.kind is kind
        assert descriptor.is_flat_rate
        assert descriptor.annual_allowance == Decimal("0")

    def test_nt_has_infinite_allowance(self):
        descriptor = parse_tax_code("nt")
        assert descriptor.is_no_tax
        assert descriptor.annual_allowance.is_infinite()
        assert descriptor.annual_allowance > 0

    def test_0t_has_zero_allowance(self):
        descriptor = parse_tax_code("0T")
        assert descriptor.kind is TaxCodeKind.EMERGENCY_ZERO
        assert descriptor.monthly_free_pay == Decimal("0")


class TestRegionalCodes:
    """Scottish and Welsh codes are recognized and rejected."""

    @pytest.mark.parametrize(
        "code,region",
        [
            ("S1257L", "Scotland"),
            ("C1257L", "Wales"),
            ("SK497", "Scotland"),
            ("SBR", "Scotland"),
            ("SD2", "Scotland"),
            ("CD0", "Wales"),
        ],
    )
    def test_regional_prefix_raises_unsupported(self, code, region):
        with pytest.raises(UnsupportedTaxRegionError) as exc_info:
            parse_tax_code(code)
        assert exc_info.value.region == region
        assert exc_info.value.tax_code == code

    def test_prefix_with_unknown_remainder_is_unrecognized(self):
        with pytest.raises(UnrecognizedTaxCodeError):
            parse_tax_code("SXYZ")


class TestUnrecognizedCodes:
    """Anything else raises with the offending input attached."""

    @pytest.mark.parametrize(
        "code", ["", "   ", "1257X", "12 57L", "1257L!", "L1257", "K", "12345678901L"]
    )
    def test_unrecognized(self, code):
        with pytest.raises(UnrecognizedTaxCodeError) as exc_info:
            parse_tax_code(code)
        assert exc_info.value.tax_code == code
        assert exc_info.value.field == "tax_code"

    def test_non_string_input(self):
        with pytest.raises(UnrecognizedTaxCodeError):
            parse_tax_code(None)  # type: ignore[arg-type]
