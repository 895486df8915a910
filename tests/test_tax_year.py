"""Unit tests for tax year and period arithmetic."""

from datetime import date

import pytest

from uk_payroll.calculators.tax_year import (
    parse_tax_year,
    period_dates,
    tax_period_for,
    tax_year_for,
)


class TestTaxYear:
    def test_year_starts_on_6_april(self):
        assert tax_year_for(date(2025, 4, 5)) == "2024-25"
        assert tax_year_for(date(2025, 4, 6)) == "2025-26"

    def test_century_rollover(self):
        assert tax_year_for(date(2099, 12, 1)) == "2099-00"

    def test_parse(self):
        assert parse_tax_year("2025-26") == 2025

    @pytest.mark.parametrize("label", ["2025-27", "2025/26", "25-26", ""])
    def test_parse_rejects_malformed(self, label):
        with pytest.raises(ValueError):
            parse_tax_year(label)


class TestPeriods:
    @pytest.mark.parametrize(
        "when,period",
        [
            (date(2025, 4, 6), 1),
            (date(2025, 5, 5), 1),
            (date(2025, 5, 6), 2),
            (date(2026, 1, 10), 10),
            (date(2026, 3, 6), 12),
            (date(2026, 4, 5), 12),
        ],
    )
    def test_period_for_date(self, when, period):
        assert tax_period_for(when) == period

    def test_period_dates(self):
        assert period_dates("2025-26", 1) == (date(2025, 4, 6), date(2025, 5, 5))
        assert period_dates("2025-26", 9) == (date(2025, 12, 6), date(2026, 1, 5))
        assert period_dates("2025-26", 12) == (date(2026, 3, 6), date(2026, 4, 5))

    def test_period_dates_rejects_bad_period(self):
        with pytest.raises(ValueError):
            period_dates("2025-26", 13)
