"""Unit tests for rate slots and gross pay from hours."""

from decimal import Decimal

import pytest

from uk_payroll.calculators.earnings import (
    EmployeeRates,
    RateSlot,
    UnknownRateSlotError,
    gross_from_hours,
    parse_rate_slot,
    resolve_rate,
)

RATES = EmployeeRates(hourly=Decimal("12.50"), rate_2=Decimal("18.75"))


class TestResolveRate:
    """Each slot maps to exactly one rule."""

    def test_rate_1_is_hourly(self):
        assert resolve_rate(RateSlot.RATE_1, RATES) == Decimal("12.50")

    def test_rate_2_falls_back_to_hourly(self):
        assert resolve_rate(RateSlot.RATE_2, EmployeeRates(hourly=Decimal("10"))) == Decimal("10.00")

    def test_rate_3_falls_back_to_rate_2(self):
        assert resolve_rate(RateSlot.RATE_3, RATES) == Decimal("18.75")

    def test_rate_4_has_no_fallback(self):
        assert resolve_rate(RateSlot.RATE_4, RATES) == Decimal("0")

    def test_unset_hourly(self):
        assert resolve_rate(RateSlot.RATE_1, EmployeeRates()) == Decimal("0")


class TestParseRateSlot:
    @pytest.mark.parametrize(
        "label,slot",
        [
            (None, RateSlot.RATE_1),
            ("", RateSlot.RATE_1),
            ("Standard", RateSlot.RATE_1),
            ("Rate 2", RateSlot.RATE_2),
            ("rate3", RateSlot.RATE_3),
            ("  RATE 4 ", RateSlot.RATE_4),
        ],
    )
    def test_known_labels(self, label, slot):
        assert parse_rate_slot(label) is slot

    @pytest.mark.parametrize("label", ["Rate 5", "Rate 0", "overtime", "Rate two"])
    def test_unknown_labels_raise(self, label):
        with pytest.raises(UnknownRateSlotError) as exc_info:
            parse_rate_slot(label)
        assert exc_info.value.field == "rate_type"


class TestGrossFromHours:
    def test_mixed_slots(self):
        entries = [(RateSlot.RATE_1, Decimal("10")), (RateSlot.RATE_2, Decimal("2"))]
        assert gross_from_hours(entries, RATES) == Decimal("162.50")

    def test_unset_rate_pays_zero(self, caplog):
        entries = [(RateSlot.RATE_4, Decimal("3"))]
        assert gross_from_hours(entries, RATES) == Decimal("0.00")
        assert "RATE_4" in caplog.text
