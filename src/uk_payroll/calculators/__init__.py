"""Payroll tax and contribution calculators."""

from uk_payroll.calculators.bands import BandTable, BandTableRegistry, get_band_tables
from uk_payroll.calculators.contributions import (
    NationalInsuranceCalculator,
    PensionCalculator,
    StudentLoanCalculator,
)
from uk_payroll.calculators.income_tax import IncomeTaxCalculator
from uk_payroll.calculators.settlement import PeriodSettlementEngine
from uk_payroll.calculators.tax_code import parse_tax_code

__all__ = [
    "BandTable",
    "BandTableRegistry",
    "get_band_tables",
    "IncomeTaxCalculator",
    "NationalInsuranceCalculator",
    "PensionCalculator",
    "PeriodSettlementEngine",
    "StudentLoanCalculator",
    "parse_tax_code",
]
