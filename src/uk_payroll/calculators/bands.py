"""Versioned band tables.

Thresholds and rates live in JSON files, one per tax year, so a historical
year can be replayed with the exact table it was settled under. Packaged
tables are in ``uk_payroll/data/bands``; files in ``BAND_TABLES_DIR`` are
loaded afterwards and replace packaged tables for the same tax year.

File structure::

    {
        "tax_year": "2025-26",
        "version": "2025-26.1",
        "income_tax": {"personal_allowance": 12570, "brackets": [...]},
        "national_insurance": {"monthly_thresholds": {...}, ...},
        "student_loans": {"PLAN_1": {"threshold": 26065, "rate": "0.09"}, ...},
        "pension": {"employer_rate": "0.237", "tiers": [...]}
    }
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from decimal import Decimal
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any

from uk_payroll.calculators.errors import BandTableNotFoundError
from uk_payroll.calculators.money import floor_pounds
from uk_payroll.calculators.types import StudentLoanPlan, TaxBracket, TaxCodeKind
from uk_payroll.config import get_settings

logger = logging.getLogger(__name__)

PERIODS_PER_YEAR = 12

FLAT_RATE_BRACKETS: dict[TaxCodeKind, str] = {
    TaxCodeKind.BASIC_RATE_FLAT: "basic",
    TaxCodeKind.HIGHER_RATE_FLAT: "higher",
    TaxCodeKind.ADDITIONAL_RATE_FLAT: "additional",
}


@dataclass(frozen=True)
class NIRateGroup:
    """Employee NI rates between PT and UEL (main) and above UEL (additional)."""

    main: Decimal
    additional: Decimal


@dataclass(frozen=True)
class NICategory:
    """An NI category letter and the rates it maps to."""

    letter: str
    employee_group: str
    employer_relief: bool  # employer pays 0% up to the upper secondary threshold


@dataclass(frozen=True)
class NITable:
    """Monthly NI thresholds and rates."""

    lel: Decimal
    pt: Decimal
    st: Decimal
    uel: Decimal
    ust: Decimal
    employer_rate: Decimal
    rate_groups: dict[str, NIRateGroup]
    categories: dict[str, NICategory]


@dataclass(frozen=True)
class StudentLoanThreshold:
    """Annual repayment threshold and rate for one plan."""

    plan: StudentLoanPlan
    annual_threshold: Decimal
    rate: Decimal


@dataclass(frozen=True)
class PensionTier:
    """Tier of a tiered pension scheme, half-open ``[min_amount, max_amount)``."""

    tier: int
    min_amount: Decimal
    max_amount: Decimal | None
    rate: Decimal

    def contains(self, annual_pay: Decimal) -> bool:
        if annual_pay < self.min_amount:
            return False
        return self.max_amount is None or annual_pay < self.max_amount


@dataclass(frozen=True)
class PensionTable:
    """Tiered pension contribution table."""

    employer_rate: Decimal
    tiers: tuple[PensionTier, ...]


@dataclass(frozen=True)
class BandTable:
    """All thresholds and rates for one tax year."""

    tax_year: str
    version: str
    personal_allowance: Decimal
    tax_brackets: tuple[TaxBracket, ...]
    ni: NITable
    student_loans: dict[StudentLoanPlan, StudentLoanThreshold]
    pension: PensionTable

    def monthly_tax_brackets(self) -> tuple[TaxBracket, ...]:
        """Annual brackets divided by 12 and floored to whole pounds."""
        return tuple(
            TaxBracket(
                name=b.name,
                min_amount=floor_pounds(b.min_amount / PERIODS_PER_YEAR),
                max_amount=(
                    floor_pounds(b.max_amount / PERIODS_PER_YEAR)
                    if b.max_amount is not None
                    else None
                ),
                rate=b.rate,
            )
            for b in self.tax_brackets
        )

    def flat_rate(self, kind: TaxCodeKind) -> Decimal:
        """Rate applied to all taxable pay for BR, D0 and D1 codes."""
        name = FLAT_RATE_BRACKETS[kind]
        for bracket in self.tax_brackets:
            if bracket.name == name:
                return bracket.rate
        raise KeyError(f"Band table {self.version} has no '{name}' bracket")

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> BandTable:
        """Build a table from its JSON payload.

        Raises:
            ValueError: If brackets or tiers are not contiguous.
            KeyError: If a required key is missing.
        """
        income_tax = payload["income_tax"]
        brackets = tuple(
            TaxBracket(
                name=b["name"],
                min_amount=Decimal(str(b["min"])),
                max_amount=Decimal(str(b["max"])) if b.get("max") is not None else None,
                rate=Decimal(str(b["rate"])),
            )
            for b in income_tax["brackets"]
        )
        _check_contiguous(
            "income tax bracket", [(b.min_amount, b.max_amount) for b in brackets]
        )

        ni_payload = payload["national_insurance"]
        thresholds = ni_payload["monthly_thresholds"]
        rate_groups = {
            name: NIRateGroup(
                main=Decimal(str(group["main"])),
                additional=Decimal(str(group["additional"])),
            )
            for name, group in ni_payload["employee_rate_groups"].items()
        }
        categories = {}
        for letter, category in ni_payload["categories"].items():
            if category["employee"] not in rate_groups:
                raise ValueError(
                    f"NI category {letter} refers to unknown rate group {category['employee']!r}"
                )
            categories[letter.upper()] = NICategory(
                letter=letter.upper(),
                employee_group=category["employee"],
                employer_relief=bool(category.get("employer_relief", False)),
            )
        ni = NITable(
            lel=Decimal(str(thresholds["lel"])),
            pt=Decimal(str(thresholds["pt"])),
            st=Decimal(str(thresholds["st"])),
            uel=Decimal(str(thresholds["uel"])),
            ust=Decimal(str(thresholds.get("ust", thresholds["uel"]))),
            employer_rate=Decimal(str(ni_payload["employer_rate"])),
            rate_groups=rate_groups,
            categories=categories,
        )

        student_loans = {
            StudentLoanPlan(plan): StudentLoanThreshold(
                plan=StudentLoanPlan(plan),
                annual_threshold=Decimal(str(entry["threshold"])),
                rate=Decimal(str(entry["rate"])),
            )
            for plan, entry in payload["student_loans"].items()
        }

        pension_payload = payload["pension"]
        tiers = tuple(
            PensionTier(
                tier=int(t["tier"]),
                min_amount=Decimal(str(t["min"])),
                max_amount=Decimal(str(t["max"])) if t.get("max") is not None else None,
                rate=Decimal(str(t["rate"])),
            )
            for t in sorted(pension_payload["tiers"], key=lambda t: Decimal(str(t["min"])))
        )
        _check_contiguous("pension tier", [(t.min_amount, t.max_amount) for t in tiers])

        return cls(
            tax_year=payload["tax_year"],
            version=payload.get("version", payload["tax_year"]),
            personal_allowance=Decimal(str(income_tax["personal_allowance"])),
            tax_brackets=brackets,
            ni=ni,
            student_loans=student_loans,
            pension=PensionTable(
                employer_rate=Decimal(str(pension_payload["employer_rate"])),
                tiers=tiers,
            ),
        )


def _check_contiguous(label: str, ranges: list[tuple[Decimal, Decimal | None]]) -> None:
    if not ranges:
        raise ValueError(f"At least one {label} is required")
    for (_, upper), (lower, _) in zip(ranges, ranges[1:]):
        if upper is None or upper != lower:
            raise ValueError(f"{label.capitalize()}s must be contiguous: {upper} then {lower}")
    if ranges[-1][1] is not None:
        raise ValueError(f"The last {label} must be unbounded")


class BandTableRegistry:
    """Band tables keyed by tax year label."""

    def __init__(self, tables: dict[str, BandTable] | None = None):
        self._tables: dict[str, BandTable] = dict(tables or {})

    def register(self, table: BandTable) -> None:
        previous = self._tables.get(table.tax_year)
        if previous is not None and previous.version != table.version:
            logger.info(
                "Replacing band table %s version %s with %s",
                table.tax_year,
                previous.version,
                table.version,
            )
        self._tables[table.tax_year] = table

    def get(self, tax_year: str) -> BandTable:
        """Return the table for a tax year.

        Raises:
            BandTableNotFoundError: If no table is registered.
        """
        try:
            return self._tables[tax_year]
        except KeyError:
            raise BandTableNotFoundError(tax_year) from None

    @property
    def tax_years(self) -> list[str]:
        return sorted(self._tables)

    @classmethod
    def load(cls, extra_dir: str | Path | None = None) -> BandTableRegistry:
        """Load packaged tables, then any JSON files found in ``extra_dir``."""
        registry = cls()
        packaged = resources.files("uk_payroll.data").joinpath("bands")
        for entry in sorted(packaged.iterdir(), key=lambda e: e.name):
            if entry.name.endswith(".json"):
                registry.register(BandTable.from_dict(json.loads(entry.read_text("utf-8"))))

        if extra_dir is not None:
            directory = Path(extra_dir)
            if not directory.is_dir():
                raise FileNotFoundError(f"Band tables directory not found: {directory}")
            for path in sorted(directory.glob("*.json")):
                logger.debug("Loading band table override %s", path)
                registry.register(BandTable.from_dict(json.loads(path.read_text("utf-8"))))

        logger.debug("Loaded band tables for %s", ", ".join(registry.tax_years))
        return registry


@lru_cache(maxsize=1)
def get_band_tables() -> BandTableRegistry:
    """Get the registry configured by settings, loaded once."""
    return BandTableRegistry.load(get_settings().band_tables_dir)
