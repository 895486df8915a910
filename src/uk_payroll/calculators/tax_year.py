"""Tax year labels and monthly period arithmetic.

A UK tax year runs from 6 April to 5 April and is labelled ``"2025-26"``.
Monthly period 1 covers 6 April to 5 May, period 12 covers 6 March to 5 April.
"""

from __future__ import annotations

import re
from datetime import date

TAX_YEAR_START_MONTH = 4
TAX_YEAR_START_DAY = 6
TAX_YEAR_PATTERN = re.compile(r"^(\d{4})-(\d{2})$")


def tax_year_start(when: date) -> date:
    """Return the 6 April that opens the tax year containing ``when``."""
    start = date(when.year, TAX_YEAR_START_MONTH, TAX_YEAR_START_DAY)
    if when < start:
        start = date(when.year - 1, TAX_YEAR_START_MONTH, TAX_YEAR_START_DAY)
    return start


def tax_year_for(when: date) -> str:
    """Return the tax year label for a date, e.g. ``2025-26``."""
    start_year = tax_year_start(when).year
    return f"{start_year}-{(start_year + 1) % 100:02d}"


def tax_period_for(when: date) -> int:
    """Return the monthly tax period (1-12) that contains ``when``."""
    start = tax_year_start(when)
    months = (when.year - start.year) * 12 + (when.month - start.month)
    if when.day < TAX_YEAR_START_DAY:
        months -= 1
    return months + 1


def parse_tax_year(label: str) -> int:
    """Return the starting calendar year of a tax year label.

    Raises:
        ValueError: If the label is malformed or the years are not consecutive.
    """
    match = TAX_YEAR_PATTERN.match(label or "")
    if not match:
        raise ValueError(f"Invalid tax year label {label!r}, expected e.g. '2025-26'")
    start_year = int(match.group(1))
    if (start_year + 1) % 100 != int(match.group(2)):
        raise ValueError(f"Tax year label {label!r} does not span consecutive years")
    return start_year


def period_dates(tax_year: str, period: int) -> tuple[date, date]:
    """Return the first and last day of a monthly period."""
    if not 1 <= period <= 12:
        raise ValueError(f"period must be 1-12, got {period}")
    start_year = parse_tax_year(tax_year)
    month_index = TAX_YEAR_START_MONTH - 1 + (period - 1)
    first = date(start_year + month_index // 12, month_index % 12 + 1, TAX_YEAR_START_DAY)
    next_index = month_index + 1
    following = date(start_year + next_index // 12, next_index % 12 + 1, TAX_YEAR_START_DAY)
    return first, date.fromordinal(following.toordinal() - 1)
