"""Counting working days against a weekly work pattern."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from datetime import date, timedelta

from uk_payroll.sickness.types import WEEKDAYS, WorkDay, WorkPattern, Weekday

logger = logging.getLogger(__name__)

DEFAULT_WORKING_DAYS_PER_WEEK = 5

PatternLike = WorkPattern | Sequence[WorkDay] | None


def _as_date(value: date | str | None) -> date | None:
    if isinstance(value, date):
        return value
    if not value or not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None


def _working_lookup(pattern: PatternLike) -> dict[Weekday, bool]:
    if pattern is None:
        return {}
    if isinstance(pattern, WorkPattern):
        return {d.day: d.is_working for d in pattern.days}

    lookup = {d.day: d.is_working for d in pattern}
    if lookup:
        missing = [d.value for d in WEEKDAYS if d not in lookup]
        if missing:
            logger.warning(
                "Work pattern has no entry for %s; those days are not counted",
                ", ".join(missing),
            )
    return lookup


def count_working_days(
    start_date: date | str | None,
    end_date: date | str | None,
    pattern: PatternLike,
) -> int:
    """Count working days from ``start_date`` to ``end_date`` inclusive.

    Returns 0 for a missing or unparseable date, an end before the start, or
    an empty pattern. A weekday absent from the pattern does not count.
    """
    start = _as_date(start_date)
    end = _as_date(end_date)
    if start is None or end is None or end < start:
        return 0

    lookup = _working_lookup(pattern)
    if not lookup:
        return 0

    working = {WEEKDAYS.index(day) for day, is_working in lookup.items() if is_working}
    if not working:
        return 0

    total_days = (end - start).days + 1
    full_weeks, remainder = divmod(total_days, 7)
    count = full_weeks * len(working)
    first_weekday = start.weekday()
    for offset in range(remainder):
        if (first_weekday + offset) % 7 in working:
            count += 1
    return count


def working_days_per_week(pattern: PatternLike) -> int:
    """Working days in the pattern, or 5 when no pattern is recorded."""
    lookup = _working_lookup(pattern)
    if not lookup:
        logger.warning(
            "No work pattern recorded; assuming %d working days per week",
            DEFAULT_WORKING_DAYS_PER_WEEK,
        )
        return DEFAULT_WORKING_DAYS_PER_WEEK
    return sum(1 for is_working in lookup.values() if is_working)


def iter_days(start: date, end: date) -> Iterator[date]:
    """Yield each date from ``start`` to ``end`` inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)
