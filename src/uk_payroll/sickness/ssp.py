"""Statutory sick pay usage under the PIW linking rules.

A period of incapacity for work (PIW) is an absence covering at least four
qualifying days. PIWs separated by 56 days or fewer link into one chain.
Each chain serves three waiting days before SSP is paid and pays at most
28 weeks of qualifying days.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date

from uk_payroll.sickness.types import SicknessRecord, SSPUsage, Weekday, WorkPattern
from uk_payroll.sickness.working_days import count_working_days, iter_days

logger = logging.getLogger(__name__)

PIW_MIN_QUALIFYING_DAYS = 4
LINKING_GAP_DAYS = 56
WAITING_DAYS = 3
MAX_WEEKS = 28


@dataclass(frozen=True)
class _Span:
    start: date
    end: date
    qualifying_days: int


def build_piws(
    records: Iterable[SicknessRecord], pattern: WorkPattern, reference_date: date
) -> list[_Span]:
    """Absences long enough to form a PIW, earliest first."""
    spans = []
    for record in records:
        if record.start_date > reference_date:
            continue
        end = record.effective_end(reference_date)
        qualifying_days = count_working_days(record.start_date, end, pattern)
        spans.append(_Span(record.start_date, end, qualifying_days))
    return sorted(
        (s for s in spans if s.qualifying_days >= PIW_MIN_QUALIFYING_DAYS),
        key=lambda s: s.start,
    )


def link_piws(piws: list[_Span]) -> list[list[_Span]]:
    """Group PIWs that start within 56 days of the previous one's end."""
    chains: list[list[_Span]] = []
    for span in piws:
        if chains and (span.start - chains[-1][-1].end).days <= LINKING_GAP_DAYS:
            chains[-1].append(span)
        else:
            chains.append([span])
    return chains


def _ssp_days_in_range(
    chain: list[_Span],
    qualifying: frozenset[Weekday],
    cap: int,
    range_start: date,
    range_end: date,
) -> int:
    cap_used = 0
    qualifying_seen = 0
    used_in_range = 0
    for span in chain:
        for day in iter_days(span.start, span.end):
            if Weekday.of(day) not in qualifying:
                continue
            qualifying_seen += 1
            if qualifying_seen > WAITING_DAYS and cap_used < cap:
                cap_used += 1
                if range_start <= day <= range_end:
                    used_in_range += 1
    return used_in_range


def calculate_ssp_usage(
    records: Iterable[SicknessRecord],
    pattern: WorkPattern | None,
    reference_date: date,
    window_start: date,
) -> SSPUsage:
    """SSP days paid in the rolling window and in the reference date's calendar year."""
    if pattern is None:
        logger.warning("No work pattern given for SSP; using Monday to Friday")
        pattern = WorkPattern.standard()
    qualifying = pattern.working_weekdays
    per_week = len(qualifying)
    cap = MAX_WEEKS * per_week

    chains = link_piws(build_piws(records, pattern, reference_date))
    year_start = date(reference_date.year, 1, 1)

    used_rolling = 0
    used_year = 0
    for chain in chains:
        used_rolling += _ssp_days_in_range(chain, qualifying, cap, window_start, reference_date)
        used_year += _ssp_days_in_range(chain, qualifying, cap, year_start, reference_date)

    logger.debug(
        "SSP usage as of %s: %d chains, rolling=%d, year=%d",
        reference_date,
        len(chains),
        used_rolling,
        used_year,
    )
    return SSPUsage(
        qualifying_days_per_week=per_week,
        entitled_days=cap,
        used_rolling=used_rolling,
        used_current_year=used_year,
    )
