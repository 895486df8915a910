"""Eligibility rule resolution by length of service."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import date
from enum import Enum

from uk_payroll.sickness.types import EligibilityRule, EntitlementUnit, InvalidEligibilityRulesError

logger = logging.getLogger(__name__)

UNIT_DAYS: dict[EntitlementUnit, int] = {
    EntitlementUnit.DAYS: 1,
    EntitlementUnit.WEEKS: 7,
    EntitlementUnit.MONTHS: 30,
}


class NoMatchFallbackPolicy(str, Enum):
    """What to do when no rule's service band contains the service length."""

    FIRST_RULE = "first_rule"
    NONE = "none"


def to_days(amount: int, unit: EntitlementUnit) -> int:
    """Convert a service length to days (months count as 30 days)."""
    return amount * UNIT_DAYS[unit]


def service_months_between(hire_date: date, at: date) -> int:
    """Whole calendar months from hire to ``at``, ignoring the day of month."""
    months = (at.year - hire_date.year) * 12 + (at.month - hire_date.month)
    return max(0, months)


def _bounds(rule: EligibilityRule) -> tuple[int, int | None]:
    lower = to_days(rule.service_from, rule.service_unit)
    upper = to_days(rule.service_to, rule.service_unit) if rule.service_to is not None else None
    return lower, upper


def sort_rules(rules: Sequence[EligibilityRule]) -> list[EligibilityRule]:
    """Rules in ascending order of service start, in days."""
    return sorted(rules, key=lambda r: _bounds(r)[0])


class EligibilityRuleResolver:
    """Selects the rule whose ``[service_from, service_to)`` band contains a service length.

    When no band matches, ``FIRST_RULE`` returns the lowest band and logs a
    warning; ``NONE`` returns None.
    """

    def __init__(self, policy: NoMatchFallbackPolicy = NoMatchFallbackPolicy.FIRST_RULE):
        self.policy = policy

    def resolve(self, service_months: int, rules: Sequence[EligibilityRule]) -> EligibilityRule | None:
        if not rules:
            return None

        ordered = sort_rules(rules)
        service_days = to_days(service_months, EntitlementUnit.MONTHS)
        for rule in ordered:
            lower, upper = _bounds(rule)
            if service_days >= lower and (upper is None or service_days < upper):
                return rule

        return self._no_match(service_months, ordered)

    def _no_match(self, service_months: int, ordered: list[EligibilityRule]) -> EligibilityRule | None:
        if self.policy is NoMatchFallbackPolicy.FIRST_RULE:
            fallback = ordered[0]
            logger.warning(
                "No eligibility rule covers %d months of service; falling back to rule %s",
                service_months,
                fallback.id,
            )
            return fallback
        logger.warning("No eligibility rule covers %d months of service", service_months)
        return None


def find_rule_gaps(rules: Sequence[EligibilityRule]) -> list[tuple[int, int]]:
    """Service ranges, in days, that no rule covers.

    Coverage is expected from day 0 upwards.
    """
    gaps: list[tuple[int, int]] = []
    covered_to: int | None = 0
    for rule in sort_rules(rules):
        lower, upper = _bounds(rule)
        if covered_to is None:
            break
        if lower > covered_to:
            gaps.append((covered_to, lower))
        if upper is None:
            covered_to = None
        else:
            covered_to = max(covered_to, upper)
    return gaps


def validate_rules(rules: Sequence[EligibilityRule]) -> None:
    """Check that a scheme's rules tile service length without gaps or overlaps.

    Raises:
        InvalidEligibilityRulesError: On an empty set, a gap, an overlap, an
            inverted band or an upper bound on the last rule.
    """
    if not rules:
        raise InvalidEligibilityRulesError("a scheme needs at least one rule")

    ordered = sort_rules(rules)
    for rule in ordered:
        lower, upper = _bounds(rule)
        if upper is not None and upper <= lower:
            raise InvalidEligibilityRulesError(f"rule {rule.id} ends before it starts")

    gaps = find_rule_gaps(ordered)
    if gaps:
        described = ", ".join(f"{start}-{end} days" for start, end in gaps)
        raise InvalidEligibilityRulesError(f"service length not covered: {described}")

    for previous, current in zip(ordered, ordered[1:]):
        _, previous_upper = _bounds(previous)
        current_lower, _ = _bounds(current)
        if previous_upper is None or previous_upper > current_lower:
            raise InvalidEligibilityRulesError(f"rules {previous.id} and {current.id} overlap")

    if _bounds(ordered[-1])[1] is not None:
        raise InvalidEligibilityRulesError(f"last rule {ordered[-1].id} must be open-ended")
