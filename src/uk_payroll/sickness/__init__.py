"""Sickness entitlement: rolling-window usage, eligibility rules and working days."""

from uk_payroll.sickness.eligibility import EligibilityRuleResolver, NoMatchFallbackPolicy
from uk_payroll.sickness.entitlement import SicknessEntitlementEngine, build_entitlement_usage
from uk_payroll.sickness.working_days import count_working_days

__all__ = [
    "EligibilityRuleResolver",
    "NoMatchFallbackPolicy",
    "SicknessEntitlementEngine",
    "build_entitlement_usage",
    "count_working_days",
]
