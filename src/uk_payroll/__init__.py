"""UK payroll tax, contribution and sickness entitlement engine."""

__version__ = "0.1.0"
