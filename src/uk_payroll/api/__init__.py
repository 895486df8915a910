"""HTTP API for settlement and sickness entitlement."""
