"""Persistence for settled snapshots and sickness data."""

from uk_payroll.storage.models import Base
from uk_payroll.storage.repositories import SicknessStore, SnapshotStore

__all__ = ["Base", "SicknessStore", "SnapshotStore"]
