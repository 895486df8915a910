"""Services that combine storage with the calculation engines."""

from uk_payroll.services.payroll_service import PayrollService, PeriodAlreadySettledError
from uk_payroll.services.sickness_service import (
    EmployeeNotEnrolledError,
    SicknessRecordNotFoundError,
    SicknessService,
)

__all__ = [
    "EmployeeNotEnrolledError",
    "PayrollService",
    "PeriodAlreadySettledError",
    "SicknessRecordNotFoundError",
    "SicknessService",
]
