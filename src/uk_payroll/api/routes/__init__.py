"""API routes."""

from uk_payroll.api.routes.health import router as health_router
from uk_payroll.api.routes.settlements import router as settlements_router
from uk_payroll.api.routes.sickness import router as sickness_router
from uk_payroll.api.routes.tax_codes import router as tax_codes_router
from uk_payroll.api.routes.tax_years import router as tax_years_router

__all__ = [
    "health_router",
    "settlements_router",
    "sickness_router",
    "tax_codes_router",
    "tax_years_router",
]
