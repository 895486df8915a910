"""Tax year and period lookup."""

from datetime import date

from fastapi import APIRouter, Query

from uk_payroll.api.schemas import TaxPeriodResponse
from uk_payroll.calculators.tax_year import period_dates, tax_period_for, tax_year_for

router = APIRouter(prefix="/tax-years", tags=["tax-years"])


@router.get("/period", response_model=TaxPeriodResponse)
async def get_tax_period(on: date = Query(..., description="Date to look up")) -> TaxPeriodResponse:
    """Return the tax year, monthly period and period bounds for a date."""
    tax_year = tax_year_for(on)
    period = tax_period_for(on)
    start, end = period_dates(tax_year, period)
    return TaxPeriodResponse(
        on=on, tax_year=tax_year, period=period, period_start=start, period_end=end
    )
