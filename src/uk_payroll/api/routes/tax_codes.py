"""Tax code endpoints."""

from fastapi import APIRouter

from uk_payroll.api.schemas import ErrorResponse, TaxCodeResponse
from uk_payroll.calculators.tax_code import parse_tax_code

router = APIRouter(prefix="/tax-codes", tags=["tax-codes"])


@router.get(
    "/{code}",
    response_model=TaxCodeResponse,
    responses={422: {"model": ErrorResponse}},
)
async def get_tax_code(code: str) -> TaxCodeResponse:
    """Parse a tax code into its kind and allowance."""
    return TaxCodeResponse.from_descriptor(parse_tax_code(code))
