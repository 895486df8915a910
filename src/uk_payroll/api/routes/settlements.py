"""Settlement endpoints."""

from fastapi import APIRouter, status

from uk_payroll.api.dependencies import AppSettings, BandTables, DbSession
from uk_payroll.api.schemas import (
    ErrorResponse,
    PeriodInputSchema,
    SettlementPreviewRequest,
    SettlementResponse,
    StoredSnapshotListResponse,
    StoredSnapshotResponse,
)
from uk_payroll.calculators.settlement import PeriodSettlementEngine
from uk_payroll.services.payroll_service import PayrollService

router = APIRouter(tags=["settlements"])


@router.post(
    "/settlements/preview",
    response_model=SettlementResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def preview_settlement(
    payload: SettlementPreviewRequest,
    settings: AppSettings,
    tables: BandTables,
) -> SettlementResponse:
    """Settle a period against the given prior snapshot. Nothing is stored."""
    period_input = payload.period_input.to_period_input(settings.default_tax_year)
    engine = PeriodSettlementEngine.for_tax_year(
        period_input.tax_year, registry=tables, settings=settings
    )
    prior = payload.prior.to_snapshot() if payload.prior else None
    return SettlementResponse.from_result(engine.settle(period_input, prior))


@router.post(
    "/employees/{employee_id}/settlements",
    response_model=SettlementResponse,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def settle_period(
    employee_id: str,
    payload: PeriodInputSchema,
    db: DbSession,
    settings: AppSettings,
    tables: BandTables,
) -> SettlementResponse:
    """Settle the next period from the stored prior snapshot and store the result."""
    service = PayrollService(db, registry=tables, settings=settings)
    result = await service.settle(employee_id, payload.to_period_input(settings.default_tax_year))
    await db.commit()
    return SettlementResponse.from_result(result)


@router.get(
    "/employees/{employee_id}/settlements/{tax_year}",
    response_model=StoredSnapshotListResponse,
)
async def list_settlements(
    employee_id: str,
    tax_year: str,
    db: DbSession,
    settings: AppSettings,
    tables: BandTables,
) -> StoredSnapshotListResponse:
    """Stored snapshots for a tax year, in period order."""
    service = PayrollService(db, registry=tables, settings=settings)
    rows = await service.list_snapshots(employee_id, tax_year)
    return StoredSnapshotListResponse(
        items=[StoredSnapshotResponse.model_validate(row) for row in rows],
        total=len(rows),
    )
