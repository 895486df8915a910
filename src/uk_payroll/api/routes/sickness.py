"""Sickness scheme, record and entitlement endpoints."""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, Response, status

from uk_payroll.api.dependencies import AppSettings, DbSession
from uk_payroll.api.schemas import (
    EligibilityRuleSchema,
    EnrolmentRequest,
    EntitlementSummaryResponse,
    EntitlementUsageResponse,
    ErrorResponse,
    OpeningBalanceRequest,
    SchemeRulesRequest,
    SicknessRecordRequest,
    SicknessRecordResponse,
    WorkDaySchema,
    WorkPatternRequest,
    WorkPatternResponse,
)
from uk_payroll.services.sickness_service import SicknessService
from uk_payroll.sickness.types import WorkPattern

router = APIRouter(tags=["sickness"])

NOT_FOUND = {404: {"model": ErrorResponse}}


def _pattern_response(pattern: WorkPattern) -> WorkPatternResponse:
    return WorkPatternResponse(
        days=[WorkDaySchema.model_validate(d) for d in pattern.days],
        working_days_per_week=pattern.working_days_per_week,
    )


# ============================================================================
# Schemes and enrolment
# ============================================================================


@router.put(
    "/sickness-schemes/{scheme_id}/rules",
    response_model=list[EligibilityRuleSchema],
    responses={422: {"model": ErrorResponse}},
)
async def replace_scheme_rules(
    scheme_id: str,
    payload: SchemeRulesRequest,
    db: DbSession,
    settings: AppSettings,
) -> list[EligibilityRuleSchema]:
    """Replace a scheme's eligibility rules. Rules must cover all service lengths."""
    service = SicknessService(db, settings=settings)
    await service.set_scheme_rules(scheme_id, [r.to_rule() for r in payload.rules])
    await db.commit()
    return payload.rules


@router.put(
    "/employees/{employee_id}/sickness/enrolment",
    response_model=EntitlementUsageResponse,
)
async def enrol_employee(
    employee_id: str,
    payload: EnrolmentRequest,
    db: DbSession,
    settings: AppSettings,
    as_of: Annotated[date | None, Query()] = None,
) -> EntitlementUsageResponse:
    """Enrol an employee in a scheme and resolve their entitlement."""
    service = SicknessService(db, settings=settings)
    usage = await service.enrol(employee_id, payload.scheme_id, payload.hire_date, as_of)
    await db.commit()
    return EntitlementUsageResponse.model_validate(usage)


@router.get(
    "/employees/{employee_id}/work-pattern",
    response_model=WorkPatternResponse,
)
async def get_work_pattern(
    employee_id: str,
    db: DbSession,
    settings: AppSettings,
) -> WorkPatternResponse:
    """Stored work pattern, or Monday to Friday when none is stored."""
    service = SicknessService(db, settings=settings)
    return _pattern_response(await service.get_work_pattern(employee_id))


@router.put(
    "/employees/{employee_id}/work-pattern",
    response_model=WorkPatternResponse,
    responses={422: {"model": ErrorResponse}},
)
async def replace_work_pattern(
    employee_id: str,
    payload: WorkPatternRequest,
    db: DbSession,
    settings: AppSettings,
) -> WorkPatternResponse:
    """Replace the weekly work pattern and recalculate entitlement."""
    service = SicknessService(db, settings=settings)
    pattern = await service.set_work_pattern(employee_id, [d.to_work_day() for d in payload.days])
    await db.commit()
    return _pattern_response(pattern)


# ============================================================================
# Entitlement
# ============================================================================


@router.get(
    "/employees/{employee_id}/sickness/entitlement",
    response_model=EntitlementSummaryResponse,
    responses=NOT_FOUND,
)
async def get_entitlement(
    employee_id: str,
    db: DbSession,
    settings: AppSettings,
    reference_date: Annotated[date | None, Query()] = None,
) -> EntitlementSummaryResponse:
    """Entitlement summary as of ``reference_date`` (default today)."""
    service = SicknessService(db, settings=settings)
    summary = await service.entitlement_summary(employee_id, reference_date)
    return EntitlementSummaryResponse.from_summary(summary)


@router.put(
    "/employees/{employee_id}/sickness/opening-balance",
    response_model=EntitlementUsageResponse,
    responses={**NOT_FOUND, 422: {"model": ErrorResponse}},
)
async def set_opening_balance(
    employee_id: str,
    payload: OpeningBalanceRequest,
    db: DbSession,
    settings: AppSettings,
) -> EntitlementUsageResponse:
    """Replace the days brought forward from before enrolment."""
    service = SicknessService(db, settings=settings)
    usage = await service.set_opening_balance(
        employee_id,
        payload.full_pay_days,
        payload.half_pay_days,
        payload.reference_date,
        payload.notes,
    )
    await db.commit()
    return EntitlementUsageResponse.model_validate(usage)


# ============================================================================
# Records
# ============================================================================


@router.get(
    "/employees/{employee_id}/sickness/records",
    response_model=list[SicknessRecordResponse],
)
async def list_records(
    employee_id: str,
    db: DbSession,
    settings: AppSettings,
) -> list[SicknessRecordResponse]:
    service = SicknessService(db, settings=settings)
    records = await service.list_records(employee_id)
    return [SicknessRecordResponse.model_validate(r) for r in records]


@router.post(
    "/employees/{employee_id}/sickness/records",
    response_model=SicknessRecordResponse,
    status_code=status.HTTP_201_CREATED,
    responses={**NOT_FOUND, 422: {"model": ErrorResponse}},
)
async def create_record(
    employee_id: str,
    payload: SicknessRecordRequest,
    db: DbSession,
    settings: AppSettings,
) -> SicknessRecordResponse:
    """Add a sickness record and recalculate entitlement."""
    service = SicknessService(db, settings=settings)
    record = await service.add_record(employee_id, payload.to_record())
    await db.commit()
    return SicknessRecordResponse.model_validate(record)


@router.put(
    "/employees/{employee_id}/sickness/records/{record_id}",
    response_model=SicknessRecordResponse,
    responses={**NOT_FOUND, 422: {"model": ErrorResponse}},
)
async def update_record(
    employee_id: str,
    record_id: UUID,
    payload: SicknessRecordRequest,
    db: DbSession,
    settings: AppSettings,
) -> SicknessRecordResponse:
    """Replace a sickness record and recalculate entitlement."""
    service = SicknessService(db, settings=settings)
    record = await service.update_record(employee_id, record_id, payload.to_record())
    await db.commit()
    return SicknessRecordResponse.model_validate(record)


@router.delete(
    "/employees/{employee_id}/sickness/records/{record_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=NOT_FOUND,
)
async def delete_record(
    employee_id: str,
    record_id: UUID,
    db: DbSession,
    settings: AppSettings,
) -> Response:
    """Delete a sickness record and recalculate entitlement."""
    service = SicknessService(db, settings=settings)
    await service.delete_record(employee_id, record_id)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
