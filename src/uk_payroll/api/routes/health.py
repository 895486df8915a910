"""Health check endpoints."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from uk_payroll.api.dependencies import BandTables, DbSession

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Database status and the tax years with loaded band tables."""

    status: str
    timestamp: datetime
    database: str
    tax_years: list[str]


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
)
async def health_check(db: DbSession, tables: BandTables) -> HealthResponse:
    """Check API and database health, and list the loaded band tables."""
    db_status = "unhealthy"
    try:
        await db.execute(text("SELECT 1"))
        db_status = "healthy"
    except SQLAlchemyError as exc:
        logger.warning("Database health check failed: %s", exc)

    return HealthResponse(
        status="healthy" if db_status == "healthy" else "degraded",
        timestamp=datetime.now(timezone.utc),
        database=db_status,
        tax_years=tables.tax_years,
    )


@router.get("/ready", status_code=status.HTTP_200_OK)
async def readiness_check(tables: BandTables) -> JSONResponse:
    """Ready once at least one band table is loaded."""
    if not tables.tax_years:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "no band tables"},
        )
    return JSONResponse(content={"status": "ready", "latest_tax_year": tables.tax_years[-1]})


@router.get("/live", status_code=status.HTTP_200_OK)
async def liveness_check() -> dict[str, str]:
    """Process is up. Touches nothing else."""
    return {"status": "alive"}
