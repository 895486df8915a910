"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from uk_payroll import __version__
from uk_payroll.api.routes import (
    health_router,
    settlements_router,
    sickness_router,
    tax_codes_router,
    tax_years_router,
)
from uk_payroll.calculators.errors import (
    BandTableNotFoundError,
    OutOfSequencePeriodError,
    PayrollInputError,
)
from uk_payroll.database import dispose_db, init_db
from uk_payroll.services.payroll_service import PeriodAlreadySettledError
from uk_payroll.services.sickness_service import (
    EmployeeNotEnrolledError,
    SicknessRecordNotFoundError,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    init_db()
    yield
    await dispose_db()


def _error(status_code: int, exc: Exception, field: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "detail": str(exc),
            "code": getattr(exc, "code", None),
            "field": field,
        },
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="UK Payroll API",
        description="PAYE settlement and sickness entitlement",
        version=__version__,
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(PayrollInputError)
    async def payroll_input_handler(request: Request, exc: PayrollInputError) -> JSONResponse:
        """Rejected input: unknown tax code, bad amount, invalid pattern or rules."""
        return _error(status.HTTP_422_UNPROCESSABLE_ENTITY, exc, exc.field)

    @app.exception_handler(OutOfSequencePeriodError)
    async def sequence_handler(request: Request, exc: OutOfSequencePeriodError) -> JSONResponse:
        return _error(status.HTTP_409_CONFLICT, exc, exc.field)

    @app.exception_handler(PeriodAlreadySettledError)
    async def settled_handler(request: Request, exc: PeriodAlreadySettledError) -> JSONResponse:
        return _error(status.HTTP_409_CONFLICT, exc, "period")

    @app.exception_handler(IntegrityError)
    async def integrity_handler(request: Request, exc: IntegrityError) -> JSONResponse:
        logger.warning("Write rejected by a database constraint: %s", exc.orig)
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"detail": "Conflicting write", "code": "CONFLICT", "field": None},
        )

    @app.exception_handler(BandTableNotFoundError)
    @app.exception_handler(EmployeeNotEnrolledError)
    @app.exception_handler(SicknessRecordNotFoundError)
    async def not_found_handler(request: Request, exc: LookupError) -> JSONResponse:
        return _error(status.HTTP_404_NOT_FOUND, exc)

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(tax_codes_router, prefix="/api/v1")
    app.include_router(tax_years_router, prefix="/api/v1")
    app.include_router(settlements_router, prefix="/api/v1")
    app.include_router(sickness_router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()
