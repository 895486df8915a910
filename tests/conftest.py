"""Pytest fixtures for uk_payroll tests."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import date
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from uk_payroll.api.app import create_app
from uk_payroll.api.dependencies import get_db_session
from uk_payroll.calculators.bands import BandTable, BandTableRegistry, get_band_tables
from uk_payroll.calculators.settlement import PeriodSettlementEngine
from uk_payroll.config import Settings, get_settings
from uk_payroll.sickness.types import (
    EligibilityRule,
    EntitlementUnit,
    WorkDay,
    WorkPattern,
    WEEKDAYS,
)
from uk_payroll.storage.models import Base

# In-memory SQLite shared through a single connection
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


def make_settings(**overrides) -> Settings:
    values = {
        "database_url": TEST_DATABASE_URL,
        "engine_version": "test-1",
        "host": "127.0.0.1",
        "port": 8000,
        "debug": False,
        "log_level": "DEBUG",
        "default_tax_year": "2025-26",
        "band_tables_dir": None,
        "gross_pay_ceiling": Decimal("10000000"),
        "strict_work_patterns": True,
        "rule_fallback_policy": "first_rule",
    }
    values.update(overrides)
    return Settings(**values)


def pattern_of(*working: str) -> WorkPattern:
    """Work pattern with the named weekdays working, e.g. ``pattern_of("Monday")``."""
    return WorkPattern(
        days=tuple(WorkDay(day=d, is_working=d.value in working) for d in WEEKDAYS)
    )


def nhs_rules() -> list[EligibilityRule]:
    """Three service bands: under a year, one to five years, five years and over."""
    return [
        EligibilityRule(
            id="first-year",
            service_from=0,
            service_to=12,
            service_unit=EntitlementUnit.MONTHS,
            full_pay_amount=Decimal("4"),
            full_pay_unit=EntitlementUnit.WEEKS,
            half_pay_amount=Decimal("4"),
            half_pay_unit=EntitlementUnit.WEEKS,
        ),
        EligibilityRule(
            id="one-to-five",
            service_from=12,
            service_to=60,
            service_unit=EntitlementUnit.MONTHS,
            full_pay_amount=Decimal("2"),
            full_pay_unit=EntitlementUnit.MONTHS,
            half_pay_amount=Decimal("2"),
            half_pay_unit=EntitlementUnit.MONTHS,
        ),
        EligibilityRule(
            id="five-plus",
            service_from=60,
            service_to=None,
            service_unit=EntitlementUnit.MONTHS,
            full_pay_amount=Decimal("6"),
            full_pay_unit=EntitlementUnit.MONTHS,
            half_pay_amount=Decimal("6"),
            half_pay_unit=EntitlementUnit.MONTHS,
        ),
    ]


@pytest.fixture(scope="session")
def registry() -> BandTableRegistry:
    """Packaged band tables."""
    return BandTableRegistry.load()


@pytest.fixture
def table(registry: BandTableRegistry) -> BandTable:
    return registry.get("2025-26")


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def engine_2025(table: BandTable) -> PeriodSettlementEngine:
    return PeriodSettlementEngine(table, engine_version="test-1")


@pytest.fixture
def standard_pattern() -> WorkPattern:
    return WorkPattern.standard()


@pytest_asyncio.fixture
async def db_engine():
    """Create test database engine with all tables."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def client(
    session_factory, settings: Settings, registry: BandTableRegistry
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to the app with the test database and settings."""
    app = create_app()

    async def override_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_db_session
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_band_tables] = lambda: registry

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


REFERENCE_DATE = date(2025, 8, 1)
