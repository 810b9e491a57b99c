"""Pytest fixtures for payroll tests."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import date, timedelta
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from au_payroll.models import Base, Employee, Organisation
from tests.factories import make_employee, make_organisation, today_utc

# In-memory SQLite shared across sessions through a single connection
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
def organisation() -> Organisation:
    """A transient, STP-ready organisation."""
    return make_organisation()


@pytest.fixture
def employee(organisation: Organisation) -> Employee:
    """A transient full-time employee on $78,000."""
    return make_employee(organisation)


@pytest_asyncio.fixture
async def engine():
    """Create a fresh in-memory database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
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
async def stored_org(session: AsyncSession) -> Organisation:
    """Persisted organisation."""
    org = make_organisation()
    session.add(org)
    await session.commit()
    return org


@pytest_asyncio.fixture
async def stored_employees(session: AsyncSession, stored_org: Organisation) -> list[Employee]:
    """Persisted salaried full-timer, hourly part-timer, casual and ABN contractor."""
    employees = [
        make_employee(stored_org, full_name="Jane Citizen"),
        make_employee(
            stored_org,
            full_name="Tom Part",
            email="tom@example.com",
            employment_type="part_time",
            hours_per_week=Decimal("20"),
            base_salary=None,
            hourly_rate=Decimal("35.00"),
            tfn="123456782",
        ),
        make_employee(
            stored_org,
            full_name="Casey Casual",
            email="casey@example.com",
            employment_type="casual",
            hours_per_week=Decimal("10"),
            base_salary=None,
            hourly_rate=Decimal("40.00"),
        ),
        make_employee(
            stored_org,
            full_name="Con Tractor",
            email="con@example.com",
            employment_type="contractor",
            abn="12345678901",
            base_salary=Decimal("52000"),
        ),
    ]
    session.add_all(employees)
    await session.commit()
    return employees


@pytest.fixture
def pay_period() -> tuple[date, date, date]:
    """Fortnight ending today (UTC) with the pay date on the last day."""
    end = today_utc()
    return end - timedelta(days=13), end, end


@pytest_asyncio.fixture
async def client(session_factory, stored_org) -> AsyncGenerator[AsyncClient, None]:
    """API client bound to the test database; one session per request."""
    from au_payroll.api.app import create_app
    from au_payroll.api.dependencies import get_db_session

    app = create_app()

    async def override_get_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_get_db_session

    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"X-Org-ID": str(stored_org.organisation_id)},
    ) as ac:
        yield ac
