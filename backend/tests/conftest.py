from __future__ import annotations

import uuid
from datetime import date, time
from typing import TYPE_CHECKING, Any

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from worktime.db import get_session
from worktime.main import app
from worktime.models import (
    AbsenceRequest,
    AbsenceStatus,
    Employee,
    OvertimeCorrection,
    SQLModel,
    TimeEntry,
)
from worktime.services.holiday import StaticHolidayProvider, set_holiday_provider

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable, Iterator

    from sqlalchemy.ext.asyncio import AsyncEngine

ADMIN_ID = uuid.UUID("00000000-0000-0000-0000-00000000a0a0")
ADMIN_HEADERS = {"X-User-Id": str(ADMIN_ID), "X-Role": "admin"}


@pytest.fixture
async def engine() -> AsyncIterator[AsyncEngine]:
    """A private in-memory database per test, so commits and rollbacks behave for real."""
    _engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with _engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield _engine
    await _engine.dispose()


@pytest.fixture
async def db_session(engine: AsyncEngine) -> AsyncIterator[AsyncSession]:
    factory = async_sessionmaker(engine, expire_on_commit=False)
    async with factory() as session:
        yield session


@pytest.fixture
async def async_client(db_session: AsyncSession) -> AsyncIterator[AsyncClient]:
    """Async HTTP client with the database session dependency overridden."""

    async def _override_get_session() -> AsyncIterator[AsyncSession]:
        yield db_session

    app.dependency_overrides[get_session] = _override_get_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def holiday_provider() -> Iterator[StaticHolidayProvider]:
    """Keep every test offline: the default provider would call the public feed."""
    provider = StaticHolidayProvider()
    set_holiday_provider(provider)
    yield provider
    set_holiday_provider(None)


# ---------------------------------------------------------------------------
# Source record factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_employee(db_session: AsyncSession) -> Callable[..., Awaitable[Employee]]:
    async def _make(
        hire_date: date = date(2024, 1, 1),
        weekly_target_minutes: int = 2400,
        work_schedule: dict[str, int] | None = None,
        end_date: date | None = None,
        first_name: str = "Erika",
        last_name: str = "Mustermann",
        is_active: bool = True,
    ) -> Employee:
        employee = Employee(
            first_name=first_name,
            last_name=last_name,
            email=f"{first_name}.{last_name}.{uuid.uuid4().hex[:6]}@example.com".lower(),
            weekly_target_minutes=weekly_target_minutes,
            work_schedule=work_schedule,
            hire_date=hire_date,
            end_date=end_date,
            is_active=is_active,
        )
        db_session.add(employee)
        await db_session.commit()
        return employee

    return _make


@pytest.fixture
def add_time_entry(db_session: AsyncSession) -> Callable[..., Awaitable[TimeEntry]]:
    async def _add(
        employee_id: uuid.UUID,
        day: date,
        start: time = time(8, 0),
        end: time = time(16, 30),
        break_minutes: int = 30,
    ) -> TimeEntry:
        entry = TimeEntry(
            employee_id=employee_id,
            date=day,
            start_time=start,
            end_time=end,
            break_minutes=break_minutes,
        )
        db_session.add(entry)
        await db_session.commit()
        return entry

    return _add


@pytest.fixture
def add_absence(db_session: AsyncSession) -> Callable[..., Awaitable[AbsenceRequest]]:
    async def _add(
        employee_id: uuid.UUID,
        start_date: date,
        end_date: date,
        absence_type: str = "vacation",
        status: str = AbsenceStatus.APPROVED,
        **kwargs: Any,
    ) -> AbsenceRequest:
        absence = AbsenceRequest(
            employee_id=employee_id,
            absence_type=absence_type,
            status=status,
            start_date=start_date,
            end_date=end_date,
            **kwargs,
        )
        db_session.add(absence)
        await db_session.commit()
        return absence

    return _add


@pytest.fixture
def add_correction(db_session: AsyncSession) -> Callable[..., Awaitable[OvertimeCorrection]]:
    async def _add(employee_id: uuid.UUID, day: date, minutes: int, reason: str = "Manual adjustment") -> OvertimeCorrection:
        correction = OvertimeCorrection(
            employee_id=employee_id,
            date=day,
            minutes=minutes,
            reason=reason,
            created_by=ADMIN_ID,
        )
        db_session.add(correction)
        await db_session.commit()
        return correction

    return _add
