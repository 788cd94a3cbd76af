# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Query

from worktime.api.deps import AdminDep, AuthDep, HolidayProviderDep
from worktime.db import SessionDep
from worktime.schemas.holiday import (
    CreateHolidayRequest,
    HolidayListResponse,
    HolidayResponse,
    HolidaySyncResponse,
)
from worktime.services import holiday as holiday_service

holidays_router = APIRouter(prefix="/holidays", tags=["holidays"])


@holidays_router.post(
    "",
    response_model=HolidayResponse,
    status_code=201,
)
async def create_holiday(
    payload: CreateHolidayRequest,
    session: SessionDep,
    auth: AdminDep,
) -> HolidayResponse:
    """Create a public holiday (admin only)."""
    return await holiday_service.create_holiday(session, auth, payload)


@holidays_router.get(
    "",
    response_model=HolidayListResponse,
)
async def list_holidays(
    session: SessionDep,
    auth: AuthDep,
    year: int | None = Query(default=None),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> HolidayListResponse:
    """List public holidays with optional year filter."""
    return await holiday_service.list_holidays(session, year, offset, limit)


@holidays_router.post(
    "/{year}/sync",
    response_model=HolidaySyncResponse,
)
async def sync_holidays(
    year: int,
    session: SessionDep,
    auth: AdminDep,
    provider: HolidayProviderDep,
) -> HolidaySyncResponse:
    """Load a year's holidays from the external feed (admin only)."""
    fetched = await holiday_service.ensure_holidays_for_year(session, year, provider, refresh=True)
    listing = await holiday_service.list_holidays(session, year, limit=1)
    return HolidaySyncResponse(year=year, fetched=fetched, total=listing.total)


@holidays_router.delete(
    "/{holiday_id}",
    status_code=204,
)
async def delete_holiday(
    holiday_id: uuid.UUID,
    session: SessionDep,
    auth: AdminDep,
) -> None:
    """Delete a public holiday (admin only)."""
    await holiday_service.delete_holiday(session, auth, holiday_id)
