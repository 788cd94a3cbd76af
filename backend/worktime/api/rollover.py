# ruff: noqa: TC001
from __future__ import annotations

from fastapi import APIRouter

from worktime.api.deps import AdminDep
from worktime.db import SessionDep
from worktime.schemas.rollover import RolloverHistoryResponse, RolloverPreviewResponse, RolloverResponse
from worktime.services import rollover as rollover_service

rollover_router = APIRouter(prefix="/rollover", tags=["rollover"])


@rollover_router.get("/history", response_model=RolloverHistoryResponse)
async def get_rollover_history(
    session: SessionDep,
    auth: AdminDep,
) -> RolloverHistoryResponse:
    """List past rollover runs (admin only)."""
    return await rollover_service.get_rollover_history(session)


@rollover_router.get("/{year}/preview", response_model=RolloverPreviewResponse)
async def preview_rollover(
    year: int,
    session: SessionDep,
    auth: AdminDep,
) -> RolloverPreviewResponse:
    """Preview the carryovers a rollover into ``year`` would write (admin only)."""
    return await rollover_service.preview_rollover(session, year)


@rollover_router.post("/{year}", response_model=RolloverResponse)
async def run_rollover(
    year: int,
    session: SessionDep,
    auth: AdminDep,
) -> RolloverResponse:
    """Carry every employee's closing balance of ``year - 1`` into ``year`` (admin only)."""
    result = await rollover_service.rollover_year(session, year, actor_id=auth.user_id)
    return RolloverResponse(year=result.year, processed_count=result.processed_count)
