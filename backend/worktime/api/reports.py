# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid
from datetime import date

from fastapi import APIRouter, Query

from worktime.api.deps import AdminDep
from worktime.db import SessionDep
from worktime.schemas.report import AggregatedSummaryResponse, AuditLogListResponse
from worktime.services import report as report_service

reports_router = APIRouter(tags=["reports"])


@reports_router.get(
    "/audit-log",
    response_model=AuditLogListResponse,
)
async def query_audit_log(
    session: SessionDep,
    auth: AdminDep,
    entity_type: str | None = Query(default=None),
    entity_id: str | None = Query(default=None),
    action: str | None = Query(default=None),
    actor_id: uuid.UUID | None = Query(default=None),
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> AuditLogListResponse:
    """Query audit log entries with optional filters (admin only)."""
    return await report_service.query_audit_log(
        session,
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        actor_id=actor_id,
        start_date=start_date,
        end_date=end_date,
        offset=offset,
        limit=limit,
    )


@reports_router.get(
    "/reports/overtime",
    response_model=AggregatedSummaryResponse,
)
async def get_aggregated_summary(
    session: SessionDep,
    auth: AdminDep,
    year: int = Query(),
    month: int | None = Query(default=None),
) -> AggregatedSummaryResponse:
    """Get overtime totals across all employees for a month or year (admin only)."""
    return await report_service.get_aggregated_summary(session, year, month)
