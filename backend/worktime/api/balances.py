# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid
from datetime import date

from fastapi import APIRouter, Depends, Query

from worktime.api.deps import AdminDep, HolidayProviderDep, require_self_or_admin
from worktime.db import SessionDep
from worktime.models.enums import TransactionType
from worktime.schemas.balance import (
    BalanceResponse,
    BalanceStatusResponse,
    DailyBreakdownResponse,
    OvertimeHistoryResponse,
    PeriodSummaryResponse,
    RebuildLedgerRequest,
    RebuildLedgerResponse,
    TransactionListResponse,
    YearBreakdownResponse,
)
from worktime.services import balance as balance_service
from worktime.services import holiday as holiday_service
from worktime.services import ledger as ledger_service
from worktime.services.calendar import validate_date_range

employee_overtime_router = APIRouter(
    prefix="/employees/{employee_id}",
    tags=["overtime"],
    dependencies=[Depends(require_self_or_admin)],
)


@employee_overtime_router.get("/balance", response_model=BalanceResponse)
async def get_balance(
    employee_id: uuid.UUID,
    session: SessionDep,
    as_of: date | None = Query(default=None),
) -> BalanceResponse:
    """Get the running overtime balance at the end of a day (default today)."""
    as_of = as_of or date.today()
    balance = await balance_service.get_balance(session, employee_id, as_of)
    return BalanceResponse(employee_id=employee_id, as_of=as_of, balance_minutes=balance)


@employee_overtime_router.get("/balance/status", response_model=BalanceStatusResponse)
async def get_balance_status(
    employee_id: uuid.UUID,
    session: SessionDep,
) -> BalanceStatusResponse:
    """Get the balance measured against the work time account limits."""
    return await balance_service.get_balance_status(session, employee_id)


@employee_overtime_router.get("/summary", response_model=PeriodSummaryResponse)
async def get_period_summary(
    employee_id: uuid.UUID,
    session: SessionDep,
    year: int = Query(),
    month: int | None = Query(default=None),
) -> PeriodSummaryResponse:
    """Get target, actual and overtime for a month or a whole year."""
    return await balance_service.get_period_summary(session, employee_id, year, month)


@employee_overtime_router.get("/history", response_model=OvertimeHistoryResponse)
async def get_overtime_history(
    employee_id: uuid.UUID,
    session: SessionDep,
    year: int = Query(),
) -> OvertimeHistoryResponse:
    """Get monthly overtime movements and closing balances for a year."""
    return await balance_service.get_overtime_history(session, employee_id, year)


@employee_overtime_router.get("/year-breakdown", response_model=YearBreakdownResponse)
async def get_year_breakdown(
    employee_id: uuid.UUID,
    session: SessionDep,
    year: int = Query(),
) -> YearBreakdownResponse:
    """Get carryover plus earned overtime for a year."""
    return await balance_service.get_year_breakdown(session, employee_id, year)


@employee_overtime_router.get("/daily", response_model=DailyBreakdownResponse)
async def get_daily_breakdown(
    employee_id: uuid.UUID,
    session: SessionDep,
    start_date: date = Query(),
    end_date: date = Query(),
) -> DailyBreakdownResponse:
    """Get a day-by-day view derived from the ledger."""
    return await balance_service.get_daily_breakdown(session, employee_id, start_date, end_date)


@employee_overtime_router.get("/ledger", response_model=TransactionListResponse)
async def get_employee_ledger(
    employee_id: uuid.UUID,
    session: SessionDep,
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    transaction_type: TransactionType | None = Query(default=None),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=500),
) -> TransactionListResponse:
    """Get paginated ledger transactions for an employee."""
    return await balance_service.get_employee_ledger(
        session,
        employee_id,
        start_date=start_date,
        end_date=end_date,
        transaction_type=transaction_type,
        offset=offset,
        limit=limit,
    )


@employee_overtime_router.post("/ledger/rebuild", response_model=RebuildLedgerResponse)
async def rebuild_ledger(
    employee_id: uuid.UUID,
    payload: RebuildLedgerRequest,
    session: SessionDep,
    auth: AdminDep,
    provider: HolidayProviderDep,
) -> RebuildLedgerResponse:
    """Rebuild the employee's ledger for every month touched by the range (admin only)."""
    validate_date_range(payload.start_date, payload.end_date)
    for year in range(payload.start_date.year, payload.end_date.year + 1):
        await holiday_service.ensure_holidays_for_year(session, year, provider)

    result = await ledger_service.rebuild_ledger(
        session,
        employee_id,
        payload.start_date,
        payload.end_date,
        actor_id=auth.user_id,
    )
    return RebuildLedgerResponse(
        employee_id=result.employee_id,
        start_date=result.start_date,
        end_date=result.end_date,
        transactions_written=result.transactions_written,
        months_updated=result.months_updated,
        balance_minutes=result.balance_minutes,
    )
