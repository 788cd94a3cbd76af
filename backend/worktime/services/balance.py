"""Balance aggregator: read-only views over the overtime ledger and monthly balances."""

from __future__ import annotations

from collections import defaultdict
from datetime import date, timedelta
from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlmodel import col

from worktime.config import get_settings
from worktime.models.balance import OvertimeBalance
from worktime.models.enums import (
    ABSENCE_CREDIT_TYPES,
    CREDIT_TRANSACTION_TYPES,
    BalanceStatus,
    TransactionSourceType,
    TransactionType,
)
from worktime.models.ledger import OvertimeTransaction
from worktime.schemas.balance import (
    BalanceStatusResponse,
    DailyBreakdownItem,
    DailyBreakdownResponse,
    MonthlyHistoryItem,
    OvertimeHistoryResponse,
    PeriodSummaryResponse,
    TransactionListResponse,
    TransactionResponse,
    YearBreakdownResponse,
)
from worktime.services.calendar import (
    iter_days,
    load_holiday_calendar,
    month_bounds,
    month_key,
    validate_date_range,
    validate_month,
    validate_year,
    year_bounds,
)
from worktime.services.employee import get_employee
from worktime.services.schedule import resolve_daily_target

if TYPE_CHECKING:
    import uuid
    from collections.abc import Collection

    from sqlalchemy.ext.asyncio import AsyncSession

    from worktime.config import Settings

_CREDIT_TO_ABSENCE = {credit: absence for absence, credit in ABSENCE_CREDIT_TYPES.items()}

# Smallest balance that still covers a full compensation day off.
TIME_OFF_THRESHOLD_MINUTES = 8 * 60


# ---------------------------------------------------------------------------
# Running balance
# ---------------------------------------------------------------------------


async def _balance_on(session: AsyncSession, employee_id: uuid.UUID, as_of: date) -> int:
    result = await session.execute(
        select(col(OvertimeTransaction.balance_after_minutes))
        .where(
            col(OvertimeTransaction.employee_id) == employee_id,
            col(OvertimeTransaction.date) <= as_of,
        )
        .order_by(col(OvertimeTransaction.date).desc(), col(OvertimeTransaction.seq).desc())
        .limit(1)
    )
    balance = result.scalar_one_or_none()
    return balance if balance is not None else 0


async def get_balance(session: AsyncSession, employee_id: uuid.UUID, as_of: date | None = None) -> int:
    """Running balance in minutes at the end of ``as_of`` (default today)."""
    await get_employee(session, employee_id)
    return await _balance_on(session, employee_id, as_of or date.today())


def classify_balance(balance_minutes: int, max_plus_minutes: int, max_minus_minutes: int) -> tuple[float, BalanceStatus]:
    """Express a balance as a percentage of the matching account limit."""
    percentage = 0.0
    if balance_minutes > 0 and max_plus_minutes > 0:
        percentage = balance_minutes / max_plus_minutes * 100
    elif balance_minutes < 0 and max_minus_minutes != 0:
        percentage = balance_minutes / abs(max_minus_minutes) * 100

    if percentage >= 100:
        status = BalanceStatus.CRITICAL_HIGH
    elif percentage >= 80:
        status = BalanceStatus.WARNING_HIGH
    elif percentage <= -100:
        status = BalanceStatus.CRITICAL_LOW
    elif percentage <= -80:
        status = BalanceStatus.WARNING_LOW
    else:
        status = BalanceStatus.NORMAL
    return round(percentage, 2), status


async def get_balance_status(
    session: AsyncSession,
    employee_id: uuid.UUID,
    as_of: date | None = None,
    settings: Settings | None = None,
) -> BalanceStatusResponse:
    settings = settings or get_settings()
    balance = await get_balance(session, employee_id, as_of)
    percentage, status = classify_balance(balance, settings.max_plus_minutes, settings.max_minus_minutes)
    return BalanceStatusResponse(
        employee_id=employee_id,
        balance_minutes=balance,
        max_plus_minutes=settings.max_plus_minutes,
        max_minus_minutes=settings.max_minus_minutes,
        percentage=percentage,
        status=status,
        can_take_time_off=balance >= TIME_OFF_THRESHOLD_MINUTES,
        should_reduce_overtime=percentage >= 80,
    )


# ---------------------------------------------------------------------------
# Period summaries
# ---------------------------------------------------------------------------


async def get_period_summary(
    session: AsyncSession,
    employee_id: uuid.UUID,
    year: int,
    month: int | None = None,
) -> PeriodSummaryResponse:
    """Target, actual and overtime for a month, or for a year as the sum of its months."""
    validate_year(year)
    if month is not None:
        validate_month(month)
    await get_employee(session, employee_id)

    if month is not None:
        month_filter = [col(OvertimeBalance.month) == month_key(year, month)]
    else:
        month_filter = [
            col(OvertimeBalance.month) >= month_key(year, 1),
            col(OvertimeBalance.month) <= month_key(year, 12),
        ]

    result = await session.execute(
        select(
            func.coalesce(func.sum(col(OvertimeBalance.target_minutes)), 0),
            func.coalesce(func.sum(col(OvertimeBalance.actual_minutes)), 0),
            func.coalesce(func.sum(col(OvertimeBalance.overtime_minutes)), 0),
            func.coalesce(func.sum(col(OvertimeBalance.carryover_minutes)), 0),
        ).where(col(OvertimeBalance.employee_id) == employee_id, *month_filter)
    )
    target, actual, overtime, carryover = result.one()

    return PeriodSummaryResponse(
        employee_id=employee_id,
        year=year,
        month=month,
        target_minutes=int(target),
        actual_minutes=int(actual),
        overtime_minutes=int(overtime),
        carryover_minutes=int(carryover),
    )


async def _transactions_between(
    session: AsyncSession,
    employee_id: uuid.UUID,
    start_date: date,
    end_date: date,
) -> list[OvertimeTransaction]:
    result = await session.execute(
        select(OvertimeTransaction)
        .where(
            col(OvertimeTransaction.employee_id) == employee_id,
            col(OvertimeTransaction.date) >= start_date,
            col(OvertimeTransaction.date) <= end_date,
        )
        .order_by(col(OvertimeTransaction.date), col(OvertimeTransaction.seq))
    )
    return list(result.scalars().all())


async def get_daily_breakdown(
    session: AsyncSession,
    employee_id: uuid.UUID,
    start_date: date,
    end_date: date,
) -> DailyBreakdownResponse:
    """Day-by-day view derived from the ledger; nothing here is stored."""
    validate_date_range(start_date, end_date)
    employee = await get_employee(session, employee_id)
    calendar = await load_holiday_calendar(session, start_date, end_date)

    by_day: dict[date, list[OvertimeTransaction]] = defaultdict(list)
    for tx in await _transactions_between(session, employee_id, start_date, end_date):
        by_day[tx.date].append(tx)

    balance = await _balance_on(session, employee_id, start_date - timedelta(days=1))
    items: list[DailyBreakdownItem] = []
    for day in iter_days(start_date, end_date):
        transactions = by_day.get(day, [])
        earned = [tx for tx in transactions if tx.transaction_type == TransactionType.EARNED]
        credits = [tx for tx in transactions if tx.transaction_type in CREDIT_TRANSACTION_TYPES]
        corrections = [tx for tx in transactions if tx.transaction_type == TransactionType.CORRECTION]

        # Only days the ledger covered have a target.
        target = resolve_daily_target(employee, day, calendar) if earned else 0
        if transactions:
            balance = transactions[-1].balance_after_minutes

        info = calendar.resolve(day)
        items.append(
            DailyBreakdownItem(
                date=day,
                target_minutes=target,
                worked_minutes=sum(tx.minutes for tx in earned) + target,
                credit_minutes=sum(tx.minutes for tx in credits),
                correction_minutes=sum(tx.minutes for tx in corrections),
                overtime_minutes=sum(
                    tx.minutes for tx in transactions if tx.transaction_type != TransactionType.CARRYOVER
                ),
                balance_minutes=balance,
                is_holiday=info.is_holiday,
                is_weekend=info.is_weekend,
                absence_type=(
                    _CREDIT_TO_ABSENCE[TransactionType(credits[0].transaction_type)].value if credits else None
                ),
            )
        )

    return DailyBreakdownResponse(employee_id=employee_id, items=items)


def _sum_of(transactions: list[OvertimeTransaction], types: Collection[TransactionType]) -> int:
    return sum(tx.minutes for tx in transactions if tx.transaction_type in types)


async def get_overtime_history(
    session: AsyncSession,
    employee_id: uuid.UUID,
    year: int,
    today: date | None = None,
) -> OvertimeHistoryResponse:
    """Monthly movements and closing balances for a year, up to the current month."""
    validate_year(year)
    await get_employee(session, employee_id)
    today = today or date.today()
    if year > today.year:
        return OvertimeHistoryResponse(employee_id=employee_id, year=year, items=[])

    last_month = today.month if year == today.year else 12
    start, _ = year_bounds(year)
    _, end = month_bounds(year, last_month)

    by_month: dict[int, list[OvertimeTransaction]] = defaultdict(list)
    for tx in await _transactions_between(session, employee_id, start, end):
        by_month[tx.date.month].append(tx)

    previous = await _balance_on(session, employee_id, start - timedelta(days=1))
    items: list[MonthlyHistoryItem] = []
    for month in range(1, last_month + 1):
        transactions = by_month.get(month, [])
        balance = transactions[-1].balance_after_minutes if transactions else previous

        items.append(
            MonthlyHistoryItem(
                month=month_key(year, month),
                earned_minutes=_sum_of(transactions, {TransactionType.EARNED}),
                compensation_minutes=_sum_of(transactions, CREDIT_TRANSACTION_TYPES),
                correction_minutes=_sum_of(transactions, {TransactionType.CORRECTION}),
                carryover_minutes=_sum_of(transactions, {TransactionType.CARRYOVER}),
                balance_minutes=balance,
                balance_change_minutes=balance - previous,
            )
        )
        previous = balance

    return OvertimeHistoryResponse(employee_id=employee_id, year=year, items=items)


async def get_year_breakdown(session: AsyncSession, employee_id: uuid.UUID, year: int) -> YearBreakdownResponse:
    """Carryover brought into ``year`` plus the overtime earned during it."""
    validate_year(year)
    await get_employee(session, employee_id)
    start, end = year_bounds(year)

    carryover_result = await session.execute(
        select(col(OvertimeTransaction.minutes)).where(
            col(OvertimeTransaction.employee_id) == employee_id,
            col(OvertimeTransaction.date) == start,
            col(OvertimeTransaction.transaction_type) == TransactionType.CARRYOVER,
        )
    )
    carryover = carryover_result.scalar_one_or_none()
    if carryover is None:
        carryover = await _balance_on(session, employee_id, start - timedelta(days=1))

    earned_result = await session.execute(
        select(func.coalesce(func.sum(col(OvertimeTransaction.minutes)), 0)).where(
            col(OvertimeTransaction.employee_id) == employee_id,
            col(OvertimeTransaction.date) >= start,
            col(OvertimeTransaction.date) <= end,
            col(OvertimeTransaction.transaction_type) != TransactionType.CARRYOVER,
        )
    )
    earned = int(earned_result.scalar_one())

    return YearBreakdownResponse(
        employee_id=employee_id,
        year=year,
        carryover_minutes=carryover,
        earned_minutes=earned,
        total_minutes=carryover + earned,
    )


# ---------------------------------------------------------------------------
# Ledger listing
# ---------------------------------------------------------------------------


def _build_transaction_response(tx: OvertimeTransaction) -> TransactionResponse:
    return TransactionResponse(
        id=tx.id,
        date=tx.date,
        seq=tx.seq,
        transaction_type=TransactionType(tx.transaction_type),
        minutes=tx.minutes,
        balance_before_minutes=tx.balance_before_minutes,
        balance_after_minutes=tx.balance_after_minutes,
        source_type=TransactionSourceType(tx.source_type),
        source_id=tx.source_id,
        description=tx.description,
        created_at=tx.created_at,
    )


async def get_employee_ledger(
    session: AsyncSession,
    employee_id: uuid.UUID,
    *,
    start_date: date | None = None,
    end_date: date | None = None,
    transaction_type: TransactionType | None = None,
    offset: int = 0,
    limit: int = 50,
) -> TransactionListResponse:
    """Paginated transactions of an employee in ledger order."""
    await get_employee(session, employee_id)
    if start_date is not None and end_date is not None:
        validate_date_range(start_date, end_date)

    filters = [col(OvertimeTransaction.employee_id) == employee_id]
    if start_date is not None:
        filters.append(col(OvertimeTransaction.date) >= start_date)
    if end_date is not None:
        filters.append(col(OvertimeTransaction.date) <= end_date)
    if transaction_type is not None:
        filters.append(col(OvertimeTransaction.transaction_type) == transaction_type)

    count_result = await session.execute(select(func.count()).select_from(OvertimeTransaction).where(*filters))
    total = count_result.scalar_one()

    result = await session.execute(
        select(OvertimeTransaction)
        .where(*filters)
        .order_by(col(OvertimeTransaction.date), col(OvertimeTransaction.seq))
        .offset(offset)
        .limit(limit)
    )
    return TransactionListResponse(
        items=[_build_transaction_response(tx) for tx in result.scalars().all()],
        total=total,
    )
