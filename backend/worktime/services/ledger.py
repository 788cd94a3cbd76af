"""Overtime ledger builder.

Regenerates an employee's transactions for a window of whole months from the
raw sources, replays the running balance over the full history, and refreshes
the monthly ``OvertimeBalance`` rows. A rebuild never patches rows in place:
everything except carryover seeds is deleted and re-inserted, so running it
twice over the same sources produces the same ledger.
"""

from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import delete, select
from sqlmodel import col

from worktime.exceptions import DataInconsistencyError
from worktime.models.balance import OvertimeBalance
from worktime.models.base import now_utc
from worktime.models.enums import (
    ABSENCE_CREDIT_TYPES,
    REGENERABLE_TRANSACTION_TYPES,
    AuditAction,
    AuditEntityType,
    TransactionSourceType,
    TransactionType,
)
from worktime.models.ledger import OvertimeTransaction
from worktime.services.audit import SYSTEM_ACTOR, write_audit_log
from worktime.services.calendar import (
    iter_days,
    iter_months,
    load_holiday_calendar,
    month_bounds,
    month_key,
    validate_date_range,
)
from worktime.services.employee import get_employee
from worktime.services.schedule import employment_window, resolve_daily_target
from worktime.services.sources import (
    fetch_approved_absences,
    list_corrections,
    resolve_absence_days,
    worked_minutes_by_day,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from sqlalchemy.ext.asyncio import AsyncSession

    from worktime.models.correction import OvertimeCorrection
    from worktime.models.employee import Employee
    from worktime.services.sources import AbsenceDay

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Pure pipeline pieces
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LedgerLine:
    """A transaction to be written, before it gets a sequence number and balances."""

    date: date
    transaction_type: TransactionType
    minutes: int
    source_type: TransactionSourceType
    source_id: str | None = None
    description: str | None = None


@dataclass
class MonthFigures:
    target_minutes: int = 0
    actual_minutes: int = 0

    @property
    def overtime_minutes(self) -> int:
        return self.actual_minutes - self.target_minutes


def build_day_entries(day: date, target: int, worked: int, absence: AbsenceDay | None = None) -> list[LedgerLine]:
    """Ledger lines for one effective day.

    An absence only neutralizes a working day nobody worked on: the day's
    deficit is booked as ``earned`` and offset by a credit of the same size.
    Worked time always takes precedence over an absence on the same day.
    """
    if absence is not None and worked == 0 and target > 0:
        credit_type = ABSENCE_CREDIT_TYPES[absence.absence_type]
        return [
            LedgerLine(
                date=day,
                transaction_type=TransactionType.EARNED,
                minutes=-target,
                source_type=TransactionSourceType.TIME_ENTRY,
                description=f"Target {target} min, absent ({absence.absence_type})",
            ),
            LedgerLine(
                date=day,
                transaction_type=credit_type,
                minutes=target,
                source_type=TransactionSourceType.ABSENCE,
                source_id=str(absence.absence_id),
                description=f"{absence.absence_type.capitalize()} credit",
            ),
        ]

    return [
        LedgerLine(
            date=day,
            transaction_type=TransactionType.EARNED,
            minutes=worked - target,
            source_type=TransactionSourceType.TIME_ENTRY,
            description=f"Worked {worked} of {target} min",
        )
    ]


def build_correction_entries(corrections: Iterable[OvertimeCorrection]) -> list[LedgerLine]:
    """One ``correction`` line per correction row, never pre-summed."""
    return [
        LedgerLine(
            date=c.date,
            transaction_type=TransactionType.CORRECTION,
            minutes=c.minutes,
            source_type=TransactionSourceType.CORRECTION,
            source_id=str(c.id),
            description=c.reason[:500],
        )
        for c in corrections
    ]


def assign_sequence(employee_id: uuid.UUID, lines: Iterable[LedgerLine]) -> list[OvertimeTransaction]:
    """Number lines per day starting at 1; ``seq`` 0 is reserved for the carryover seed."""
    next_seq: dict[date, int] = defaultdict(lambda: 1)
    transactions: list[OvertimeTransaction] = []
    for line in sorted(lines, key=lambda ln: ln.date):
        seq = next_seq[line.date]
        next_seq[line.date] = seq + 1
        transactions.append(
            OvertimeTransaction(
                employee_id=employee_id,
                date=line.date,
                seq=seq,
                transaction_type=line.transaction_type,
                minutes=line.minutes,
                source_type=line.source_type,
                source_id=line.source_id,
                description=line.description,
            )
        )
    return transactions


def replay_balances(transactions: Sequence[OvertimeTransaction]) -> int:
    """Recompute running balances in ``(date, seq)`` order and return the closing balance.

    A carryover is a seed, not a movement: it takes over the running balance
    reached so far (the previous year's close), with ``balance_before`` 0 and
    ``balance_after`` equal to its amount. A carryover that opens the history
    keeps its stored amount, so imported opening balances survive.
    """
    balance = 0
    seen_movement = False
    for tx in sorted(transactions, key=lambda t: (t.date, t.seq)):
        if tx.transaction_type == TransactionType.CARRYOVER:
            if seen_movement:
                tx.minutes = balance
            balance = tx.minutes
            tx.balance_before_minutes = 0
            tx.balance_after_minutes = balance
            continue

        seen_movement = True
        tx.balance_before_minutes = balance
        balance += tx.minutes
        tx.balance_after_minutes = balance
    return balance


# ---------------------------------------------------------------------------
# Persistence helpers
# ---------------------------------------------------------------------------


async def replay_employee_ledger(session: AsyncSession, employee_id: uuid.UUID) -> int:
    """Replay every transaction of the employee and refresh January carryovers.

    Runs inside the caller's transaction and flushes; it never commits.
    """
    await session.flush()
    result = await session.execute(
        select(OvertimeTransaction)
        .where(col(OvertimeTransaction.employee_id) == employee_id)
        .order_by(col(OvertimeTransaction.date), col(OvertimeTransaction.seq))
    )
    transactions = list(result.scalars().all())
    closing = replay_balances(transactions)

    for tx in transactions:
        if tx.transaction_type == TransactionType.CARRYOVER:
            await _set_month_carryover(session, employee_id, tx.date.year, tx.minutes)

    await session.flush()
    return closing


async def _set_month_carryover(session: AsyncSession, employee_id: uuid.UUID, year: int, minutes: int) -> None:
    key = month_key(year, 1)
    row = await session.get(OvertimeBalance, (employee_id, key))
    if row is None:
        session.add(OvertimeBalance(employee_id=employee_id, month=key, carryover_minutes=minutes))
    elif row.carryover_minutes != minutes:
        row.carryover_minutes = minutes
        row.updated_at = now_utc()


async def _upsert_month_balances(
    session: AsyncSession,
    employee_id: uuid.UUID,
    figures: dict[str, MonthFigures],
) -> None:
    for key, month in figures.items():
        row = await session.get(OvertimeBalance, (employee_id, key))
        if row is None:
            row = OvertimeBalance(employee_id=employee_id, month=key)
            session.add(row)
        row.target_minutes = month.target_minutes
        row.actual_minutes = month.actual_minutes
        row.overtime_minutes = month.overtime_minutes
        row.updated_at = now_utc()
    await session.flush()


async def _verify_month_totals(
    session: AsyncSession,
    employee_id: uuid.UUID,
    window_start: date,
    window_end: date,
    figures: dict[str, MonthFigures],
) -> None:
    """A month's overtime must equal the sum of its non-carryover transactions."""
    result = await session.execute(
        select(col(OvertimeTransaction.date), col(OvertimeTransaction.minutes)).where(
            col(OvertimeTransaction.employee_id) == employee_id,
            col(OvertimeTransaction.date) >= window_start,
            col(OvertimeTransaction.date) <= window_end,
            col(OvertimeTransaction.transaction_type) != TransactionType.CARRYOVER,
        )
    )
    ledger_totals: dict[str, int] = defaultdict(int)
    for row in result.all():
        ledger_totals[month_key(row.date.year, row.date.month)] += row.minutes

    for key, month in figures.items():
        if ledger_totals.get(key, 0) != month.overtime_minutes:
            raise DataInconsistencyError(
                f"Overtime for {key} is {month.overtime_minutes} min but its transactions "
                f"sum to {ledger_totals.get(key, 0)} min (employee {employee_id})"
            )


# ---------------------------------------------------------------------------
# Rebuild
# ---------------------------------------------------------------------------


@dataclass
class RebuildResult:
    """Outcome of a ledger rebuild."""

    employee_id: uuid.UUID
    start_date: date
    end_date: date
    transactions_written: int = 0
    months_updated: list[str] = field(default_factory=list)
    balance_minutes: int = 0


def widen_to_months(start_date: date, end_date: date) -> tuple[date, date]:
    return date(start_date.year, start_date.month, 1), month_bounds(end_date.year, end_date.month)[1]


async def rebuild_ledger(
    session: AsyncSession,
    employee_id: uuid.UUID,
    from_date: date,
    to_date: date,
    *,
    today: date | None = None,
    actor_id: uuid.UUID | None = None,
) -> RebuildResult:
    """Regenerate the employee's ledger for every month touched by [from_date, to_date].

    Commits on success. Any failure rolls the session back, leaving the ledger
    and monthly balances exactly as they were.
    """
    validate_date_range(from_date, to_date)
    today = today or date.today()
    window_start, window_end = widen_to_months(from_date, to_date)
    employee = await get_employee(session, employee_id)

    try:
        result = await _rebuild_window(session, employee, window_start, window_end, today)
        await write_audit_log(
            session,
            actor_id=actor_id or SYSTEM_ACTOR,
            entity_type=AuditEntityType.LEDGER,
            entity_id=str(employee_id),
            action=AuditAction.REBUILD,
            after_json={
                "start_date": window_start.isoformat(),
                "end_date": window_end.isoformat(),
                "transactions_written": result.transactions_written,
                "balance_minutes": result.balance_minutes,
            },
        )
        await session.commit()
    except Exception:
        await session.rollback()
        logger.exception("Ledger rebuild failed for employee %s (%s to %s)", employee_id, window_start, window_end)
        raise

    logger.info(
        "Rebuilt ledger for employee %s from %s to %s: %d transactions, balance %d min",
        employee_id,
        window_start,
        window_end,
        result.transactions_written,
        result.balance_minutes,
    )
    return result


async def _rebuild_window(
    session: AsyncSession,
    employee: Employee,
    window_start: date,
    window_end: date,
    today: date,
) -> RebuildResult:
    employee_id = employee.id

    await session.execute(
        delete(OvertimeTransaction).where(
            col(OvertimeTransaction.employee_id) == employee_id,
            col(OvertimeTransaction.date) >= window_start,
            col(OvertimeTransaction.date) <= window_end,
            col(OvertimeTransaction.transaction_type).in_(sorted(REGENERABLE_TRANSACTION_TYPES)),
        )
    )

    figures: dict[str, MonthFigures] = {}
    lines: list[LedgerLine] = []

    effective = employment_window(employee, window_start, window_end, today)
    if effective is not None:
        calendar = await load_holiday_calendar(session, *effective)
        worked_by_day = await worked_minutes_by_day(session, employee_id, *effective)
        absences = await fetch_approved_absences(session, employee_id, *effective)
        absence_days = resolve_absence_days(employee, absences, *effective, calendar, today)

        for day in iter_days(*effective):
            target = resolve_daily_target(employee, day, calendar)
            worked = worked_by_day.get(day, 0)
            day_lines = build_day_entries(day, target, worked, absence_days.get(day))
            lines.extend(day_lines)

            month = figures.setdefault(month_key(day.year, day.month), MonthFigures())
            month.target_minutes += target
            month.actual_minutes += target + sum(line.minutes for line in day_lines)

    corrections = await list_corrections(session, employee_id, window_start, window_end)
    for line in build_correction_entries(corrections):
        lines.append(line)
        month = figures.setdefault(month_key(line.date.year, line.date.month), MonthFigures())
        month.actual_minutes += line.minutes

    # Months in the window without any activity still get their stale figures zeroed.
    existing = await session.execute(
        select(col(OvertimeBalance.month)).where(
            col(OvertimeBalance.employee_id) == employee_id,
            col(OvertimeBalance.month).in_([month_key(y, m) for y, m in iter_months(window_start, window_end)]),
        )
    )
    for key in existing.scalars().all():
        figures.setdefault(key, MonthFigures())

    transactions = assign_sequence(employee_id, lines)
    session.add_all(transactions)
    await session.flush()

    balance = await replay_employee_ledger(session, employee_id)
    await _upsert_month_balances(session, employee_id, figures)
    await _verify_month_totals(session, employee_id, window_start, window_end, figures)

    return RebuildResult(
        employee_id=employee_id,
        start_date=window_start,
        end_date=window_end,
        transactions_written=len(transactions),
        months_updated=sorted(figures),
        balance_minutes=balance,
    )
