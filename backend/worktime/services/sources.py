"""Read-only aggregation of the ledger's raw inputs: time entries, absences, corrections."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlmodel import col

from worktime.models.absence import AbsenceRequest
from worktime.models.correction import OvertimeCorrection
from worktime.models.enums import AbsenceStatus, AbsenceType
from worktime.models.time_entry import TimeEntry
from worktime.services.calendar import clip_range, iter_days, month_bounds
from worktime.services.schedule import employment_window, resolve_daily_target

if TYPE_CHECKING:
    import uuid
    from collections.abc import Iterable, Sequence

    from sqlalchemy.ext.asyncio import AsyncSession

    from worktime.models.employee import Employee
    from worktime.services.calendar import HolidayCalendar

logger = logging.getLogger(__name__)

_MINUTES_PER_DAY = 24 * 60


# ---------------------------------------------------------------------------
# Worked time
# ---------------------------------------------------------------------------


def entry_worked_minutes(entry: TimeEntry) -> int:
    """Net minutes of a clock entry. An end before the start crosses midnight."""
    start = entry.start_time.hour * 60 + entry.start_time.minute
    end = entry.end_time.hour * 60 + entry.end_time.minute
    gross = end - start
    if gross < 0:
        gross += _MINUTES_PER_DAY
    return max(gross - entry.break_minutes, 0)


async def worked_minutes_by_day(
    session: AsyncSession,
    employee_id: uuid.UUID,
    start_date: date,
    end_date: date,
) -> dict[date, int]:
    result = await session.execute(
        select(TimeEntry).where(
            col(TimeEntry.employee_id) == employee_id,
            col(TimeEntry.date) >= start_date,
            col(TimeEntry.date) <= end_date,
        )
    )
    worked: dict[date, int] = defaultdict(int)
    for entry in result.scalars().all():
        worked[entry.date] += entry_worked_minutes(entry)
    return dict(worked)


async def worked_minutes_for_month(session: AsyncSession, employee_id: uuid.UUID, year: int, month: int) -> int:
    start, end = month_bounds(year, month)
    return sum((await worked_minutes_by_day(session, employee_id, start, end)).values())


# ---------------------------------------------------------------------------
# Absences
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AbsenceDay:
    """One working day covered by an approved absence, credited at that day's target."""

    day: date
    absence_id: uuid.UUID
    absence_type: AbsenceType
    credit_minutes: int


async def fetch_approved_absences(
    session: AsyncSession,
    employee_id: uuid.UUID,
    start_date: date,
    end_date: date,
) -> list[AbsenceRequest]:
    """Approved absences overlapping [start_date, end_date]."""
    result = await session.execute(
        select(AbsenceRequest)
        .where(
            col(AbsenceRequest.employee_id) == employee_id,
            col(AbsenceRequest.status) == AbsenceStatus.APPROVED,
            col(AbsenceRequest.start_date) <= end_date,
            col(AbsenceRequest.end_date) >= start_date,
        )
        .order_by(col(AbsenceRequest.start_date), col(AbsenceRequest.created_at), col(AbsenceRequest.id))
    )
    return list(result.scalars().all())


def _precedence(absence: AbsenceRequest) -> tuple[date, datetime, str]:
    # SQLite hands back naive UTC timestamps; rows created in this session are still aware.
    return (absence.start_date, absence.created_at.replace(tzinfo=None), str(absence.id))


def resolve_absence_days(
    employee: Employee,
    absences: Iterable[AbsenceRequest],
    window_start: date,
    window_end: date,
    calendar: HolidayCalendar,
    today: date | None = None,
) -> dict[date, AbsenceDay]:
    """Expand approved absences into credited working days inside the window.

    Each range is clipped to the window and to the employment window (hire date
    up to the earlier of ``today`` and the end date). Days with a zero target
    (weekends, holidays, schedule days off) carry no credit. When ranges
    overlap, the one that started first (then created first) owns the day.
    """
    days: dict[date, AbsenceDay] = {}
    employed = employment_window(employee, window_start, window_end, today)
    if employed is None:
        return days

    for absence in sorted(absences, key=_precedence):
        if absence.status != AbsenceStatus.APPROVED:
            continue
        clipped = clip_range(absence.start_date, absence.end_date, *employed)
        if clipped is None:
            continue

        for day in iter_days(*clipped):
            target = resolve_daily_target(employee, day, calendar)
            if target <= 0:
                continue
            if day in days:
                logger.warning(
                    "Overlapping absences for employee %s on %s: keeping %s, ignoring %s",
                    employee.id,
                    day,
                    days[day].absence_id,
                    absence.id,
                )
                continue
            days[day] = AbsenceDay(
                day=day,
                absence_id=absence.id,
                absence_type=AbsenceType(absence.absence_type),
                credit_minutes=target,
            )
    return days


def absence_credit_minutes(absence_days: Iterable[AbsenceDay]) -> dict[AbsenceType, int]:
    """Sum credited minutes per absence type."""
    totals: dict[AbsenceType, int] = defaultdict(int)
    for absence_day in absence_days:
        totals[absence_day.absence_type] += absence_day.credit_minutes
    return dict(totals)


async def absence_credits_for_window(
    session: AsyncSession,
    employee: Employee,
    start_date: date,
    end_date: date,
    calendar: HolidayCalendar,
    today: date | None = None,
) -> dict[AbsenceType, int]:
    absences = await fetch_approved_absences(session, employee.id, start_date, end_date)
    days = resolve_absence_days(employee, absences, start_date, end_date, calendar, today)
    return absence_credit_minutes(days.values())


# ---------------------------------------------------------------------------
# Corrections
# ---------------------------------------------------------------------------


async def list_corrections(
    session: AsyncSession,
    employee_id: uuid.UUID,
    start_date: date,
    end_date: date,
) -> Sequence[OvertimeCorrection]:
    result = await session.execute(
        select(OvertimeCorrection)
        .where(
            col(OvertimeCorrection.employee_id) == employee_id,
            col(OvertimeCorrection.date) >= start_date,
            col(OvertimeCorrection.date) <= end_date,
        )
        .order_by(col(OvertimeCorrection.date), col(OvertimeCorrection.created_at), col(OvertimeCorrection.id))
    )
    return result.scalars().all()


async def correction_minutes_for_month(session: AsyncSession, employee_id: uuid.UUID, year: int, month: int) -> int:
    start, end = month_bounds(year, month)
    result = await session.execute(
        select(func.coalesce(func.sum(col(OvertimeCorrection.minutes)), 0)).where(
            col(OvertimeCorrection.employee_id) == employee_id,
            col(OvertimeCorrection.date) >= start,
            col(OvertimeCorrection.date) <= end,
        )
    )
    return int(result.scalar_one())
