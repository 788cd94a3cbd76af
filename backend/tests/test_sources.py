"""Tests for the worked-time, absence and correction aggregators."""

from __future__ import annotations

from datetime import date, time
from typing import TYPE_CHECKING

from worktime.models.enums import AbsenceType
from worktime.models.time_entry import TimeEntry
from worktime.services.calendar import HolidayCalendar
from worktime.services.sources import (
    absence_credit_minutes,
    absence_credits_for_window,
    correction_minutes_for_month,
    entry_worked_minutes,
    fetch_approved_absences,
    list_corrections,
    resolve_absence_days,
    worked_minutes_by_day,
    worked_minutes_for_month,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

NO_HOLIDAYS = HolidayCalendar()
TODAY = date(2026, 1, 31)


def _entry(start: time, end: time, break_minutes: int = 0) -> TimeEntry:
    return TimeEntry(employee_id=None, date=date(2025, 1, 6), start_time=start, end_time=end, break_minutes=break_minutes)


# ---------------------------------------------------------------------------
# Worked time
# ---------------------------------------------------------------------------


def test_entry_worked_minutes_subtracts_break() -> None:
    assert entry_worked_minutes(_entry(time(8, 0), time(16, 30), 30)) == 480


def test_entry_worked_minutes_crosses_midnight() -> None:
    assert entry_worked_minutes(_entry(time(22, 0), time(6, 0), 30)) == 450


def test_entry_worked_minutes_never_negative() -> None:
    assert entry_worked_minutes(_entry(time(8, 0), time(8, 15), 30)) == 0


async def test_worked_minutes_sum_per_day_and_month(db_session: AsyncSession, make_employee, add_time_entry) -> None:
    employee = await make_employee()
    await add_time_entry(employee.id, date(2025, 3, 3), time(8, 0), time(12, 0), 0)
    await add_time_entry(employee.id, date(2025, 3, 3), time(13, 0), time(17, 0), 0)
    await add_time_entry(employee.id, date(2025, 3, 4))
    await add_time_entry(employee.id, date(2025, 4, 1))

    by_day = await worked_minutes_by_day(db_session, employee.id, date(2025, 3, 1), date(2025, 3, 31))
    assert by_day == {date(2025, 3, 3): 480, date(2025, 3, 4): 480}
    assert await worked_minutes_for_month(db_session, employee.id, 2025, 3) == 960


# ---------------------------------------------------------------------------
# Absences
# ---------------------------------------------------------------------------


async def test_absence_spanning_month_boundary_credits_each_month_separately(
    db_session: AsyncSession, make_employee, add_absence
) -> None:
    employee = await make_employee()
    await add_absence(employee.id, date(2025, 11, 25), date(2025, 12, 5))
    absences = await fetch_approved_absences(db_session, employee.id, date(2025, 11, 1), date(2025, 12, 31))

    november = resolve_absence_days(employee, absences, date(2025, 11, 1), date(2025, 11, 30), NO_HOLIDAYS, TODAY)
    december = resolve_absence_days(employee, absences, date(2025, 12, 1), date(2025, 12, 31), NO_HOLIDAYS, TODAY)

    # Nov 25-28 (Tue-Fri) and Dec 1-5 (Mon-Fri).
    assert sorted(november) == [date(2025, 11, d) for d in (25, 26, 27, 28)]
    assert sorted(december) == [date(2025, 12, d) for d in (1, 2, 3, 4, 5)]
    assert absence_credit_minutes(november.values()) == {AbsenceType.VACATION: 4 * 480}
    assert absence_credit_minutes(december.values()) == {AbsenceType.VACATION: 5 * 480}


async def test_absence_skips_holidays_and_days_before_hire(db_session: AsyncSession, make_employee, add_absence) -> None:
    employee = await make_employee(hire_date=date(2025, 12, 3))
    await add_absence(employee.id, date(2025, 12, 1), date(2025, 12, 31), absence_type="sick")
    calendar = HolidayCalendar.from_dates([date(2025, 12, 25), date(2025, 12, 26)])

    credits = await absence_credits_for_window(
        db_session, employee, date(2025, 12, 1), date(2025, 12, 31), calendar, today=TODAY
    )
    # Dec 3-31 holds 21 weekdays, two of them holidays.
    assert credits == {AbsenceType.SICK: 19 * 480}


async def test_only_approved_absences_are_credited(db_session: AsyncSession, make_employee, add_absence) -> None:
    employee = await make_employee()
    await add_absence(employee.id, date(2025, 3, 3), date(2025, 3, 7), status="pending")
    await add_absence(employee.id, date(2025, 3, 10), date(2025, 3, 14), status="rejected")

    credits = await absence_credits_for_window(
        db_session, employee, date(2025, 3, 1), date(2025, 3, 31), NO_HOLIDAYS, today=TODAY
    )
    assert credits == {}


async def test_overlapping_absences_credit_each_day_once(db_session: AsyncSession, make_employee, add_absence) -> None:
    employee = await make_employee()
    first = await add_absence(employee.id, date(2025, 3, 3), date(2025, 3, 7), absence_type="vacation")
    await add_absence(employee.id, date(2025, 3, 5), date(2025, 3, 12), absence_type="sick")

    absences = await fetch_approved_absences(db_session, employee.id, date(2025, 3, 1), date(2025, 3, 31))
    days = resolve_absence_days(employee, absences, date(2025, 3, 1), date(2025, 3, 31), NO_HOLIDAYS, TODAY)

    assert days[date(2025, 3, 5)].absence_id == first.id
    assert absence_credit_minutes(days.values()) == {
        AbsenceType.VACATION: 5 * 480,
        AbsenceType.SICK: 3 * 480,
    }


# ---------------------------------------------------------------------------
# Corrections
# ---------------------------------------------------------------------------


async def test_corrections_are_listed_individually_and_summed_per_month(
    db_session: AsyncSession, make_employee, add_correction
) -> None:
    employee = await make_employee()
    await add_correction(employee.id, date(2025, 5, 2), 120)
    await add_correction(employee.id, date(2025, 5, 20), -30)
    await add_correction(employee.id, date(2025, 6, 1), 600)

    may = await list_corrections(db_session, employee.id, date(2025, 5, 1), date(2025, 5, 31))
    assert [c.minutes for c in may] == [120, -30]
    assert await correction_minutes_for_month(db_session, employee.id, 2025, 5) == 90
    assert await correction_minutes_for_month(db_session, employee.id, 2025, 7) == 0
