"""Work schedule resolution: how many minutes an employee owes on a given day.

``resolve_daily_target`` is the only place that decides whether a day is a
working day. Holidays always win; an explicit ``work_schedule`` replaces the
weekly fallback entirely, including weekend work.
"""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING

from worktime.models.employee import WEEKDAY_NAMES
from worktime.services.calendar import clip_range, iter_days

if TYPE_CHECKING:
    from worktime.models.employee import Employee
    from worktime.services.calendar import HolidayCalendar

_FALLBACK_WORKDAYS_PER_WEEK = 5


def daily_target_from_weekly(weekly_target_minutes: int) -> int:
    """Split a weekly target over Monday to Friday, rounded to the minute."""
    return round(weekly_target_minutes / _FALLBACK_WORKDAYS_PER_WEEK)


def resolve_daily_target(employee: Employee, day: date, calendar: HolidayCalendar) -> int:
    if calendar.is_holiday(day):
        return 0

    if employee.work_schedule is not None:
        return max(int(employee.work_schedule.get(WEEKDAY_NAMES[day.weekday()], 0)), 0)

    if calendar.is_weekend(day):
        return 0
    return daily_target_from_weekly(employee.weekly_target_minutes)


def is_working_day(employee: Employee, day: date, calendar: HolidayCalendar) -> bool:
    return resolve_daily_target(employee, day, calendar) > 0


def is_employed(employee: Employee, day: date) -> bool:
    if day < employee.hire_date:
        return False
    return employee.end_date is None or day <= employee.end_date


def employment_window(
    employee: Employee,
    start_date: date,
    end_date: date,
    today: date | None = None,
) -> tuple[date, date] | None:
    """Clip [start_date, end_date] to the days the employee can accrue overtime.

    Days before hire, after the employment end and after ``today`` are
    excluded. Returns None when nothing is left.
    """
    upper = today if today is not None else date.today()
    if employee.end_date is not None:
        upper = min(upper, employee.end_date)
    return clip_range(start_date, end_date, employee.hire_date, upper)


def count_working_days(employee: Employee, start_date: date, end_date: date, calendar: HolidayCalendar) -> int:
    return sum(1 for day in iter_days(start_date, end_date) if is_working_day(employee, day, calendar))


def target_minutes_for_range(
    employee: Employee,
    start_date: date,
    end_date: date,
    calendar: HolidayCalendar,
) -> int:
    """Total owed minutes over a range; employment bounds are the caller's concern."""
    return sum(resolve_daily_target(employee, day, calendar) for day in iter_days(start_date, end_date))
