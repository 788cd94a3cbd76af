"""Holiday calendar and date-window helpers shared by every ledger computation."""

from __future__ import annotations

import logging
from calendar import monthrange
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlmodel import col

from worktime.exceptions import ValidationError
from worktime.models.holiday import Holiday

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

MIN_YEAR = 2000
MAX_YEAR = 2100


# ---------------------------------------------------------------------------
# Holiday calendar
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DayInfo:
    """Calendar facts about a single date."""

    day: date
    is_holiday: bool
    is_weekend: bool
    holiday_name: str | None = None


@dataclass(frozen=True, eq=False)
class HolidayCalendar:
    """Holiday lookup scoped to one computation.

    Built once per rebuild or report from the holiday table (or directly in
    tests) and passed explicitly into every pure function. ``covered_years``
    lists the years for which holiday data was present.
    """

    holidays: dict[date, str] = field(default_factory=dict)
    covered_years: frozenset[int] = frozenset()

    @classmethod
    def from_dates(cls, dates: Iterable[date], name: str = "Holiday") -> HolidayCalendar:
        holidays = {d: name for d in dates}
        return cls(holidays=holidays, covered_years=frozenset(d.year for d in holidays))

    def is_holiday(self, day: date) -> bool:
        return day in self.holidays

    @staticmethod
    def is_weekend(day: date) -> bool:
        return day.weekday() >= 5

    def holiday_name(self, day: date) -> str | None:
        return self.holidays.get(day)

    def covers(self, year: int) -> bool:
        return year in self.covered_years

    def resolve(self, day: date) -> DayInfo:
        return DayInfo(
            day=day,
            is_holiday=self.is_holiday(day),
            is_weekend=self.is_weekend(day),
            holiday_name=self.holiday_name(day),
        )


async def load_holiday_calendar(
    session: AsyncSession,
    start_date: date,
    end_date: date,
) -> HolidayCalendar:
    """Load holidays in [start_date, end_date] into a calendar.

    Years without any holiday rows degrade to "no holidays" with a warning;
    the calculation continues.
    """
    result = await session.execute(
        select(col(Holiday.date), col(Holiday.name)).where(
            col(Holiday.date) >= date(start_date.year, 1, 1),
            col(Holiday.date) <= date(end_date.year, 12, 31),
        )
    )
    rows = result.all()
    covered = frozenset(row.date.year for row in rows)
    holidays = {row.date: row.name for row in rows if start_date <= row.date <= end_date}

    for year in range(start_date.year, end_date.year + 1):
        if year not in covered:
            logger.warning("No holiday data loaded for %d; treating all days as non-holidays", year)

    return HolidayCalendar(holidays=holidays, covered_years=covered)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def validate_year(year: int) -> int:
    if not MIN_YEAR <= year <= MAX_YEAR:
        raise ValidationError(f"Invalid year: {year} (must be {MIN_YEAR}-{MAX_YEAR})")
    return year


def validate_month(month: int) -> int:
    if not 1 <= month <= 12:
        raise ValidationError(f"Invalid month: {month} (must be 1-12)")
    return month


def validate_date_range(start_date: date, end_date: date) -> None:
    """Reject inverted ranges and dates outside the supported years."""
    validate_year(start_date.year)
    validate_year(end_date.year)
    if start_date > end_date:
        raise ValidationError(f"Start date {start_date} is after end date {end_date}")


def month_key(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def parse_month_key(value: str) -> tuple[int, int]:
    """Parse a ``YYYY-MM`` key into (year, month)."""
    parts = value.split("-")
    if len(parts) != 2 or len(parts[0]) != 4 or len(parts[1]) != 2 or not all(p.isdigit() for p in parts):
        raise ValidationError(f"Invalid month key: {value!r} (expected YYYY-MM)")
    year, month = int(parts[0]), int(parts[1])
    return validate_year(year), validate_month(month)


# ---------------------------------------------------------------------------
# Date windows
# ---------------------------------------------------------------------------


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """Return the first and last day of a month (both inclusive)."""
    _, days_in_month = monthrange(year, month)
    return date(year, month, 1), date(year, month, days_in_month)


def year_bounds(year: int) -> tuple[date, date]:
    return date(year, 1, 1), date(year, 12, 31)


def iter_days(start_date: date, end_date: date) -> Iterator[date]:
    current = start_date
    one_day = timedelta(days=1)
    while current <= end_date:
        yield current
        current += one_day


def iter_months(start_date: date, end_date: date) -> Iterator[tuple[int, int]]:
    """Yield every (year, month) touched by [start_date, end_date]."""
    year, month = start_date.year, start_date.month
    while (year, month) <= (end_date.year, end_date.month):
        yield year, month
        month += 1
        if month > 12:
            year, month = year + 1, 1


def clip_range(
    start_date: date,
    end_date: date,
    lower: date | None = None,
    upper: date | None = None,
) -> tuple[date, date] | None:
    """Intersect [start_date, end_date] with optional bounds; None if empty."""
    if lower is not None:
        start_date = max(start_date, lower)
    if upper is not None:
        end_date = min(end_date, upper)
    if start_date > end_date:
        return None
    return start_date, end_date
