from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

import httpx
from sqlalchemy import extract, func, select
from sqlalchemy.exc import IntegrityError
from sqlmodel import col

from worktime.config import get_settings
from worktime.exceptions import AppError, HolidaySourceError, NotFoundError
from worktime.models.enums import AuditAction, AuditEntityType
from worktime.models.holiday import Holiday
from worktime.schemas.holiday import HolidayInfo, HolidayListResponse, HolidayResponse
from worktime.services.audit import SYSTEM_ACTOR, model_to_audit_dict, write_audit_log
from worktime.services.calendar import validate_year

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from worktime.schemas.auth import AuthContext
    from worktime.schemas.holiday import CreateHolidayRequest

logger = logging.getLogger(__name__)

# Holidays observed nationwide; everything else the feed returns is regional.
FEDERAL_HOLIDAY_NAMES = frozenset(
    {
        "Neujahr",
        "Karfreitag",
        "Ostermontag",
        "Erster Mai",
        "Christi Himmelfahrt",
        "Pfingstmontag",
        "Tag der deutschen Einheit",
        "1. Weihnachtstag",
        "2. Weihnachtstag",
    }
)


# ---------------------------------------------------------------------------
# Holiday providers
# ---------------------------------------------------------------------------


@runtime_checkable
class HolidayProvider(Protocol):
    """Source of public holidays for a year."""

    async def fetch_holidays(self, year: int) -> list[HolidayInfo]:
        """Return all holidays of the year. Raises HolidaySourceError on failure."""
        ...


class SpikeTimeHolidayProvider:
    """Fetch German public holidays from the SpikeTime feiertage API."""

    def __init__(
        self,
        url_template: str,
        region: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url_template = url_template
        self._region = region
        self._timeout = timeout
        self._transport = transport

    async def fetch_holidays(self, year: int) -> list[HolidayInfo]:
        url = self._url_template.format(region=self._region, year=year)
        logger.info("Fetching holidays for %d from %s", year, url)
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.get(url)
                response.raise_for_status()
                payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise HolidaySourceError(f"Holiday feed unavailable for {year}: {exc}") from exc

        return _parse_spiketime_payload(payload)


def _parse_spiketime_payload(payload: Any) -> list[HolidayInfo]:
    """Convert ``[{"Datum": "2025-01-01T00:00:00", "Feiertag": {"Name": ...}}]``."""
    if not isinstance(payload, list):
        raise HolidaySourceError("Holiday feed returned an unexpected payload")

    holidays: list[HolidayInfo] = []
    try:
        for item in payload:
            name = item["Feiertag"]["Name"]
            holidays.append(
                HolidayInfo(
                    date=date.fromisoformat(item["Datum"].split("T")[0]),
                    name=name,
                    federal=name in FEDERAL_HOLIDAY_NAMES,
                )
            )
    except (KeyError, TypeError, ValueError) as exc:
        raise HolidaySourceError(f"Malformed holiday feed entry: {exc}") from exc
    return holidays


class StaticHolidayProvider:
    """In-memory provider for tests and offline installations."""

    def __init__(self, holidays: list[HolidayInfo] | None = None) -> None:
        self._holidays: list[HolidayInfo] = list(holidays or [])

    def seed(self, holiday: HolidayInfo) -> None:
        self._holidays.append(holiday)

    async def fetch_holidays(self, year: int) -> list[HolidayInfo]:
        return [h for h in self._holidays if h.date.year == year]


_holiday_provider: HolidayProvider | None = None


def get_holiday_provider() -> HolidayProvider:
    """FastAPI dependency for the configured holiday provider."""
    global _holiday_provider
    if _holiday_provider is None:
        settings = get_settings()
        _holiday_provider = SpikeTimeHolidayProvider(
            settings.holiday_api_url,
            settings.holiday_region,
            settings.holiday_api_timeout_seconds,
        )
    return _holiday_provider


def set_holiday_provider(provider: HolidayProvider | None) -> None:
    """Override the provider (for testing or production wiring)."""
    global _holiday_provider
    _holiday_provider = provider


# ---------------------------------------------------------------------------
# Year coverage
# ---------------------------------------------------------------------------


async def _count_holidays_in_year(session: AsyncSession, year: int) -> int:
    result = await session.execute(
        select(func.count()).select_from(Holiday).where(extract("year", col(Holiday.date)) == year)
    )
    return int(result.scalar_one())


async def ensure_holidays_for_year(
    session: AsyncSession,
    year: int,
    provider: HolidayProvider | None = None,
    *,
    refresh: bool = False,
) -> int:
    """Make sure holiday rows exist for ``year`` before bulk calculations.

    Fetches from the provider only when the year has no rows (or ``refresh``
    is set). An unreachable source is logged and skipped so the caller can
    keep calculating with "no holidays" for that year.

    Returns the number of holidays fetched from the provider.
    """
    validate_year(year)
    existing = await _count_holidays_in_year(session, year)
    if existing and not refresh:
        return 0

    provider = provider or get_holiday_provider()
    try:
        fetched = await provider.fetch_holidays(year)
    except HolidaySourceError:
        logger.warning("Holiday source unavailable for %d; continuing without holiday data", year, exc_info=True)
        return 0
    if not fetched:
        logger.warning("Holiday source returned no holidays for %d", year)
        return 0

    existing_result = await session.execute(
        select(Holiday).where(extract("year", col(Holiday.date)) == year)
    )
    by_date = {h.date: h for h in existing_result.scalars().all()}

    for info in fetched:
        row = by_date.get(info.date)
        if row is None:
            row = Holiday(date=info.date, name=info.name, federal=info.federal)
            session.add(row)
            by_date[info.date] = row
        else:
            row.name = info.name
            row.federal = info.federal

    await write_audit_log(
        session,
        actor_id=SYSTEM_ACTOR,
        entity_type=AuditEntityType.HOLIDAY,
        entity_id=str(year),
        action=AuditAction.SYNC,
        after_json={"year": year, "fetched": len(fetched)},
    )
    await session.commit()

    logger.info("Loaded %d holidays for %d", len(fetched), year)
    return len(fetched)


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------


def _build_holiday_response(holiday: Holiday) -> HolidayResponse:
    return HolidayResponse(
        id=holiday.id,
        date=holiday.date,
        name=holiday.name,
        federal=holiday.federal,
    )


async def create_holiday(
    session: AsyncSession,
    auth: AuthContext,
    payload: CreateHolidayRequest,
) -> HolidayResponse:
    """Create a holiday."""
    holiday = Holiday(date=payload.date, name=payload.name, federal=payload.federal)
    session.add(holiday)

    try:
        await session.flush()
    except IntegrityError:
        await session.rollback()
        raise AppError("Holiday already exists for this date", status_code=409) from None

    await write_audit_log(
        session,
        actor_id=auth.user_id,
        entity_type=AuditEntityType.HOLIDAY,
        entity_id=str(holiday.id),
        action=AuditAction.CREATE,
        after_json=model_to_audit_dict(holiday),
    )

    await session.commit()
    await session.refresh(holiday)
    return _build_holiday_response(holiday)


async def list_holidays(
    session: AsyncSession,
    year: int | None = None,
    offset: int = 0,
    limit: int = 50,
) -> HolidayListResponse:
    """List holidays with optional year filter."""
    base_filter = []
    if year is not None:
        base_filter.append(extract("year", col(Holiday.date)) == year)

    count_result = await session.execute(select(func.count()).select_from(Holiday).where(*base_filter))
    total = count_result.scalar_one()

    result = await session.execute(
        select(Holiday).where(*base_filter).order_by(col(Holiday.date)).offset(offset).limit(limit)
    )
    holidays = list(result.scalars().all())

    return HolidayListResponse(
        items=[_build_holiday_response(h) for h in holidays],
        total=total,
    )


async def get_holiday(session: AsyncSession, holiday_id: uuid.UUID) -> Holiday:
    """Get a single holiday or raise 404."""
    holiday = await session.get(Holiday, holiday_id)
    if holiday is None:
        raise NotFoundError(f"Holiday {holiday_id} not found")
    return holiday


async def delete_holiday(
    session: AsyncSession,
    auth: AuthContext,
    holiday_id: uuid.UUID,
) -> None:
    """Delete a holiday."""
    holiday = await get_holiday(session, holiday_id)

    await write_audit_log(
        session,
        actor_id=auth.user_id,
        entity_type=AuditEntityType.HOLIDAY,
        entity_id=str(holiday.id),
        action=AuditAction.DELETE,
        before_json=model_to_audit_dict(holiday),
    )

    await session.delete(holiday)
    await session.commit()
