"""Tests for holiday providers, year coverage and the holiday endpoints."""

from __future__ import annotations

import uuid
from datetime import date
from typing import TYPE_CHECKING

import httpx
import pytest

from worktime.exceptions import HolidaySourceError, ValidationError
from worktime.schemas.holiday import HolidayInfo
from worktime.services.holiday import (
    SpikeTimeHolidayProvider,
    StaticHolidayProvider,
    ensure_holidays_for_year,
    list_holidays,
)
from worktime.services.report import query_audit_log

if TYPE_CHECKING:
    from httpx import AsyncClient
    from sqlalchemy.ext.asyncio import AsyncSession

ADMIN_HEADERS = {"X-User-Id": str(uuid.uuid4()), "X-Role": "admin"}
EMPLOYEE_HEADERS = {"X-User-Id": str(uuid.uuid4()), "X-Role": "employee"}

URL_TEMPLATE = "https://feiertage.example/api/{region}/{year}"

SPIKETIME_PAYLOAD = [
    {"Datum": "2025-01-01T00:00:00", "Feiertag": {"Name": "Neujahr", "Laender": []}},
    {"Datum": "2025-06-19T00:00:00", "Feiertag": {"Name": "Fronleichnam", "Laender": []}},
    {"Datum": "2025-12-25T00:00:00", "Feiertag": {"Name": "1. Weihnachtstag", "Laender": []}},
]


def _provider(handler) -> SpikeTimeHolidayProvider:
    return SpikeTimeHolidayProvider(URL_TEMPLATE, "BY", transport=httpx.MockTransport(handler))


class _FailingProvider:
    async def fetch_holidays(self, year: int) -> list[HolidayInfo]:
        raise HolidaySourceError("feed down")


# ---------------------------------------------------------------------------
# SpikeTime provider
# ---------------------------------------------------------------------------


async def test_spiketime_provider_parses_feed() -> None:
    requested: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requested.append(str(request.url))
        return httpx.Response(200, json=SPIKETIME_PAYLOAD)

    holidays = await _provider(handler).fetch_holidays(2025)

    assert requested == ["https://feiertage.example/api/BY/2025"]
    assert [h.date for h in holidays] == [date(2025, 1, 1), date(2025, 6, 19), date(2025, 12, 25)]
    assert holidays[0].name == "Neujahr"
    assert holidays[0].federal is True
    # Corpus Christi is only observed in some states.
    assert holidays[1].federal is False


async def test_spiketime_provider_http_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503)

    with pytest.raises(HolidaySourceError):
        await _provider(handler).fetch_holidays(2025)


@pytest.mark.parametrize(
    "payload",
    [
        {"error": "unexpected"},
        [{"Datum": "2025-01-01T00:00:00"}],
        [{"Datum": "not-a-date", "Feiertag": {"Name": "Neujahr"}}],
    ],
)
async def test_spiketime_provider_malformed_payload(payload) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=payload)

    with pytest.raises(HolidaySourceError):
        await _provider(handler).fetch_holidays(2025)


# ---------------------------------------------------------------------------
# Year coverage
# ---------------------------------------------------------------------------


async def test_ensure_holidays_loads_missing_year(db_session: AsyncSession) -> None:
    provider = StaticHolidayProvider(
        [
            HolidayInfo(date=date(2025, 1, 1), name="Neujahr"),
            HolidayInfo(date=date(2025, 5, 1), name="Erster Mai"),
            HolidayInfo(date=date(2026, 1, 1), name="Neujahr"),
        ]
    )

    fetched = await ensure_holidays_for_year(db_session, 2025, provider)

    assert fetched == 2
    listing = await list_holidays(db_session, 2025)
    assert [h.date for h in listing.items] == [date(2025, 1, 1), date(2025, 5, 1)]
    audit = await query_audit_log(db_session, entity_type="HOLIDAY", action="SYNC")
    assert audit.total == 1


async def test_ensure_holidays_skips_covered_year(db_session: AsyncSession) -> None:
    provider = StaticHolidayProvider([HolidayInfo(date=date(2025, 1, 1), name="Neujahr")])
    await ensure_holidays_for_year(db_session, 2025, provider)

    provider.seed(HolidayInfo(date=date(2025, 10, 3), name="Tag der deutschen Einheit"))
    assert await ensure_holidays_for_year(db_session, 2025, provider) == 0
    assert (await list_holidays(db_session, 2025)).total == 1

    assert await ensure_holidays_for_year(db_session, 2025, provider, refresh=True) == 2
    assert (await list_holidays(db_session, 2025)).total == 2


async def test_ensure_holidays_degrades_when_source_fails(db_session: AsyncSession) -> None:
    assert await ensure_holidays_for_year(db_session, 2025, _FailingProvider()) == 0
    assert (await list_holidays(db_session, 2025)).total == 0


async def test_ensure_holidays_uses_configured_provider(
    db_session: AsyncSession, holiday_provider: StaticHolidayProvider
) -> None:
    holiday_provider.seed(HolidayInfo(date=date(2025, 12, 26), name="2. Weihnachtstag"))
    assert await ensure_holidays_for_year(db_session, 2025) == 1


async def test_ensure_holidays_rejects_invalid_year(db_session: AsyncSession) -> None:
    with pytest.raises(ValidationError):
        await ensure_holidays_for_year(db_session, 2101, StaticHolidayProvider())


# ---------------------------------------------------------------------------
# HTTP surface
# ---------------------------------------------------------------------------


async def test_create_list_delete_holiday(async_client: AsyncClient) -> None:
    resp = await async_client.post(
        "/holidays",
        json={"date": "2025-10-31", "name": "Reformationstag", "federal": False},
        headers=ADMIN_HEADERS,
    )
    assert resp.status_code == 201
    holiday_id = resp.json()["id"]
    assert resp.json()["federal"] is False

    resp = await async_client.get("/holidays", params={"year": 2025}, headers=EMPLOYEE_HEADERS)
    assert resp.status_code == 200
    assert resp.json()["total"] == 1

    resp = await async_client.delete(f"/holidays/{holiday_id}", headers=ADMIN_HEADERS)
    assert resp.status_code == 204

    resp = await async_client.get("/holidays", params={"year": 2025}, headers=EMPLOYEE_HEADERS)
    assert resp.json()["total"] == 0

    resp = await async_client.get("/audit-log", params={"entity_type": "HOLIDAY"}, headers=ADMIN_HEADERS)
    assert {item["action"] for item in resp.json()["items"]} == {"CREATE", "DELETE"}


async def test_create_duplicate_holiday_conflicts(async_client: AsyncClient) -> None:
    body = {"date": "2025-12-25", "name": "1. Weihnachtstag"}
    assert (await async_client.post("/holidays", json=body, headers=ADMIN_HEADERS)).status_code == 201

    resp = await async_client.post("/holidays", json=body, headers=ADMIN_HEADERS)
    assert resp.status_code == 409


async def test_create_holiday_requires_admin(async_client: AsyncClient) -> None:
    resp = await async_client.post(
        "/holidays", json={"date": "2025-12-25", "name": "1. Weihnachtstag"}, headers=EMPLOYEE_HEADERS
    )
    assert resp.status_code == 403


async def test_delete_missing_holiday(async_client: AsyncClient) -> None:
    resp = await async_client.delete(f"/holidays/{uuid.uuid4()}", headers=ADMIN_HEADERS)
    assert resp.status_code == 404


async def test_sync_endpoint(async_client: AsyncClient, holiday_provider: StaticHolidayProvider) -> None:
    holiday_provider.seed(HolidayInfo(date=date(2025, 1, 1), name="Neujahr"))
    holiday_provider.seed(HolidayInfo(date=date(2025, 4, 18), name="Karfreitag"))

    resp = await async_client.post("/holidays/2025/sync", headers=ADMIN_HEADERS)

    assert resp.status_code == 200
    assert resp.json() == {"year": 2025, "fetched": 2, "total": 2}
