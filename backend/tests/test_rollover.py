"""Tests for the year-end rollover, its preview and its history."""

from __future__ import annotations

import uuid
from datetime import date
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import select
from sqlmodel import col

from worktime.exceptions import ValidationError
from worktime.models.balance import OvertimeBalance
from worktime.models.ledger import OvertimeTransaction
from worktime.services import rollover as rollover_service
from worktime.services.balance import get_balance
from worktime.models.enums import TransactionSourceType, TransactionType
from worktime.services.ledger import rebuild_ledger, replay_employee_ledger
from worktime.services.rollover import get_rollover_history, preview_rollover, rollover_year

if TYPE_CHECKING:
    from httpx import AsyncClient
    from sqlalchemy.ext.asyncio import AsyncSession

TODAY = date(2026, 1, 31)
ADMIN_ID = uuid.uuid4()
ADMIN_HEADERS = {"X-User-Id": str(ADMIN_ID), "X-Role": "admin"}


async def _carryovers(session: AsyncSession, employee_id: uuid.UUID) -> list[OvertimeTransaction]:
    result = await session.execute(
        select(OvertimeTransaction).where(
            col(OvertimeTransaction.employee_id) == employee_id,
            col(OvertimeTransaction.transaction_type) == "carryover",
        )
    )
    return list(result.scalars().all())


async def _employee_closing_2024_at(db_session: AsyncSession, make_employee, add_correction, minutes: int):
    # An empty schedule owes nothing, so the balance is driven by the correction alone.
    employee = await make_employee(hire_date=date(2024, 6, 1), work_schedule={})
    await add_correction(employee.id, date(2024, 12, 20), minutes)
    await rebuild_ledger(db_session, employee.id, date(2024, 12, 1), date(2024, 12, 31), today=TODAY)
    return employee


async def test_rollover_carries_negative_balance(db_session: AsyncSession, make_employee, add_correction) -> None:
    employee = await _employee_closing_2024_at(db_session, make_employee, add_correction, -750)

    result = await rollover_year(db_session, 2025)

    assert result.processed_count == 1
    carryovers = await _carryovers(db_session, employee.id)
    assert len(carryovers) == 1
    assert carryovers[0].date == date(2025, 1, 1)
    assert carryovers[0].seq == 0
    assert carryovers[0].minutes == -750
    assert await get_balance(db_session, employee.id, date(2025, 1, 1)) == -750

    january = await db_session.get(OvertimeBalance, (employee.id, "2025-01"))
    assert january is not None
    assert january.carryover_minutes == -750


async def test_rollover_is_idempotent(db_session: AsyncSession, make_employee, add_correction) -> None:
    employee = await _employee_closing_2024_at(db_session, make_employee, add_correction, -750)

    await rollover_year(db_session, 2025)
    await rollover_year(db_session, 2025)

    carryovers = await _carryovers(db_session, employee.id)
    assert [tx.minutes for tx in carryovers] == [-750]
    assert await get_balance(db_session, employee.id, date(2025, 1, 1)) == -750


async def test_backdated_change_refreshes_carryover(
    db_session: AsyncSession, make_employee, add_correction
) -> None:
    employee = await _employee_closing_2024_at(db_session, make_employee, add_correction, -750)
    await rollover_year(db_session, 2025)

    await add_correction(employee.id, date(2024, 12, 30), 150)
    await rebuild_ledger(db_session, employee.id, date(2024, 12, 1), date(2024, 12, 31), today=TODAY)

    carryovers = await _carryovers(db_session, employee.id)
    assert carryovers[0].minutes == -600
    assert await get_balance(db_session, employee.id, date(2025, 1, 1)) == -600


async def test_rollover_keeps_imported_opening_balance(db_session: AsyncSession, make_employee) -> None:
    employee = await make_employee(hire_date=date(2020, 1, 1))
    db_session.add(
        OvertimeTransaction(
            employee_id=employee.id,
            date=date(2025, 1, 1),
            seq=0,
            transaction_type=TransactionType.CARRYOVER,
            minutes=600,
            source_type=TransactionSourceType.ROLLOVER,
            description="Imported opening balance",
        )
    )
    await replay_employee_ledger(db_session, employee.id)
    await db_session.commit()

    result = await rollover_year(db_session, 2025)

    assert result.processed_count == 1
    assert result.carryovers == {employee.id: 600}
    assert [tx.minutes for tx in await _carryovers(db_session, employee.id)] == [600]
    assert await get_balance(db_session, employee.id, date(2025, 1, 1)) == 600
    january = await db_session.get(OvertimeBalance, (employee.id, "2025-01"), populate_existing=True)
    assert january is not None
    assert january.carryover_minutes == 600


async def test_rollover_skips_new_and_departed_employees(
    db_session: AsyncSession, make_employee, add_correction
) -> None:
    await make_employee(hire_date=date(2025, 1, 1), first_name="New")
    await make_employee(hire_date=date(2020, 1, 1), end_date=date(2024, 12, 31), first_name="Gone")
    await make_employee(hire_date=date(2020, 1, 1), is_active=False, first_name="Inactive")
    stays = await _employee_closing_2024_at(db_session, make_employee, add_correction, 120)

    result = await rollover_year(db_session, 2025)

    assert result.processed_count == 1
    assert result.carryovers == {stays.id: 120}


async def test_rollover_rejects_out_of_range_year(db_session: AsyncSession) -> None:
    with pytest.raises(ValidationError):
        await rollover_year(db_session, 1999)


async def test_failed_rollover_writes_nothing(
    db_session: AsyncSession, make_employee, add_correction, monkeypatch: pytest.MonkeyPatch
) -> None:
    first = await _employee_closing_2024_at(db_session, make_employee, add_correction, 100)
    second = await _employee_closing_2024_at(db_session, make_employee, add_correction, 200)
    first_id, second_id = first.id, second.id
    calls = 0
    original = rollover_service.replay_employee_ledger

    async def _fail_on_second(session: AsyncSession, employee_id: uuid.UUID) -> int:
        nonlocal calls
        calls += 1
        if calls == 2:
            raise RuntimeError("disk full")
        return await original(session, employee_id)

    monkeypatch.setattr(rollover_service, "replay_employee_ledger", _fail_on_second)

    with pytest.raises(RuntimeError):
        await rollover_year(db_session, 2025)

    assert await _carryovers(db_session, first_id) == []
    assert await _carryovers(db_session, second_id) == []


async def test_preview_rollover_warns_for_new_hires(
    db_session: AsyncSession, make_employee, add_correction
) -> None:
    await make_employee(hire_date=date(2025, 3, 1), first_name="Late")
    await make_employee(hire_date=date(2023, 1, 1), first_name="Unbuilt", last_name="Zeta")
    employee = await _employee_closing_2024_at(db_session, make_employee, add_correction, 300)

    preview = await preview_rollover(db_session, 2025)
    by_id = {item.employee_id: item for item in preview.items}

    assert preview.employee_count == 3
    assert by_id[employee.id].carryover_minutes == 300
    assert by_id[employee.id].warnings == []
    late = next(item for item in preview.items if item.employee_name.startswith("Late"))
    assert late.warnings == ["Hired in 2025 - no carryover expected"]
    unbuilt = next(item for item in preview.items if item.employee_name.startswith("Unbuilt"))
    assert unbuilt.warnings == ["No ledger transactions in 2024 - rebuild before rolling over"]
    # A preview writes nothing.
    assert await _carryovers(db_session, employee.id) == []


async def test_rollover_history_from_audit_log(db_session: AsyncSession, make_employee, add_correction) -> None:
    await _employee_closing_2024_at(db_session, make_employee, add_correction, 10)
    actor = uuid.uuid4()
    await rollover_year(db_session, 2025, actor_id=actor)

    history = await get_rollover_history(db_session)
    assert history.total == 1
    assert history.items[0].year == 2025
    assert history.items[0].processed_count == 1
    assert history.items[0].actor_id == actor


# ---------------------------------------------------------------------------
# HTTP surface
# ---------------------------------------------------------------------------


async def test_rollover_endpoints(
    async_client: AsyncClient, db_session: AsyncSession, make_employee, add_correction
) -> None:
    await _employee_closing_2024_at(db_session, make_employee, add_correction, -750)

    resp = await async_client.get("/rollover/2025/preview", headers=ADMIN_HEADERS)
    assert resp.status_code == 200
    assert resp.json()["total_carryover_minutes"] == -750

    resp = await async_client.post("/rollover/2025", headers=ADMIN_HEADERS)
    assert resp.status_code == 200
    assert resp.json() == {"year": 2025, "processed_count": 1}

    resp = await async_client.get("/rollover/history", headers=ADMIN_HEADERS)
    assert resp.status_code == 200
    assert resp.json()["items"][0]["actor_id"] == str(ADMIN_ID)


async def test_rollover_endpoint_requires_admin(async_client: AsyncClient) -> None:
    resp = await async_client.post("/rollover/2025", headers={"X-User-Id": str(uuid.uuid4()), "X-Role": "employee"})
    assert resp.status_code == 403
