"""Year-end rollover.

Runs once per year boundary (usually triggered on January 1st). Every
eligible employee's closing balance of the previous year is written as a
``carryover`` seed dated January 1st of the new year. Re-running a rollover
updates the seeds in place, so it is safe to repeat. A seed that opens an
employee's history (an imported opening balance) is left as stored.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import or_, select
from sqlmodel import col

from worktime.models.audit import AuditLog
from worktime.models.employee import Employee
from worktime.models.enums import AuditAction, AuditEntityType, TransactionSourceType, TransactionType
from worktime.models.ledger import OvertimeTransaction
from worktime.schemas.rollover import (
    RolloverHistoryItem,
    RolloverHistoryResponse,
    RolloverPreviewItem,
    RolloverPreviewResponse,
)
from worktime.services.audit import SYSTEM_ACTOR, write_audit_log
from worktime.services.balance import _balance_on
from worktime.services.calendar import validate_year
from worktime.services.ledger import replay_employee_ledger

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

CARRYOVER_SEQ = 0


@dataclass
class RolloverResult:
    """Result of a rollover into ``year``."""

    year: int
    processed_count: int = 0
    carryovers: dict[uuid.UUID, int] = field(default_factory=dict)


async def _find_rollover_employees(session: AsyncSession, year: int) -> list[Employee]:
    """Active employees hired before ``year`` and still employed on January 1st of it."""
    new_year = date(year, 1, 1)
    result = await session.execute(
        select(Employee)
        .where(
            col(Employee.is_active).is_(True),
            col(Employee.hire_date) < new_year,
            or_(col(Employee.end_date).is_(None), col(Employee.end_date) >= new_year),
        )
        .order_by(col(Employee.last_name), col(Employee.first_name), col(Employee.id))
    )
    return list(result.scalars().all())


async def _upsert_carryover(session: AsyncSession, employee_id: uuid.UUID, year: int, minutes: int) -> int:
    """Write the January 1st seed and return the amount it carries."""
    new_year = date(year, 1, 1)
    result = await session.execute(
        select(OvertimeTransaction).where(
            col(OvertimeTransaction.employee_id) == employee_id,
            col(OvertimeTransaction.date) == new_year,
            col(OvertimeTransaction.transaction_type) == TransactionType.CARRYOVER,
        )
    )
    carryover = result.scalar_one_or_none()
    if carryover is None:
        carryover = OvertimeTransaction(
            employee_id=employee_id,
            date=new_year,
            seq=CARRYOVER_SEQ,
            transaction_type=TransactionType.CARRYOVER,
            minutes=minutes,
            source_type=TransactionSourceType.ROLLOVER,
            source_id=str(year),
            description=f"Carryover from {year - 1}",
        )
        session.add(carryover)
        return minutes

    history = await session.execute(
        select(col(OvertimeTransaction.id))
        .where(
            col(OvertimeTransaction.employee_id) == employee_id,
            col(OvertimeTransaction.date) < new_year,
        )
        .limit(1)
    )
    if history.first() is None:
        # An opening balance with nothing before it is kept as stored.
        logger.info("Keeping opening carryover of %d min for employee %s in %d", carryover.minutes, employee_id, year)
        return carryover.minutes
    carryover.minutes = minutes
    return minutes


async def rollover_year(
    session: AsyncSession,
    year: int,
    *,
    actor_id: uuid.UUID | None = None,
) -> RolloverResult:
    """Carry every eligible employee's closing balance of ``year - 1`` into ``year``.

    The whole batch is one transaction: if any employee fails, no carryover
    from this run is kept.
    """
    validate_year(year)
    previous_year_end = date(year - 1, 12, 31)
    result = RolloverResult(year=year)

    logger.info("Starting overtime rollover from %d into %d", year - 1, year)
    try:
        for employee in await _find_rollover_employees(session, year):
            balance = await _balance_on(session, employee.id, previous_year_end)
            carried = await _upsert_carryover(session, employee.id, year, balance)
            await replay_employee_ledger(session, employee.id)
            result.carryovers[employee.id] = carried
            result.processed_count += 1

        await write_audit_log(
            session,
            actor_id=actor_id or SYSTEM_ACTOR,
            entity_type=AuditEntityType.ROLLOVER,
            entity_id=str(year),
            action=AuditAction.ROLLOVER,
            after_json={
                "year": year,
                "processed_count": result.processed_count,
                "carryovers": {str(k): v for k, v in result.carryovers.items()},
            },
        )
        await session.commit()
    except Exception:
        await session.rollback()
        logger.exception("Overtime rollover into %d failed; nothing was written", year)
        raise

    logger.info("Rollover into %d complete: %d employees processed", year, result.processed_count)
    return result


async def preview_rollover(session: AsyncSession, year: int) -> RolloverPreviewResponse:
    """Read-only look at the carryovers a rollover into ``year`` would write."""
    validate_year(year)
    new_year = date(year, 1, 1)
    previous_year_end = date(year - 1, 12, 31)

    result = await session.execute(
        select(Employee)
        .where(
            col(Employee.is_active).is_(True),
            or_(col(Employee.end_date).is_(None), col(Employee.end_date) >= new_year),
        )
        .order_by(col(Employee.last_name), col(Employee.first_name), col(Employee.id))
    )

    items: list[RolloverPreviewItem] = []
    for employee in result.scalars().all():
        warnings: list[str] = []
        carryover = 0
        if employee.hire_date >= new_year:
            warnings.append(f"Hired in {employee.hire_date.year} - no carryover expected")
        else:
            carryover = await _balance_on(session, employee.id, previous_year_end)
            ledger_rows = await session.execute(
                select(col(OvertimeTransaction.id))
                .where(
                    col(OvertimeTransaction.employee_id) == employee.id,
                    col(OvertimeTransaction.date) >= date(year - 1, 1, 1),
                    col(OvertimeTransaction.date) <= previous_year_end,
                )
                .limit(1)
            )
            if ledger_rows.first() is None:
                warnings.append(f"No ledger transactions in {year - 1} - rebuild before rolling over")

        items.append(
            RolloverPreviewItem(
                employee_id=employee.id,
                employee_name=employee.full_name,
                carryover_minutes=carryover,
                warnings=warnings,
            )
        )

    return RolloverPreviewResponse(
        year=year,
        employee_count=len(items),
        total_carryover_minutes=sum(item.carryover_minutes for item in items),
        items=items,
    )


async def get_rollover_history(session: AsyncSession, limit: int = 50) -> RolloverHistoryResponse:
    """Past rollover runs as recorded in the audit log."""
    result = await session.execute(
        select(AuditLog)
        .where(
            col(AuditLog.entity_type) == AuditEntityType.ROLLOVER,
            col(AuditLog.action) == AuditAction.ROLLOVER,
        )
        .order_by(col(AuditLog.created_at).desc())
        .limit(limit)
    )
    entries = list(result.scalars().all())

    items = [
        RolloverHistoryItem(
            year=int(entry.entity_id),
            processed_count=int((entry.after_json or {}).get("processed_count", 0)),
            actor_id=entry.actor_id,
            created_at=entry.created_at,
        )
        for entry in entries
    ]
    return RolloverHistoryResponse(items=items, total=len(items))
