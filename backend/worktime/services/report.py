"""Reporting service: audit log queries and workforce-wide overtime aggregates."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import func, or_, select
from sqlmodel import col

from worktime.models.audit import AuditLog
from worktime.models.balance import OvertimeBalance
from worktime.models.employee import Employee
from worktime.schemas.report import (
    AggregatedSummaryResponse,
    AuditLogEntryResponse,
    AuditLogListResponse,
    EmployeeOvertimeSummary,
)
from worktime.services.calendar import month_key, validate_month, validate_year

if TYPE_CHECKING:
    import uuid
    from datetime import date

    from sqlalchemy.ext.asyncio import AsyncSession


async def query_audit_log(
    session: AsyncSession,
    *,
    entity_type: str | None = None,
    entity_id: str | None = None,
    action: str | None = None,
    actor_id: uuid.UUID | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    offset: int = 0,
    limit: int = 50,
) -> AuditLogListResponse:
    """Query audit log entries with optional filters, newest first."""
    filters = []

    if entity_type is not None:
        filters.append(col(AuditLog.entity_type) == entity_type)
    if entity_id is not None:
        filters.append(col(AuditLog.entity_id) == entity_id)
    if action is not None:
        filters.append(col(AuditLog.action) == action)
    if actor_id is not None:
        filters.append(col(AuditLog.actor_id) == actor_id)
    if start_date is not None:
        filters.append(col(AuditLog.created_at) >= start_date)
    if end_date is not None:
        filters.append(col(AuditLog.created_at) <= end_date)

    count_result = await session.execute(select(func.count()).select_from(AuditLog).where(*filters))
    total = count_result.scalar_one()

    result = await session.execute(
        select(AuditLog).where(*filters).order_by(col(AuditLog.created_at).desc()).offset(offset).limit(limit)
    )
    entries = list(result.scalars().all())

    return AuditLogListResponse(
        items=[
            AuditLogEntryResponse(
                id=e.id,
                actor_id=e.actor_id,
                entity_type=e.entity_type,
                entity_id=e.entity_id,
                action=e.action,
                before_json=e.before_json,
                after_json=e.after_json,
                created_at=e.created_at,
            )
            for e in entries
        ],
        total=total,
    )


async def get_aggregated_summary(
    session: AsyncSession,
    year: int,
    month: int | None = None,
) -> AggregatedSummaryResponse:
    """Target, actual and overtime across all employees with balances in the period.

    Aggregated in SQL from the monthly balance rows; the ledger is not replayed.
    Employees with neither target nor actual time in the period are left out.
    """
    validate_year(year)
    if month is not None:
        validate_month(month)
        period_filter = [col(OvertimeBalance.month) == month_key(year, month)]
    else:
        period_filter = [
            col(OvertimeBalance.month) >= month_key(year, 1),
            col(OvertimeBalance.month) <= month_key(year, 12),
        ]

    target = func.sum(col(OvertimeBalance.target_minutes)).label("target_minutes")
    actual = func.sum(col(OvertimeBalance.actual_minutes)).label("actual_minutes")
    overtime = func.sum(col(OvertimeBalance.overtime_minutes)).label("overtime_minutes")

    result = await session.execute(
        select(
            col(Employee.id),
            col(Employee.first_name),
            col(Employee.last_name),
            target,
            actual,
            overtime,
        )
        .join(OvertimeBalance, col(OvertimeBalance.employee_id) == col(Employee.id))
        .where(*period_filter)
        .group_by(col(Employee.id), col(Employee.first_name), col(Employee.last_name))
        # Months that only hold a rollover carryover were never calculated.
        .having(
            or_(
                func.sum(col(OvertimeBalance.target_minutes)) != 0,
                func.sum(col(OvertimeBalance.actual_minutes)) != 0,
            )
        )
        .order_by(col(Employee.last_name), col(Employee.first_name), col(Employee.id))
    )
    rows = result.all()

    items = [
        EmployeeOvertimeSummary(
            employee_id=row.id,
            employee_name=f"{row.first_name} {row.last_name}",
            target_minutes=int(row.target_minutes),
            actual_minutes=int(row.actual_minutes),
            overtime_minutes=int(row.overtime_minutes),
        )
        for row in rows
    ]
    total_overtime = sum(item.overtime_minutes for item in items)

    return AggregatedSummaryResponse(
        year=year,
        month=month,
        employee_count=len(items),
        total_target_minutes=sum(item.target_minutes for item in items),
        total_actual_minutes=sum(item.actual_minutes for item in items),
        total_overtime_minutes=total_overtime,
        average_overtime_minutes=round(total_overtime / len(items), 2) if items else 0.0,
        employees_with_overtime=sum(1 for item in items if item.overtime_minutes > 0),
        employees_with_undertime=sum(1 for item in items if item.overtime_minutes < 0),
        items=items,
    )
