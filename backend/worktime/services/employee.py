from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import or_, select
from sqlmodel import col

from worktime.exceptions import NotFoundError
from worktime.models.employee import Employee

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession


async def get_employee(session: AsyncSession, employee_id: uuid.UUID) -> Employee:
    """Fetch an employee or raise NotFoundError."""
    employee = await session.get(Employee, employee_id)
    if employee is None:
        raise NotFoundError(f"Employee {employee_id} not found")
    return employee


async def list_active_employees(session: AsyncSession, as_of: date | None = None) -> list[Employee]:
    """Active employees hired on or before ``as_of`` and not ended before it."""
    as_of = as_of or date.today()
    result = await session.execute(
        select(Employee)
        .where(
            col(Employee.is_active).is_(True),
            col(Employee.hire_date) <= as_of,
            or_(col(Employee.end_date).is_(None), col(Employee.end_date) >= as_of),
        )
        .order_by(col(Employee.last_name), col(Employee.first_name), col(Employee.id))
    )
    return list(result.scalars().all())
