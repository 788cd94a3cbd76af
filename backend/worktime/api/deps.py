# ruff: noqa: B008, TC003
from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import Depends, Header, status

from worktime.exceptions import AppError
from worktime.schemas.auth import AuthContext
from worktime.services.holiday import HolidayProvider, get_holiday_provider


async def get_auth_context(
    x_user_id: uuid.UUID = Header(),
    x_role: str = Header(default="employee"),
) -> AuthContext:
    """Extract the caller identity from request headers."""
    return AuthContext(user_id=x_user_id, role=x_role)


AuthDep = Annotated[AuthContext, Depends(get_auth_context)]


async def require_admin(
    auth: AuthDep,
) -> AuthContext:
    """Require admin role for the request."""
    if not auth.is_admin:
        raise AppError("Admin access required", status_code=status.HTTP_403_FORBIDDEN)
    return auth


AdminDep = Annotated[AuthContext, Depends(require_admin)]


async def require_self_or_admin(
    employee_id: uuid.UUID,
    auth: AuthDep,
) -> AuthContext:
    """Employees may only read their own ledger; admins may read any."""
    if not auth.is_admin and auth.user_id != employee_id:
        raise AppError("Access to another employee's overtime is not allowed", status_code=status.HTTP_403_FORBIDDEN)
    return auth


HolidayProviderDep = Annotated[HolidayProvider, Depends(get_holiday_provider)]
