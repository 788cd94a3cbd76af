# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel


class AuditLogEntryResponse(BaseModel):
    """Response schema for a single audit log entry."""

    id: uuid.UUID
    actor_id: uuid.UUID
    entity_type: str
    entity_id: str
    action: str
    before_json: dict[str, Any] | None
    after_json: dict[str, Any] | None
    created_at: datetime


class AuditLogListResponse(BaseModel):
    """Paginated list of audit log entries."""

    items: list[AuditLogEntryResponse]
    total: int


class EmployeeOvertimeSummary(BaseModel):
    """Period figures of a single employee."""

    employee_id: uuid.UUID
    employee_name: str
    target_minutes: int
    actual_minutes: int
    overtime_minutes: int


class AggregatedSummaryResponse(BaseModel):
    """Overtime statistics across all employees for a month or year."""

    year: int
    month: int | None
    employee_count: int
    total_target_minutes: int
    total_actual_minutes: int
    total_overtime_minutes: int
    average_overtime_minutes: float
    employees_with_overtime: int
    employees_with_undertime: int
    items: list[EmployeeOvertimeSummary]
