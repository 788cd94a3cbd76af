# ruff: noqa: TC003
from __future__ import annotations

import datetime
import uuid

import sqlalchemy as sa
from sqlmodel import Field

from worktime.models.base import TimestampMixin, UUIDBase
from worktime.models.enums import AbsenceStatus


class AbsenceRequest(UUIDBase, TimestampMixin, table=True):
    """An absence range. Only approved ranges affect the ledger."""

    __tablename__ = "absence_request"
    __table_args__ = (sa.Index("ix_absence_employee_range", "employee_id", "start_date", "end_date"),)

    employee_id: uuid.UUID = Field(
        sa_column=sa.Column(sa.Uuid, sa.ForeignKey("employee.id", ondelete="CASCADE"), nullable=False),
    )
    absence_type: str = Field(max_length=50)
    status: str = Field(default=AbsenceStatus.PENDING, max_length=50)
    start_date: datetime.date
    end_date: datetime.date
    reason: str | None = Field(default=None, max_length=1000)
