# ruff: noqa: TC003
from __future__ import annotations

import datetime
import uuid

import sqlalchemy as sa
from sqlmodel import Field

from worktime.models.base import TimestampMixin, UUIDBase


class OvertimeCorrection(UUIDBase, TimestampMixin, table=True):
    """A manual, signed adjustment of an employee's overtime."""

    __tablename__ = "overtime_correction"
    __table_args__ = (sa.Index("ix_correction_employee_date", "employee_id", "date"),)

    employee_id: uuid.UUID = Field(
        sa_column=sa.Column(sa.Uuid, sa.ForeignKey("employee.id", ondelete="CASCADE"), nullable=False),
    )
    date: datetime.date
    minutes: int
    reason: str = Field(max_length=1000)
    created_by: uuid.UUID
