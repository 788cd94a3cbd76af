# ruff: noqa: TC003
from __future__ import annotations

import datetime
import uuid

import sqlalchemy as sa
from sqlmodel import Field

from worktime.models.base import TimestampMixin, UUIDBase


class OvertimeTransaction(UUIDBase, TimestampMixin, table=True):
    """One signed movement of an employee's overtime balance.

    Rows are ordered by ``(date, seq)``. Everything except the yearly
    carryover seed (``seq`` 0 on January 1st) is regenerated on rebuild.
    """

    __tablename__ = "overtime_transaction"
    __table_args__ = (
        sa.Index("ix_transaction_employee_date", "employee_id", "date"),
        sa.UniqueConstraint("employee_id", "date", "seq", name="uq_transaction_employee_date_seq"),
    )

    employee_id: uuid.UUID = Field(
        sa_column=sa.Column(sa.Uuid, sa.ForeignKey("employee.id", ondelete="CASCADE"), nullable=False),
    )
    date: datetime.date
    seq: int = Field(default=0)
    transaction_type: str = Field(max_length=50)
    minutes: int
    balance_before_minutes: int = Field(default=0)
    balance_after_minutes: int = Field(default=0)
    source_type: str = Field(max_length=50)
    source_id: str | None = Field(default=None, max_length=255)
    description: str | None = Field(default=None, max_length=500)
