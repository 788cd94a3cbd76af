# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from worktime.models.base import now_utc


class OvertimeBalance(SQLModel, table=True):
    """Monthly target/actual summary derived from the ledger on every rebuild."""

    __tablename__ = "overtime_balance"
    __table_args__ = (sa.PrimaryKeyConstraint("employee_id", "month"),)

    employee_id: uuid.UUID = Field(
        sa_column=sa.Column(sa.Uuid, sa.ForeignKey("employee.id", ondelete="CASCADE"), nullable=False),
    )
    month: str = Field(max_length=7)  # "YYYY-MM"
    target_minutes: int = Field(default=0, sa_column_kwargs={"server_default": "0"})
    actual_minutes: int = Field(default=0, sa_column_kwargs={"server_default": "0"})
    overtime_minutes: int = Field(default=0, sa_column_kwargs={"server_default": "0"})
    carryover_minutes: int = Field(default=0, sa_column_kwargs={"server_default": "0"})
    updated_at: datetime = Field(  # type: ignore[call-overload]
        default_factory=now_utc,
        sa_type=sa.DateTime(timezone=True),
        sa_column_kwargs={"server_default": sa.func.now(), "onupdate": sa.func.now()},
    )
