# ruff: noqa: TC003
from __future__ import annotations

import datetime
import uuid

import sqlalchemy as sa
from sqlmodel import Field

from worktime.models.base import TimestampMixin, UUIDBase


class TimeEntry(UUIDBase, TimestampMixin, table=True):
    """A raw clock entry. Owned by the time tracking service, read-only here."""

    __tablename__ = "time_entry"
    __table_args__ = (sa.Index("ix_time_entry_employee_date", "employee_id", "date"),)

    employee_id: uuid.UUID = Field(
        sa_column=sa.Column(sa.Uuid, sa.ForeignKey("employee.id", ondelete="CASCADE"), nullable=False),
    )
    date: datetime.date
    start_time: datetime.time
    end_time: datetime.time
    break_minutes: int = Field(default=0, ge=0)
    note: str | None = Field(default=None, max_length=500)
