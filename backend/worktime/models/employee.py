# ruff: noqa: TC003
from __future__ import annotations

import datetime

import sqlalchemy as sa
from sqlmodel import Field

from worktime.models.base import TimestampMixin, UUIDBase

WEEKDAY_NAMES = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


class Employee(UUIDBase, TimestampMixin, table=True):
    """Employee master data consumed by the ledger engine.

    ``work_schedule`` maps weekday names to owed minutes. When present it fully
    replaces the ``weekly_target_minutes / 5`` fallback, including weekend work
    and weekdays deliberately set to 0.
    """

    __tablename__ = "employee"

    first_name: str = Field(max_length=100)
    last_name: str = Field(max_length=100)
    email: str = Field(max_length=255)
    weekly_target_minutes: int = Field(default=2400, ge=0)
    work_schedule: dict[str, int] | None = Field(default=None, sa_type=sa.JSON)
    hire_date: datetime.date
    end_date: datetime.date | None = None
    is_active: bool = Field(default=True, index=True)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
