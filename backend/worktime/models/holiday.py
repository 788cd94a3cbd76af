# ruff: noqa: TC003
from __future__ import annotations

import datetime

from sqlmodel import Field

from worktime.models.base import UUIDBase


class Holiday(UUIDBase, table=True):
    """A public holiday. Forces the target time of its date to zero."""

    __tablename__ = "holiday"

    date: datetime.date = Field(unique=True, index=True)
    name: str = Field(max_length=255)
    federal: bool = Field(default=True)  # False: regional holiday only
