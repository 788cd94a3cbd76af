# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date

from pydantic import BaseModel, Field


class HolidayInfo(BaseModel):
    """A holiday as reported by a holiday provider."""

    date: date
    name: str
    federal: bool = True


class CreateHolidayRequest(BaseModel):
    """Request body for creating a public holiday."""

    date: date
    name: str = Field(min_length=1, max_length=255)
    federal: bool = True


class HolidayResponse(BaseModel):
    """Response schema for a public holiday."""

    id: uuid.UUID
    date: date
    name: str
    federal: bool


class HolidayListResponse(BaseModel):
    """Paginated list of holidays."""

    items: list[HolidayResponse]
    total: int


class HolidaySyncResponse(BaseModel):
    """Result of loading a year's holidays from the external feed."""

    year: int
    fetched: int
    total: int
