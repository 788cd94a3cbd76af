# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class RolloverResponse(BaseModel):
    """Result of a year-end rollover."""

    year: int
    processed_count: int


class RolloverPreviewItem(BaseModel):
    """Carryover an employee would receive."""

    employee_id: uuid.UUID
    employee_name: str
    carryover_minutes: int
    warnings: list[str] = Field(default_factory=list)


class RolloverPreviewResponse(BaseModel):
    """Read-only preview of a rollover into ``year``."""

    year: int
    employee_count: int
    total_carryover_minutes: int
    items: list[RolloverPreviewItem]


class RolloverHistoryItem(BaseModel):
    """A past rollover run."""

    year: int
    processed_count: int
    actor_id: uuid.UUID
    created_at: datetime


class RolloverHistoryResponse(BaseModel):
    """All recorded rollover runs, newest first."""

    items: list[RolloverHistoryItem]
    total: int
