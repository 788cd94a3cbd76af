# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import date, datetime

from pydantic import BaseModel, Field

from worktime.models.enums import BalanceStatus, TransactionSourceType, TransactionType

# ---------------------------------------------------------------------------
# Balance response schemas
# ---------------------------------------------------------------------------


class BalanceResponse(BaseModel):
    """Running overtime balance of an employee on a date."""

    employee_id: uuid.UUID
    as_of: date
    balance_minutes: int


class BalanceStatusResponse(BaseModel):
    """Balance measured against the configured work time account limits."""

    employee_id: uuid.UUID
    balance_minutes: int
    max_plus_minutes: int
    max_minus_minutes: int
    percentage: float
    status: BalanceStatus
    can_take_time_off: bool
    should_reduce_overtime: bool


class PeriodSummaryResponse(BaseModel):
    """Target, actual and overtime minutes for a month or a whole year."""

    employee_id: uuid.UUID
    year: int
    month: int | None
    target_minutes: int
    actual_minutes: int
    overtime_minutes: int
    carryover_minutes: int


class DailyBreakdownItem(BaseModel):
    """Ledger-derived view of one day."""

    date: date
    target_minutes: int
    worked_minutes: int
    credit_minutes: int
    correction_minutes: int
    overtime_minutes: int
    balance_minutes: int
    is_holiday: bool
    is_weekend: bool
    absence_type: str | None = None


class DailyBreakdownResponse(BaseModel):
    """Daily view over a date range."""

    employee_id: uuid.UUID
    items: list[DailyBreakdownItem]


class MonthlyHistoryItem(BaseModel):
    """One month of the overtime history."""

    month: str
    earned_minutes: int
    compensation_minutes: int
    correction_minutes: int
    carryover_minutes: int
    balance_minutes: int
    balance_change_minutes: int


class OvertimeHistoryResponse(BaseModel):
    """Monthly overtime history for a year."""

    employee_id: uuid.UUID
    year: int
    items: list[MonthlyHistoryItem]


class YearBreakdownResponse(BaseModel):
    """Carryover from the previous year plus overtime earned this year."""

    employee_id: uuid.UUID
    year: int
    carryover_minutes: int
    earned_minutes: int
    total_minutes: int


# ---------------------------------------------------------------------------
# Ledger response schemas
# ---------------------------------------------------------------------------


class TransactionResponse(BaseModel):
    """A single overtime ledger transaction."""

    id: uuid.UUID
    date: date
    seq: int
    transaction_type: TransactionType
    minutes: int
    balance_before_minutes: int
    balance_after_minutes: int
    source_type: TransactionSourceType
    source_id: str | None
    description: str | None
    created_at: datetime


class TransactionListResponse(BaseModel):
    """Paginated ledger transactions."""

    items: list[TransactionResponse]
    total: int


class RebuildLedgerRequest(BaseModel):
    """Request body for rebuilding an employee's ledger over a date range."""

    start_date: date
    end_date: date


class RebuildLedgerResponse(BaseModel):
    """Outcome of a ledger rebuild."""

    employee_id: uuid.UUID
    start_date: date
    end_date: date
    transactions_written: int
    months_updated: list[str] = Field(default_factory=list)
    balance_minutes: int
