from sqlmodel import SQLModel

from worktime.models.absence import AbsenceRequest
from worktime.models.audit import AuditLog
from worktime.models.balance import OvertimeBalance
from worktime.models.base import TimestampMixin, UUIDBase
from worktime.models.correction import OvertimeCorrection
from worktime.models.employee import Employee
from worktime.models.enums import (
    AbsenceStatus,
    AbsenceType,
    AuditAction,
    AuditEntityType,
    BalanceStatus,
    TransactionSourceType,
    TransactionType,
)
from worktime.models.holiday import Holiday
from worktime.models.ledger import OvertimeTransaction
from worktime.models.time_entry import TimeEntry

__all__ = [
    "AbsenceRequest",
    "AbsenceStatus",
    "AbsenceType",
    "AuditAction",
    "AuditEntityType",
    "AuditLog",
    "BalanceStatus",
    "Employee",
    "Holiday",
    "OvertimeBalance",
    "OvertimeCorrection",
    "OvertimeTransaction",
    "SQLModel",
    "TimeEntry",
    "TimestampMixin",
    "TransactionSourceType",
    "TransactionType",
    "UUIDBase",
]
