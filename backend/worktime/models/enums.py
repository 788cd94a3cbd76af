from __future__ import annotations

import enum


class AbsenceType(enum.StrEnum):
    """Kind of absence an employee can request."""

    VACATION = "vacation"
    SICK = "sick"
    UNPAID = "unpaid"
    COMPENSATION = "compensation"
    SPECIAL = "special"


class AbsenceStatus(enum.StrEnum):
    """Approval state of an absence request."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class TransactionType(enum.StrEnum):
    """Type of overtime ledger transaction."""

    EARNED = "earned"
    VACATION_CREDIT = "vacation_credit"
    SICK_CREDIT = "sick_credit"
    COMPENSATION_CREDIT = "compensation_credit"
    SPECIAL_CREDIT = "special_credit"
    UNPAID_ADJUSTMENT = "unpaid_adjustment"
    CORRECTION = "correction"
    CARRYOVER = "carryover"


class TransactionSourceType(enum.StrEnum):
    """Origin of a ledger transaction."""

    TIME_ENTRY = "time_entry"
    ABSENCE = "absence"
    CORRECTION = "correction"
    ROLLOVER = "rollover"


class AuditEntityType(enum.StrEnum):
    """Entity type recorded in the audit log."""

    LEDGER = "LEDGER"
    ROLLOVER = "ROLLOVER"
    HOLIDAY = "HOLIDAY"


class AuditAction(enum.StrEnum):
    """Action recorded in the audit log."""

    CREATE = "CREATE"
    DELETE = "DELETE"
    REBUILD = "REBUILD"
    ROLLOVER = "ROLLOVER"
    SYNC = "SYNC"


class BalanceStatus(enum.StrEnum):
    """Balance position relative to the work time account limits."""

    CRITICAL_LOW = "critical_low"
    WARNING_LOW = "warning_low"
    NORMAL = "normal"
    WARNING_HIGH = "warning_high"
    CRITICAL_HIGH = "critical_high"


# Paid absences are neutralized with a credit leg of the matching type.
ABSENCE_CREDIT_TYPES: dict[AbsenceType, TransactionType] = {
    AbsenceType.VACATION: TransactionType.VACATION_CREDIT,
    AbsenceType.SICK: TransactionType.SICK_CREDIT,
    AbsenceType.COMPENSATION: TransactionType.COMPENSATION_CREDIT,
    AbsenceType.SPECIAL: TransactionType.SPECIAL_CREDIT,
    AbsenceType.UNPAID: TransactionType.UNPAID_ADJUSTMENT,
}

CREDIT_TRANSACTION_TYPES = frozenset(
    {
        TransactionType.VACATION_CREDIT,
        TransactionType.SICK_CREDIT,
        TransactionType.COMPENSATION_CREDIT,
        TransactionType.SPECIAL_CREDIT,
        TransactionType.UNPAID_ADJUSTMENT,
    }
)

# Everything except the carryover seed is regenerated by a ledger rebuild.
REGENERABLE_TRANSACTION_TYPES = frozenset(t for t in TransactionType if t != TransactionType.CARRYOVER)