from sqlmodel import SQLModel

from approvalflow.models.audit import AuditLog
from approvalflow.models.balance import ExpenseBudget, LeaveBalance
from approvalflow.models.base import TimestampMixin, UUIDBase
from approvalflow.models.calendar import CalendarEvent
from approvalflow.models.enums import (
    ActorType,
    AuditAction,
    AuditEntityType,
    CalendarEventKind,
    Decision,
    EmployeeLevel,
    ExpenseCategory,
    LedgerEntryType,
    LedgerSourceType,
    NotificationKind,
    Recommendation,
    RequestStatus,
    RequestType,
    ViolationCode,
)
from approvalflow.models.ledger import LedgerEntry
from approvalflow.models.request import ExpenseRequest, PTORequest

__all__ = [
    "ActorType",
    "AuditAction",
    "AuditEntityType",
    "AuditLog",
    "CalendarEvent",
    "CalendarEventKind",
    "Decision",
    "EmployeeLevel",
    "ExpenseBudget",
    "ExpenseCategory",
    "ExpenseRequest",
    "LeaveBalance",
    "LedgerEntry",
    "LedgerEntryType",
    "LedgerSourceType",
    "NotificationKind",
    "PTORequest",
    "Recommendation",
    "RequestStatus",
    "RequestType",
    "SQLModel",
    "TimestampMixin",
    "UUIDBase",
    "ViolationCode",
]
