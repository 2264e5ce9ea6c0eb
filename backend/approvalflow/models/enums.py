from __future__ import annotations

import enum


class RequestType(enum.StrEnum):
    """Kind of employee request routed through the engine."""

    PTO = "pto"
    EXPENSE = "expense"


class RequestStatus(enum.StrEnum):
    """State machine for PTO and expense requests."""

    PENDING_APPROVAL = "pending_approval"
    AUTO_APPROVED = "auto_approved"
    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"


class EmployeeLevel(enum.StrEnum):
    """Two-tier role used for auto-approval thresholds and accrual rates."""

    STANDARD = "standard"
    ELEVATED = "elevated"


class CalendarEventKind(enum.StrEnum):
    HOLIDAY = "holiday"
    BLACKOUT = "blackout"


class ExpenseCategory(enum.StrEnum):
    """Expense categories, each with its own annual budget."""

    TRAVEL = "travel"
    MEALS = "meals"
    HOME_OFFICE = "home_office"
    TRAINING = "training"
    SOFTWARE = "software"
    SUPPLIES = "supplies"


class Recommendation(enum.StrEnum):
    """Outcome proposed by the policy rule evaluator."""

    AUTO_APPROVE = "AUTO_APPROVE"
    ESCALATE = "ESCALATE"
    DENY = "DENY"


class ViolationCode(enum.StrEnum):
    INSUFFICIENT_BALANCE = "insufficient_balance"
    BLACKOUT_CONFLICT = "blackout_conflict"


class Decision(enum.StrEnum):
    """Manager decision on an escalated request."""

    APPROVE = "approve"
    DENY = "deny"


class LedgerEntryType(enum.StrEnum):
    """Type of ledger entry affecting a balance or budget."""

    USAGE = "usage"
    ADJUSTMENT = "adjustment"
    ACCRUAL = "accrual"
    CARRYOVER = "carryover"
    EXPIRATION = "expiration"


class LedgerSourceType(enum.StrEnum):
    """Origin of a ledger entry."""

    REQUEST = "request"
    ADMIN = "admin"
    SYSTEM = "system"


class AuditEntityType(enum.StrEnum):
    """Entity type recorded in the audit log."""

    PTO_REQUEST = "pto_request"
    EXPENSE_REQUEST = "expense_request"
    LEAVE_BALANCE = "leave_balance"
    EXPENSE_BUDGET = "expense_budget"
    CALENDAR_EVENT = "calendar_event"


class AuditAction(enum.StrEnum):
    """Action recorded in the audit log."""

    AUTO_APPROVED = "auto_approved"
    ESCALATED = "escalated"
    APPROVED = "approved"
    DENIED = "denied"
    ADJUSTED = "adjusted"
    ACCRUED = "accrued"
    ROLLED_OVER = "rolled_over"
    CREATED = "created"
    DELETED = "deleted"


class ActorType(enum.StrEnum):
    """Who performed an audited action."""

    USER = "user"
    SYSTEM = "system"
    AI_AGENT = "ai_agent"


class NotificationKind(enum.StrEnum):
    ESCALATION = "escalation"
    DECISION = "decision"
