# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from approvalflow.models.enums import (
    ExpenseCategory,
    Recommendation,
    RequestStatus,
    RequestType,
    ViolationCode,
)

# ---------------------------------------------------------------------------
# Request drafts
# ---------------------------------------------------------------------------


class PTODraft(BaseModel):
    """A time-off request before it is persisted.

    Date ordering is checked by the calendar engine, not here, so that a reversed
    range surfaces as InvalidRangeError.
    """

    employee_id: uuid.UUID | None = Field(default=None, description="Defaults to the acting user")
    start_date: date
    end_date: date
    reason: str | None = Field(default=None, max_length=1000)


class ExpenseDraft(BaseModel):
    """An expense reimbursement request before it is persisted."""

    employee_id: uuid.UUID | None = Field(default=None, description="Defaults to the acting user")
    category: ExpenseCategory
    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    currency: str = Field(default="USD", min_length=3, max_length=3)
    description: str = Field(min_length=1, max_length=1000)
    expense_date: date | None = None


# ---------------------------------------------------------------------------
# Evaluator output
# ---------------------------------------------------------------------------


class Violation(BaseModel):
    """A policy rule the draft breaks. Returned as data, never raised."""

    code: ViolationCode
    message: str


class ValidationResult(BaseModel):
    """Decision proposed by the policy rule evaluator."""

    request_type: RequestType
    is_valid: bool
    can_auto_approve: bool
    requires_escalation: bool
    violations: list[Violation]
    recommendation: Recommendation
    quantity_requested: Decimal
    available: Decimal
    auto_approval_limit: Decimal
    weekend_days: int | None = None
    holidays: list[date] | None = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class RequestResponse(BaseModel):
    """A PTO or expense request. Type-specific fields are None for the other type."""

    id: uuid.UUID
    request_type: RequestType
    employee_id: uuid.UUID
    manager_id: uuid.UUID | None
    status: RequestStatus
    escalation_reason: str | None
    violations: list[Violation]
    decided_at: datetime | None
    decided_by: uuid.UUID | None
    decision_note: str | None
    created_at: datetime
    updated_at: datetime
    # PTO
    start_date: date | None = None
    end_date: date | None = None
    total_days: Decimal | None = None
    reason: str | None = None
    # Expense
    category: ExpenseCategory | None = None
    amount: Decimal | None = None
    currency: str | None = None
    description: str | None = None
    expense_date: date | None = None


class RequestListResponse(BaseModel):
    """List of requests, newest first."""

    items: list[RequestResponse]
    total: int


class SubmissionResponse(BaseModel):
    """Result of submitting a request: the persisted record and the decision behind it."""

    request: RequestResponse
    validation: ValidationResult
    message: str

