# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any

import sqlalchemy as sa
from sqlmodel import Field

from approvalflow.models.base import QUANTITY_TYPE, TimestampMixin, UUIDBase
from approvalflow.models.enums import RequestStatus


class RequestBase(UUIDBase, TimestampMixin):
    """Column shape shared by the PTO and expense request tables."""

    employee_id: uuid.UUID = Field(index=True)
    manager_id: uuid.UUID | None = Field(default=None, index=True)
    status: str = Field(default=RequestStatus.PENDING_APPROVAL, max_length=50, index=True)
    escalation_reason: str | None = None
    violations_json: list[dict[str, Any]] | None = Field(default=None, sa_type=sa.JSON)
    decided_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    decided_by: uuid.UUID | None = None
    decision_note: str | None = None


class PTORequest(RequestBase, table=True):
    """A time-off request measured in business days."""

    __tablename__ = "pto_request"
    __table_args__ = (sa.Index("ix_pto_request_employee_status_created", "employee_id", "status", "created_at"),)

    start_date: date
    end_date: date
    total_days: Decimal = Field(sa_type=QUANTITY_TYPE)
    reason: str | None = None


class ExpenseRequest(RequestBase, table=True):
    """An expense reimbursement request charged against a category budget."""

    __tablename__ = "expense_request"
    __table_args__ = (
        sa.Index("ix_expense_request_employee_status_created", "employee_id", "status", "created_at"),
    )

    category: str = Field(max_length=50)
    amount: Decimal = Field(sa_type=QUANTITY_TYPE)
    currency: str = Field(default="USD", max_length=3)
    description: str
    expense_date: date | None = None


AnyRequest = PTORequest | ExpenseRequest
