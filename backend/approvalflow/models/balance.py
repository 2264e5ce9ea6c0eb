# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

import sqlalchemy as sa
from sqlmodel import Field

from approvalflow.models.base import QUANTITY_TYPE, UUIDBase, now_utc


class LeaveBalance(UUIDBase, table=True):
    """Per-employee PTO balance, in days.

    current_balance = total_accrued + rollover_from_previous_year - total_used
    """

    __tablename__ = "leave_balance"

    employee_id: uuid.UUID = Field(unique=True, index=True)
    current_balance: Decimal = Field(default=Decimal(0), sa_type=QUANTITY_TYPE)
    total_accrued: Decimal = Field(default=Decimal(0), sa_type=QUANTITY_TYPE)
    total_used: Decimal = Field(default=Decimal(0), sa_type=QUANTITY_TYPE)
    rollover_from_previous_year: Decimal = Field(default=Decimal(0), sa_type=QUANTITY_TYPE)
    last_accrual_date: date | None = None
    version: int = Field(default=1)
    updated_at: datetime = Field(
        default_factory=now_utc,
        sa_type=sa.DateTime(timezone=True),  # ty: ignore[invalid-argument-type]
    )


class ExpenseBudget(UUIDBase, table=True):
    """Per-employee annual budget for one expense category."""

    __tablename__ = "expense_budget"
    __table_args__ = (
        sa.UniqueConstraint("employee_id", "category", "fiscal_year", name="uq_budget_employee_category_year"),
    )

    employee_id: uuid.UUID = Field(index=True)
    category: str = Field(max_length=50)
    fiscal_year: int
    budget_limit: Decimal = Field(sa_type=QUANTITY_TYPE)
    amount_used: Decimal = Field(default=Decimal(0), sa_type=QUANTITY_TYPE)
    version: int = Field(default=1)
    updated_at: datetime = Field(
        default_factory=now_utc,
        sa_type=sa.DateTime(timezone=True),  # ty: ignore[invalid-argument-type]
    )
