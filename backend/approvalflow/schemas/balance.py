# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field, field_validator

from approvalflow.models.enums import ExpenseCategory, LedgerEntryType, LedgerSourceType

# ---------------------------------------------------------------------------
# Balance and budget response schemas
# ---------------------------------------------------------------------------


class BalanceResponse(BaseModel):
    """PTO balance for an employee, in days."""

    employee_id: uuid.UUID
    current_balance: Decimal
    total_accrued: Decimal
    total_used: Decimal
    rollover_from_previous_year: Decimal
    last_accrual_date: date | None
    updated_at: datetime | None


class BudgetResponse(BaseModel):
    """Annual budget for one expense category."""

    category: ExpenseCategory
    fiscal_year: int
    budget_limit: Decimal
    amount_used: Decimal
    remaining: Decimal


class BudgetListResponse(BaseModel):
    items: list[BudgetResponse]
    total: int


# ---------------------------------------------------------------------------
# Ledger schemas
# ---------------------------------------------------------------------------


class LedgerEntryResponse(BaseModel):
    """A single ledger entry."""

    id: uuid.UUID
    employee_id: uuid.UUID
    resource: str
    entry_type: LedgerEntryType
    amount: Decimal
    source_type: LedgerSourceType
    source_id: str
    metadata_json: dict[str, Any] | None
    created_at: datetime


class LedgerListResponse(BaseModel):
    """Paginated ledger entries."""

    items: list[LedgerEntryResponse]
    total: int


class CreateAdjustmentRequest(BaseModel):
    """Request body for an admin adjustment to a PTO balance or an expense budget."""

    employee_id: uuid.UUID
    category: ExpenseCategory | None = Field(
        default=None,
        description="Expense category to adjust; omit to adjust the PTO balance",
    )
    amount: Decimal = Field(description="Signed amount: positive to add, negative to deduct")
    reason: str = Field(min_length=1, max_length=1000)

    @field_validator("amount")
    @classmethod
    def _non_zero(cls, value: Decimal) -> Decimal:
        if value == 0:
            msg = "amount must be non-zero"
            raise ValueError(msg)
        return value
