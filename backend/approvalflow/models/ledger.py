# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any

import sqlalchemy as sa
from sqlmodel import Field

from approvalflow.models.base import QUANTITY_TYPE, UUIDBase, now_utc

PTO_RESOURCE = "pto"


def expense_resource(category: str) -> str:
    """Ledger resource key for an expense category budget."""
    return f"expense:{category}"


class LedgerEntry(UUIDBase, table=True):
    """Append-only entry recording every balance- or budget-affecting event."""

    __tablename__ = "ledger_entry"
    __table_args__ = (
        sa.Index("ix_ledger_employee_resource", "employee_id", "resource"),
        sa.UniqueConstraint("source_type", "source_id", "entry_type", name="uq_ledger_idempotency"),
    )

    employee_id: uuid.UUID = Field(index=True)
    resource: str = Field(max_length=80)
    entry_type: str = Field(max_length=50)
    amount: Decimal = Field(sa_type=QUANTITY_TYPE)
    source_type: str = Field(max_length=50)
    source_id: str = Field(max_length=255)
    metadata_json: dict[str, Any] | None = Field(default=None, sa_type=sa.JSON)
    created_at: datetime = Field(
        default_factory=now_utc,
        sa_type=sa.DateTime(timezone=True),  # ty: ignore[invalid-argument-type]
    )
