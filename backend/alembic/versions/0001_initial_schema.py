"""initial schema

Revision ID: 0001
Revises:
Create Date: 2025-11-03
"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

QUANTITY = sa.Numeric(12, 2)


def _request_columns() -> list[sa.Column]:
    return [
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("employee_id", sa.Uuid(), nullable=False),
        sa.Column("manager_id", sa.Uuid(), nullable=True),
        sa.Column("status", sa.String(length=50), nullable=False),
        sa.Column("escalation_reason", sa.String(), nullable=True),
        sa.Column("violations_json", sa.JSON(), nullable=True),
        sa.Column("decided_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("decided_by", sa.Uuid(), nullable=True),
        sa.Column("decision_note", sa.String(), nullable=True),
    ]


def _request_indexes(table: str) -> None:
    op.create_index(f"ix_{table}_created_at", table, ["created_at"])
    op.create_index(f"ix_{table}_employee_id", table, ["employee_id"])
    op.create_index(f"ix_{table}_manager_id", table, ["manager_id"])
    op.create_index(f"ix_{table}_status", table, ["status"])
    op.create_index(f"ix_{table}_employee_status_created", table, ["employee_id", "status", "created_at"])


def upgrade() -> None:
    op.create_table(
        "pto_request",
        *_request_columns(),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("total_days", QUANTITY, nullable=False),
        sa.Column("reason", sa.String(), nullable=True),
    )
    _request_indexes("pto_request")

    op.create_table(
        "expense_request",
        *_request_columns(),
        sa.Column("category", sa.String(length=50), nullable=False),
        sa.Column("amount", QUANTITY, nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("description", sa.String(), nullable=False),
        sa.Column("expense_date", sa.Date(), nullable=True),
    )
    _request_indexes("expense_request")

    op.create_table(
        "leave_balance",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("employee_id", sa.Uuid(), nullable=False),
        sa.Column("current_balance", QUANTITY, nullable=False),
        sa.Column("total_accrued", QUANTITY, nullable=False),
        sa.Column("total_used", QUANTITY, nullable=False),
        sa.Column("rollover_from_previous_year", QUANTITY, nullable=False),
        sa.Column("last_accrual_date", sa.Date(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_leave_balance_employee_id", "leave_balance", ["employee_id"], unique=True)

    op.create_table(
        "expense_budget",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("employee_id", sa.Uuid(), nullable=False),
        sa.Column("category", sa.String(length=50), nullable=False),
        sa.Column("fiscal_year", sa.Integer(), nullable=False),
        sa.Column("budget_limit", QUANTITY, nullable=False),
        sa.Column("amount_used", QUANTITY, nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("employee_id", "category", "fiscal_year", name="uq_budget_employee_category_year"),
    )
    op.create_index("ix_expense_budget_employee_id", "expense_budget", ["employee_id"])

    op.create_table(
        "ledger_entry",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("employee_id", sa.Uuid(), nullable=False),
        sa.Column("resource", sa.String(length=80), nullable=False),
        sa.Column("entry_type", sa.String(length=50), nullable=False),
        sa.Column("amount", QUANTITY, nullable=False),
        sa.Column("source_type", sa.String(length=50), nullable=False),
        sa.Column("source_id", sa.String(length=255), nullable=False),
        sa.Column("metadata_json", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("source_type", "source_id", "entry_type", name="uq_ledger_idempotency"),
    )
    op.create_index("ix_ledger_entry_employee_id", "ledger_entry", ["employee_id"])
    op.create_index("ix_ledger_employee_resource", "ledger_entry", ["employee_id", "resource"])

    op.create_table(
        "company_calendar",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("kind", sa.String(length=20), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
    )
    op.create_index("ix_calendar_kind_dates", "company_calendar", ["kind", "start_date", "end_date"])

    op.create_table(
        "audit_log",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("entity_type", sa.String(length=50), nullable=False),
        sa.Column("entity_id", sa.Uuid(), nullable=False),
        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("actor_id", sa.Uuid(), nullable=True),
        sa.Column("actor_type", sa.String(length=20), nullable=False),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_audit_entity", "audit_log", ["entity_type", "entity_id"])
    op.create_index("ix_audit_log_created_at", "audit_log", ["created_at"])


def downgrade() -> None:
    op.drop_table("audit_log")
    op.drop_table("company_calendar")
    op.drop_table("ledger_entry")
    op.drop_table("expense_budget")
    op.drop_table("leave_balance")
    op.drop_table("expense_request")
    op.drop_table("pto_request")
