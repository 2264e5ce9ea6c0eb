# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Query, status

from approvalflow.api.deps import AdminDep, ContextDep
from approvalflow.db import SessionDep
from approvalflow.schemas.balance import (
    BalanceResponse,
    BudgetListResponse,
    CreateAdjustmentRequest,
    LedgerEntryResponse,
    LedgerListResponse,
)
from approvalflow.services import ledger as ledger_service
from approvalflow.services.employee import resolve_subject

employee_ledger_router = APIRouter(
    prefix="/employees/{employee_id}",
    tags=["balances"],
)

adjustment_router = APIRouter(
    prefix="/adjustments",
    tags=["balances"],
)


@employee_ledger_router.get("/balance", response_model=BalanceResponse)
async def get_balance(
    employee_id: uuid.UUID,
    session: SessionDep,
    ctx: ContextDep,
) -> BalanceResponse:
    """Get an employee's PTO balance."""
    employee = await resolve_subject(ctx, employee_id)
    return await ledger_service.get_balance(session, employee.id)


@employee_ledger_router.get("/budgets", response_model=BudgetListResponse)
async def list_budgets(
    employee_id: uuid.UUID,
    session: SessionDep,
    ctx: ContextDep,
    fiscal_year: int | None = Query(default=None, ge=2000, le=2100),
) -> BudgetListResponse:
    """Get an employee's expense budgets for a fiscal year (current year by default)."""
    employee = await resolve_subject(ctx, employee_id)
    return await ledger_service.list_budgets(session, employee.id, fiscal_year)


@employee_ledger_router.get("/ledger", response_model=LedgerListResponse)
async def get_employee_ledger(
    employee_id: uuid.UUID,
    session: SessionDep,
    ctx: ContextDep,
    resource: str | None = Query(default=None, description="'pto' or 'expense:<category>'"),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> LedgerListResponse:
    """Get paginated ledger entries for an employee."""
    employee = await resolve_subject(ctx, employee_id)
    return await ledger_service.get_employee_ledger(session, employee.id, resource, offset, limit)


@adjustment_router.post("", response_model=LedgerEntryResponse, status_code=status.HTTP_201_CREATED)
async def create_adjustment(
    payload: CreateAdjustmentRequest,
    session: SessionDep,
    ctx: AdminDep,
) -> LedgerEntryResponse:
    """Adjust a PTO balance or expense budget (admin only)."""
    return await ledger_service.create_adjustment(session, ctx, payload)
