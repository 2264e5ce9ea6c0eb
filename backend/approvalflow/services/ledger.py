# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, TypeVar

from sqlalchemy import func, select, update
from sqlmodel import col

from approvalflow.config import get_settings
from approvalflow.db import commit_or_raise, storage_guard
from approvalflow.exceptions import ConflictError, ValidationError
from approvalflow.models.balance import ExpenseBudget, LeaveBalance
from approvalflow.models.base import now_utc
from approvalflow.models.enums import (
    AuditAction,
    AuditEntityType,
    ExpenseCategory,
    LedgerEntryType,
    LedgerSourceType,
)
from approvalflow.models.ledger import PTO_RESOURCE, LedgerEntry, expense_resource
from approvalflow.schemas.balance import (
    BalanceResponse,
    BudgetListResponse,
    BudgetResponse,
    LedgerEntryResponse,
    LedgerListResponse,
)
from approvalflow.services.audit import model_to_audit_dict, write_audit_log

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from sqlalchemy.ext.asyncio import AsyncSession

    from approvalflow.models.request import ExpenseRequest, PTORequest
    from approvalflow.schemas.auth import RequestContext
    from approvalflow.schemas.balance import CreateAdjustmentRequest

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _build_ledger_entry_response(entry: LedgerEntry) -> LedgerEntryResponse:
    return LedgerEntryResponse(
        id=entry.id,
        employee_id=entry.employee_id,
        resource=entry.resource,
        entry_type=LedgerEntryType(entry.entry_type),
        amount=entry.amount,
        source_type=LedgerSourceType(entry.source_type),
        source_id=entry.source_id,
        metadata_json=entry.metadata_json,
        created_at=entry.created_at,
    )


def _build_budget_response(budget: ExpenseBudget) -> BudgetResponse:
    return BudgetResponse(
        category=ExpenseCategory(budget.category),
        fiscal_year=budget.fiscal_year,
        budget_limit=budget.budget_limit,
        amount_used=budget.amount_used,
        remaining=budget.budget_limit - budget.amount_used,
    )


def default_budget_limit(category: ExpenseCategory) -> Decimal:
    """Configured annual limit for a category, zero when unconfigured."""
    return Decimal(get_settings().expense_category_budgets.get(category.value, Decimal(0)))


def fiscal_year_of(expense_date: date | None, filed_at: datetime | None = None) -> int:
    """Fiscal year an expense is charged to: the expense date, else the UTC filing date.

    Previews pass no filing date and use the current UTC time, so a preview and the
    submission that follows it resolve the same year.
    """
    if expense_date is not None:
        return expense_date.year
    return (filed_at if filed_at is not None else now_utc()).year


def expense_fiscal_year(request: ExpenseRequest) -> int:
    return fiscal_year_of(request.expense_date, request.created_at)


def add_ledger_entry(
    session: AsyncSession,
    *,
    employee_id: uuid.UUID,
    resource: str,
    entry_type: LedgerEntryType,
    amount: Decimal,
    source_type: LedgerSourceType,
    source_id: str,
    metadata: dict[str, Any] | None = None,
) -> LedgerEntry:
    """Append a ledger entry to the caller's transaction."""
    entry = LedgerEntry(
        employee_id=employee_id,
        resource=resource,
        entry_type=entry_type.value,
        amount=amount,
        source_type=source_type.value,
        source_id=source_id,
        metadata_json=metadata,
    )
    session.add(entry)
    return entry


async def get_leave_balance(session: AsyncSession, employee_id: uuid.UUID) -> LeaveBalance | None:
    """Fetch the current balance row, bypassing any stale identity-map copy."""
    result = await session.execute(
        select(LeaveBalance)
        .where(col(LeaveBalance.employee_id) == employee_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_or_create_leave_balance(session: AsyncSession, employee_id: uuid.UUID) -> LeaveBalance:
    """Fetch the balance row, creating an empty one for employees without history."""
    balance = await get_leave_balance(session, employee_id)
    if balance is None:
        balance = LeaveBalance(employee_id=employee_id)
        session.add(balance)
        await session.flush()
    return balance


async def get_expense_budget(
    session: AsyncSession,
    employee_id: uuid.UUID,
    category: ExpenseCategory,
    fiscal_year: int,
) -> ExpenseBudget | None:
    result = await session.execute(
        select(ExpenseBudget)
        .where(
            col(ExpenseBudget.employee_id) == employee_id,
            col(ExpenseBudget.category) == category.value,
            col(ExpenseBudget.fiscal_year) == fiscal_year,
        )
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_or_create_expense_budget(
    session: AsyncSession,
    employee_id: uuid.UUID,
    category: ExpenseCategory,
    fiscal_year: int,
) -> ExpenseBudget:
    """Fetch the budget row, creating it from the configured category limit."""
    budget = await get_expense_budget(session, employee_id, category, fiscal_year)
    if budget is None:
        budget = ExpenseBudget(
            employee_id=employee_id,
            category=category.value,
            fiscal_year=fiscal_year,
            budget_limit=default_budget_limit(category),
        )
        session.add(budget)
        await session.flush()
    return budget


# ---------------------------------------------------------------------------
# Read path
# ---------------------------------------------------------------------------


async def available_pto(session: AsyncSession, employee_id: uuid.UUID) -> Decimal:
    """Days the employee can still take. Zero when no balance row exists yet."""
    balance = await get_leave_balance(session, employee_id)
    return balance.current_balance if balance is not None else Decimal(0)


async def remaining_budget(
    session: AsyncSession,
    employee_id: uuid.UUID,
    category: ExpenseCategory,
    fiscal_year: int,
) -> Decimal:
    """Unspent budget for a category. Falls back to the configured limit when nothing is used."""
    budget = await get_expense_budget(session, employee_id, category, fiscal_year)
    if budget is None:
        return default_budget_limit(category)
    return budget.budget_limit - budget.amount_used


async def get_balance(session: AsyncSession, employee_id: uuid.UUID) -> BalanceResponse:
    """PTO balance for an employee; zeros for employees with no ledger history."""
    balance = await get_leave_balance(session, employee_id)
    if balance is None:
        return BalanceResponse(
            employee_id=employee_id,
            current_balance=Decimal(0),
            total_accrued=Decimal(0),
            total_used=Decimal(0),
            rollover_from_previous_year=Decimal(0),
            last_accrual_date=None,
            updated_at=None,
        )
    return BalanceResponse(
        employee_id=employee_id,
        current_balance=balance.current_balance,
        total_accrued=balance.total_accrued,
        total_used=balance.total_used,
        rollover_from_previous_year=balance.rollover_from_previous_year,
        last_accrual_date=balance.last_accrual_date,
        updated_at=balance.updated_at,
    )


async def list_budgets(
    session: AsyncSession,
    employee_id: uuid.UUID,
    fiscal_year: int | None = None,
) -> BudgetListResponse:
    """Budgets for every category in a fiscal year, defaulting untouched categories."""
    year = fiscal_year if fiscal_year is not None else fiscal_year_of(None)
    result = await session.execute(
        select(ExpenseBudget).where(
            col(ExpenseBudget.employee_id) == employee_id,
            col(ExpenseBudget.fiscal_year) == year,
        )
    )
    stored = {b.category: b for b in result.scalars().all()}

    items: list[BudgetResponse] = []
    for category in ExpenseCategory:
        budget = stored.get(category.value)
        if budget is not None:
            items.append(_build_budget_response(budget))
            continue
        limit = default_budget_limit(category)
        items.append(
            BudgetResponse(
                category=category,
                fiscal_year=year,
                budget_limit=limit,
                amount_used=Decimal(0),
                remaining=limit,
            )
        )
    return BudgetListResponse(items=items, total=len(items))


async def get_employee_ledger(
    session: AsyncSession,
    employee_id: uuid.UUID,
    resource: str | None = None,
    offset: int = 0,
    limit: int = 50,
) -> LedgerListResponse:
    """Paginated ledger entries for an employee, newest first."""
    filters = [col(LedgerEntry.employee_id) == employee_id]
    if resource is not None:
        filters.append(col(LedgerEntry.resource) == resource)

    count_result = await session.execute(select(func.count()).select_from(LedgerEntry).where(*filters))
    total = count_result.scalar_one()

    result = await session.execute(
        select(LedgerEntry).where(*filters).order_by(col(LedgerEntry.created_at).desc()).offset(offset).limit(limit)
    )
    return LedgerListResponse(
        items=[_build_ledger_entry_response(e) for e in result.scalars().all()],
        total=total,
    )


# ---------------------------------------------------------------------------
# Write path: charging approved requests
# ---------------------------------------------------------------------------


async def charge_pto(session: AsyncSession, request: PTORequest) -> None:
    """Deduct an approved PTO request from the leave balance.

    The decrement is a single conditional UPDATE; if the balance no longer covers the
    request, no row matches and ConflictError is raised.
    """
    await get_or_create_leave_balance(session, request.employee_id)
    quantity = request.total_days

    result = await session.execute(
        update(LeaveBalance)
        .where(
            col(LeaveBalance.employee_id) == request.employee_id,
            col(LeaveBalance.current_balance) >= quantity,
        )
        .values(
            current_balance=col(LeaveBalance.current_balance) - quantity,
            total_used=col(LeaveBalance.total_used) + quantity,
            version=col(LeaveBalance.version) + 1,
            updated_at=now_utc(),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise ConflictError(f"Leave balance changed; {quantity} days no longer available")

    add_ledger_entry(
        session,
        employee_id=request.employee_id,
        resource=PTO_RESOURCE,
        entry_type=LedgerEntryType.USAGE,
        amount=-quantity,
        source_type=LedgerSourceType.REQUEST,
        source_id=str(request.id),
        metadata={"start_date": request.start_date.isoformat(), "end_date": request.end_date.isoformat()},
    )
    await session.flush()
    logger.info("Charged %s PTO days to %s for request %s", quantity, request.employee_id, request.id)


async def charge_expense(session: AsyncSession, request: ExpenseRequest) -> None:
    """Deduct an approved expense from its category budget, compare-and-set like charge_pto."""
    category = ExpenseCategory(request.category)
    fiscal_year = expense_fiscal_year(request)
    await get_or_create_expense_budget(session, request.employee_id, category, fiscal_year)
    amount = request.amount

    result = await session.execute(
        update(ExpenseBudget)
        .where(
            col(ExpenseBudget.employee_id) == request.employee_id,
            col(ExpenseBudget.category) == category.value,
            col(ExpenseBudget.fiscal_year) == fiscal_year,
            col(ExpenseBudget.budget_limit) - col(ExpenseBudget.amount_used) >= amount,
        )
        .values(
            amount_used=col(ExpenseBudget.amount_used) + amount,
            version=col(ExpenseBudget.version) + 1,
            updated_at=now_utc(),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise ConflictError(f"{category.value} budget changed; {amount} no longer available")

    add_ledger_entry(
        session,
        employee_id=request.employee_id,
        resource=expense_resource(category.value),
        entry_type=LedgerEntryType.USAGE,
        amount=-amount,
        source_type=LedgerSourceType.REQUEST,
        source_id=str(request.id),
        metadata={"fiscal_year": fiscal_year, "currency": request.currency},
    )
    await session.flush()
    logger.info("Charged %s to %s %s budget for request %s", amount, request.employee_id, category, request.id)


async def run_with_conflict_retry(session: AsyncSession, operation: Callable[[], Awaitable[T]]) -> T:
    """Run a ledger-charging operation, retrying it once from scratch on ConflictError.

    The retry starts from a rolled-back session so balances are re-read and the
    request re-evaluated. A second conflict is rolled back and propagates to the caller.
    """
    try:
        return await operation()
    except ConflictError:
        await session.rollback()
        logger.warning("Ledger conflict; retrying operation once")
    try:
        return await operation()
    except ConflictError:
        await session.rollback()
        raise


# ---------------------------------------------------------------------------
# Write path: admin adjustments
# ---------------------------------------------------------------------------


async def _post_adjustment(
    session: AsyncSession,
    ctx: RequestContext,
    payload: CreateAdjustmentRequest,
) -> LedgerEntryResponse:
    entry_id = uuid.uuid4()
    metadata = {"reason": payload.reason, "adjusted_by": str(ctx.user_id)}

    if payload.category is None:
        balance = await get_or_create_leave_balance(session, payload.employee_id)
        new_balance = balance.current_balance + payload.amount
        if new_balance < 0:
            raise ValidationError("Insufficient balance for this adjustment")

        balance.total_accrued += payload.amount
        balance.current_balance = new_balance
        balance.version += 1
        balance.updated_at = now_utc()
        resource = PTO_RESOURCE
        audited_type = AuditEntityType.LEAVE_BALANCE
        audited_id = balance.id
        snapshot = model_to_audit_dict(balance)
    else:
        budget = await get_or_create_expense_budget(
            session, payload.employee_id, payload.category, fiscal_year_of(None)
        )
        new_limit = budget.budget_limit + payload.amount
        if new_limit < budget.amount_used:
            raise ValidationError("Adjustment would leave the budget below the amount already used")

        budget.budget_limit = new_limit
        budget.version += 1
        budget.updated_at = now_utc()
        resource = expense_resource(payload.category.value)
        audited_type = AuditEntityType.EXPENSE_BUDGET
        audited_id = budget.id
        snapshot = model_to_audit_dict(budget)

    entry = LedgerEntry(
        id=entry_id,
        employee_id=payload.employee_id,
        resource=resource,
        entry_type=LedgerEntryType.ADJUSTMENT.value,
        amount=payload.amount,
        source_type=LedgerSourceType.ADMIN.value,
        source_id=str(entry_id),
        metadata_json=metadata,
    )
    session.add(entry)
    await session.flush()

    await write_audit_log(
        session,
        ctx,
        entity_type=audited_type,
        entity_id=audited_id,
        action=AuditAction.ADJUSTED,
        details={"amount": payload.amount, "reason": payload.reason, "after": snapshot},
    )

    await commit_or_raise(session)
    logger.info("Adjusted %s for %s by %s", resource, payload.employee_id, payload.amount)
    return _build_ledger_entry_response(entry)


async def create_adjustment(
    session: AsyncSession,
    ctx: RequestContext,
    payload: CreateAdjustmentRequest,
) -> LedgerEntryResponse:
    """Post a signed admin adjustment to a PTO balance or an expense budget.

    PTO adjustments move total_accrued and the current balance; budget adjustments
    move the category limit. Results below zero are rejected.
    """
    async with storage_guard(session):
        return await _post_adjustment(session, ctx, payload)
