"""Scheduled balance maintenance: monthly PTO accrual and the Jan 1 rollover.

Both runs are idempotent. Each posting is keyed in the ledger by a source id that
names the employee and period, and a period already posted is skipped.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlmodel import col

from approvalflow.config import get_settings
from approvalflow.db import commit_or_raise
from approvalflow.models.base import now_utc
from approvalflow.models.enums import (
    ActorType,
    AuditAction,
    AuditEntityType,
    EmployeeLevel,
    LedgerEntryType,
    LedgerSourceType,
)
from approvalflow.models.ledger import PTO_RESOURCE, LedgerEntry
from approvalflow.schemas.auth import RequestContext
from approvalflow.services.audit import model_to_audit_dict, write_audit_log
from approvalflow.services.employee import get_employee_service
from approvalflow.services.ledger import add_ledger_entry, get_leave_balance, get_or_create_leave_balance

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from approvalflow.services.employee import EmployeeInfo

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = uuid.UUID(int=0)
SYSTEM_CONTEXT = RequestContext(user_id=SYSTEM_ACTOR, role="admin", actor_type=ActorType.SYSTEM)


@dataclass
class AccrualRunResult:
    """Summary of a monthly accrual run."""

    target_date: date
    processed: int = 0
    accrued: int = 0
    skipped: int = 0
    errors: int = 0


@dataclass
class RolloverRunResult:
    """Summary of a year-end rollover run."""

    target_date: date
    processed: int = 0
    rolled_over: int = 0
    expired: int = 0
    skipped: int = 0
    errors: int = 0
    details: list[dict[str, object]] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


def monthly_accrual_rate(level: EmployeeLevel) -> Decimal:
    settings = get_settings()
    if level == EmployeeLevel.ELEVATED:
        return settings.pto_monthly_accrual_elevated
    return settings.pto_monthly_accrual_standard


def split_rollover(balance: Decimal, cap: Decimal) -> tuple[Decimal, Decimal]:
    """Split a year-end balance into (carried, expired). A negative balance carries as is."""
    if balance <= 0:
        return balance, Decimal(0)
    carried = min(balance, cap)
    return carried, balance - carried


def accrual_source_id(employee_id: uuid.UUID, target_date: date) -> str:
    return f"accrual:{employee_id}:{target_date:%Y-%m}"


def rollover_source_id(employee_id: uuid.UUID, year: int) -> str:
    return f"rollover:{employee_id}:{year}"


async def _already_posted(session: AsyncSession, source_id: str, entry_type: LedgerEntryType) -> bool:
    result = await session.execute(
        select(col(LedgerEntry.id)).where(
            col(LedgerEntry.source_type) == LedgerSourceType.SYSTEM.value,
            col(LedgerEntry.source_id) == source_id,
            col(LedgerEntry.entry_type) == entry_type.value,
        )
    )
    return result.first() is not None


# ---------------------------------------------------------------------------
# Monthly accrual
# ---------------------------------------------------------------------------


async def _accrue_employee(session: AsyncSession, employee: EmployeeInfo, target_date: date) -> bool:
    source_id = accrual_source_id(employee.id, target_date)
    if await _already_posted(session, source_id, LedgerEntryType.ACCRUAL):
        return False

    amount = monthly_accrual_rate(employee.level)
    balance = await get_or_create_leave_balance(session, employee.id)
    balance.total_accrued += amount
    balance.current_balance += amount
    balance.last_accrual_date = target_date
    balance.version += 1
    balance.updated_at = now_utc()

    add_ledger_entry(
        session,
        employee_id=employee.id,
        resource=PTO_RESOURCE,
        entry_type=LedgerEntryType.ACCRUAL,
        amount=amount,
        source_type=LedgerSourceType.SYSTEM,
        source_id=source_id,
        metadata={"level": employee.level.value, "period": f"{target_date:%Y-%m}"},
    )
    await session.flush()

    await write_audit_log(
        session,
        SYSTEM_CONTEXT,
        entity_type=AuditEntityType.LEAVE_BALANCE,
        entity_id=balance.id,
        action=AuditAction.ACCRUED,
        details={"amount": amount, "period": f"{target_date:%Y-%m}", "after": model_to_audit_dict(balance)},
    )
    await commit_or_raise(session)
    return True


async def run_monthly_accruals(session: AsyncSession, target_date: date | None = None) -> AccrualRunResult:
    """Credit every employee's monthly PTO accrual. Only the 1st of a month accrues.

    Employees hired after the target date are skipped. One employee's failure is
    logged and counted without stopping the run.
    """
    if target_date is None:
        target_date = date.today()

    result = AccrualRunResult(target_date=target_date)
    if target_date.day != 1:
        return result

    for employee in await get_employee_service().list_employees():
        result.processed += 1
        if employee.hire_date is not None and employee.hire_date > target_date:
            result.skipped += 1
            continue
        try:
            if await _accrue_employee(session, employee, target_date):
                result.accrued += 1
            else:
                result.skipped += 1
        except Exception:
            await session.rollback()
            logger.exception("Accrual failed for employee=%s on %s", employee.id, target_date)
            result.errors += 1

    return result


# ---------------------------------------------------------------------------
# Year-end rollover
# ---------------------------------------------------------------------------


async def _roll_over_employee(
    session: AsyncSession,
    employee_id: uuid.UUID,
    year: int,
    cap: Decimal,
    result: RolloverRunResult,
) -> None:
    source_id = rollover_source_id(employee_id, year)
    if await _already_posted(session, source_id, LedgerEntryType.CARRYOVER):
        result.skipped += 1
        return

    balance = await get_leave_balance(session, employee_id)
    if balance is None:
        result.skipped += 1
        return

    carried, expired = split_rollover(balance.current_balance, cap)

    add_ledger_entry(
        session,
        employee_id=employee_id,
        resource=PTO_RESOURCE,
        entry_type=LedgerEntryType.CARRYOVER,
        amount=carried,
        source_type=LedgerSourceType.SYSTEM,
        source_id=source_id,
        metadata={"year": year, "cap": str(cap), "expired": str(expired)},
    )
    if expired > 0:
        add_ledger_entry(
            session,
            employee_id=employee_id,
            resource=PTO_RESOURCE,
            entry_type=LedgerEntryType.EXPIRATION,
            amount=-expired,
            source_type=LedgerSourceType.SYSTEM,
            source_id=source_id,
            metadata={"year": year, "reason": "year_end_rollover_excess"},
        )
        result.expired += 1

    balance.rollover_from_previous_year = carried
    balance.total_accrued = Decimal(0)
    balance.total_used = Decimal(0)
    balance.current_balance = carried
    balance.version += 1
    balance.updated_at = now_utc()
    await session.flush()

    await write_audit_log(
        session,
        SYSTEM_CONTEXT,
        entity_type=AuditEntityType.LEAVE_BALANCE,
        entity_id=balance.id,
        action=AuditAction.ROLLED_OVER,
        details={"year": year, "carried": carried, "expired": expired, "after": model_to_audit_dict(balance)},
    )
    await commit_or_raise(session)

    result.rolled_over += 1
    result.details.append({"employee_id": str(employee_id), "carried": str(carried), "expired": str(expired)})


async def run_year_end_rollover(session: AsyncSession, target_date: date | None = None) -> RolloverRunResult:
    """Close out the previous year's balances. Only Jan 1 rolls over.

    Up to the configured cap carries into the new year; the excess expires and the
    year's accrued and used totals reset to zero.
    """
    if target_date is None:
        target_date = date.today()

    result = RolloverRunResult(target_date=target_date)
    if target_date.month != 1 or target_date.day != 1:
        logger.info("Rollover skipped: %s is not Jan 1", target_date)
        return result

    year = target_date.year - 1
    cap = get_settings().pto_rollover_cap

    for employee in await get_employee_service().list_employees():
        result.processed += 1
        try:
            await _roll_over_employee(session, employee.id, year, cap, result)
        except Exception:
            await session.rollback()
            logger.exception("Rollover failed for employee=%s year=%d", employee.id, year)
            result.errors += 1

    return result
