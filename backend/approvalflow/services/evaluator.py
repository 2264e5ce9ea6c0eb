"""Policy rule evaluator.

``evaluate`` is a pure function of an ``EvaluationContext``. The async
``validate_*`` helpers gather that context from the calendar, the ledger, the
employee directory and the policy threshold source.
"""

# ruff: noqa: TC003
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING

from approvalflow.exceptions import ValidationError
from approvalflow.models.enums import ExpenseCategory, Recommendation, RequestType, ViolationCode
from approvalflow.schemas.request import ValidationResult, Violation
from approvalflow.services.calendar import calculate_business_days, find_blackout_conflicts
from approvalflow.services.employee import resolve_subject
from approvalflow.services.ledger import available_pto, fiscal_year_of, remaining_budget
from approvalflow.services.policy_lookup import lookup_policy_threshold

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from approvalflow.schemas.auth import RequestContext
    from approvalflow.schemas.request import ExpenseDraft, PTODraft
    from approvalflow.services.employee import EmployeeInfo

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BlackoutWindow:
    name: str
    start_date: date
    end_date: date


@dataclass(frozen=True)
class EvaluationContext:
    """Everything a decision depends on, gathered before evaluation."""

    request_type: RequestType
    quantity: Decimal
    available: Decimal
    threshold: Decimal
    blackouts: list[BlackoutWindow] = field(default_factory=list)
    weekend_days: int | None = None
    holidays: list[date] | None = None
    category: ExpenseCategory | None = None


def evaluate(ctx: EvaluationContext) -> ValidationResult:
    """Decide AUTO_APPROVE, ESCALATE or DENY for a draft.

    Any violation denies. Otherwise the quantity is compared with the auto-approval
    threshold: at or under it auto-approves, over it escalates.
    """
    violations: list[Violation] = []

    if ctx.quantity > ctx.available:
        if ctx.request_type == RequestType.PTO:
            message = f"Requested {ctx.quantity} days but only {ctx.available} days are available"
        else:
            message = (
                f"Requested {ctx.quantity} exceeds the remaining {ctx.category or 'category'} budget of {ctx.available}"
            )
        violations.append(Violation(code=ViolationCode.INSUFFICIENT_BALANCE, message=message))

    if ctx.request_type == RequestType.PTO:
        for window in ctx.blackouts:
            violations.append(
                Violation(
                    code=ViolationCode.BLACKOUT_CONFLICT,
                    message=(
                        f"Overlaps blackout period {window.name!r} "
                        f"({window.start_date.isoformat()} to {window.end_date.isoformat()})"
                    ),
                )
            )

    if violations:
        recommendation = Recommendation.DENY
    elif ctx.quantity <= ctx.threshold:
        recommendation = Recommendation.AUTO_APPROVE
    else:
        recommendation = Recommendation.ESCALATE

    return ValidationResult(
        request_type=ctx.request_type,
        is_valid=not violations,
        can_auto_approve=recommendation == Recommendation.AUTO_APPROVE,
        requires_escalation=recommendation == Recommendation.ESCALATE,
        violations=violations,
        recommendation=recommendation,
        quantity_requested=ctx.quantity,
        available=ctx.available,
        auto_approval_limit=ctx.threshold,
        weekend_days=ctx.weekend_days,
        holidays=ctx.holidays,
    )


def escalation_reason(result: ValidationResult) -> str:
    """Human-readable reason recorded when the evaluator escalates."""
    if result.request_type == RequestType.PTO:
        return (
            f"Requested {result.quantity_requested} days exceeds the auto-approval limit of "
            f"{result.auto_approval_limit} days"
        )
    return f"Amount {result.quantity_requested} exceeds the auto-approval limit of {result.auto_approval_limit}"


# ---------------------------------------------------------------------------
# Context gathering
# ---------------------------------------------------------------------------


async def build_pto_context(
    session: AsyncSession,
    employee: EmployeeInfo,
    start_date: date,
    end_date: date,
) -> EvaluationContext:
    breakdown = await calculate_business_days(session, start_date, end_date)
    if breakdown.business_days == 0:
        raise ValidationError(
            f"{start_date.isoformat()} to {end_date.isoformat()} contains no business days"
        )

    blackouts = await find_blackout_conflicts(session, start_date, end_date)
    return EvaluationContext(
        request_type=RequestType.PTO,
        quantity=Decimal(breakdown.business_days),
        available=await available_pto(session, employee.id),
        threshold=await lookup_policy_threshold(RequestType.PTO, employee.level),
        blackouts=[BlackoutWindow(name=b.name, start_date=b.start_date, end_date=b.end_date) for b in blackouts],
        weekend_days=breakdown.weekend_days,
        holidays=breakdown.holidays,
    )


async def build_expense_context(
    session: AsyncSession,
    employee: EmployeeInfo,
    category: ExpenseCategory,
    amount: Decimal,
    fiscal_year: int,
) -> EvaluationContext:
    return EvaluationContext(
        request_type=RequestType.EXPENSE,
        quantity=amount,
        available=await remaining_budget(session, employee.id, category, fiscal_year),
        threshold=await lookup_policy_threshold(RequestType.EXPENSE, employee.level),
        category=category,
    )


async def validate_pto(session: AsyncSession, ctx: RequestContext, draft: PTODraft) -> ValidationResult:
    """Evaluate a PTO draft without persisting anything."""
    employee = await resolve_subject(ctx, draft.employee_id)
    result = evaluate(await build_pto_context(session, employee, draft.start_date, draft.end_date))
    logger.info(
        "PTO draft for %s (%s..%s): %s", employee.id, draft.start_date, draft.end_date, result.recommendation
    )
    return result


async def validate_expense(session: AsyncSession, ctx: RequestContext, draft: ExpenseDraft) -> ValidationResult:
    """Evaluate an expense draft without persisting anything."""
    employee = await resolve_subject(ctx, draft.employee_id)
    fiscal_year = fiscal_year_of(draft.expense_date)
    result = evaluate(await build_expense_context(session, employee, draft.category, draft.amount, fiscal_year))
    logger.info("Expense draft for %s (%s %s): %s", employee.id, draft.amount, draft.category, result.recommendation)
    return result
