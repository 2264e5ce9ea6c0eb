# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlmodel import col

from approvalflow.db import commit_or_raise, storage_guard
from approvalflow.exceptions import NotFoundError
from approvalflow.models.base import now_utc
from approvalflow.models.enums import (
    ActorType,
    AuditAction,
    AuditEntityType,
    ExpenseCategory,
    NotificationKind,
    Recommendation,
    RequestStatus,
    RequestType,
)
from approvalflow.models.request import ExpenseRequest, PTORequest
from approvalflow.schemas.request import (
    RequestListResponse,
    RequestResponse,
    SubmissionResponse,
    Violation,
)
from approvalflow.services.audit import model_to_audit_dict, write_audit_log
from approvalflow.services.employee import is_in_management_chain, resolve_subject
from approvalflow.services.evaluator import build_expense_context, build_pto_context, escalation_reason, evaluate
from approvalflow.services.ledger import charge_expense, charge_pto, expense_fiscal_year, run_with_conflict_retry
from approvalflow.services.notification import dispatch_notification
from approvalflow.services.state_machine import CHARGING_STATES, OPEN_STATES, transition

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from approvalflow.models.request import AnyRequest
    from approvalflow.schemas.auth import RequestContext
    from approvalflow.schemas.request import ExpenseDraft, PTODraft, ValidationResult
    from approvalflow.services.employee import EmployeeInfo

logger = logging.getLogger(__name__)

REQUEST_MODELS: dict[RequestType, type[PTORequest] | type[ExpenseRequest]] = {
    RequestType.PTO: PTORequest,
    RequestType.EXPENSE: ExpenseRequest,
}

AUDIT_ENTITY_TYPES = {
    RequestType.PTO: AuditEntityType.PTO_REQUEST,
    RequestType.EXPENSE: AuditEntityType.EXPENSE_REQUEST,
}


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def request_type_of(request: AnyRequest) -> RequestType:
    return RequestType.PTO if isinstance(request, PTORequest) else RequestType.EXPENSE


def build_request_response(request: AnyRequest) -> RequestResponse:
    """Map a PTO or expense request model to the unified response schema."""
    response = RequestResponse(
        id=request.id,
        request_type=request_type_of(request),
        employee_id=request.employee_id,
        manager_id=request.manager_id,
        status=RequestStatus(request.status),
        escalation_reason=request.escalation_reason,
        violations=[Violation.model_validate(v) for v in request.violations_json or []],
        decided_at=request.decided_at,
        decided_by=request.decided_by,
        decision_note=request.decision_note,
        created_at=request.created_at,
        updated_at=request.updated_at,
    )
    if isinstance(request, PTORequest):
        response.start_date = request.start_date
        response.end_date = request.end_date
        response.total_days = request.total_days
        response.reason = request.reason
    else:
        response.category = ExpenseCategory(request.category)
        response.amount = request.amount
        response.currency = request.currency
        response.description = request.description
        response.expense_date = request.expense_date
    return response


async def get_request(
    session: AsyncSession,
    request_type: RequestType,
    request_id: uuid.UUID,
    *,
    for_update: bool = False,
) -> AnyRequest | None:
    model = REQUEST_MODELS[request_type]
    query = select(model).where(col(model.id) == request_id).execution_options(populate_existing=True)
    if for_update:
        query = query.with_for_update()
    result = await session.execute(query)
    return result.scalar_one_or_none()


async def is_visible_to(ctx: RequestContext, request: AnyRequest) -> bool:
    """The requester, the assigned manager, anyone up the requester's management chain, or an admin."""
    if ctx.is_admin or request.employee_id == ctx.user_id or request.manager_id == ctx.user_id:
        return True
    return await is_in_management_chain(ctx.user_id, request.employee_id)


async def charge_for(session: AsyncSession, request: AnyRequest) -> None:
    """Charge an approved request to the balance or budget it draws on."""
    if isinstance(request, PTORequest):
        await charge_pto(session, request)
    else:
        await charge_expense(session, request)


def _decision_message(request_type: RequestType, result: ValidationResult, reason: str | None) -> str:
    label = "PTO request" if request_type == RequestType.PTO else "Expense request"
    if result.recommendation == Recommendation.AUTO_APPROVE:
        if request_type == RequestType.PTO:
            return f"{label} auto-approved: {result.quantity_requested} business days deducted from balance"
        return f"{label} auto-approved: {result.quantity_requested} charged to budget"
    if result.recommendation == Recommendation.ESCALATE:
        return f"{label} escalated to manager for approval: {reason}"
    return f"{label} denied: " + "; ".join(v.message for v in result.violations)


async def _record_submission(
    session: AsyncSession,
    ctx: RequestContext,
    employee: EmployeeInfo,
    request: AnyRequest,
    result: ValidationResult,
) -> SubmissionResponse:
    """Persist a new request in the state its evaluation calls for.

    The request, its status, any ledger charge and one audit entry are committed
    together.
    """
    request_type = request_type_of(request)
    reason: str | None = None

    if result.recommendation == Recommendation.ESCALATE and employee.manager_id is None:
        raise NotFoundError(f"No manager on record for employee {employee.id}")

    session.add(request)
    await session.flush()

    now = now_utc()
    if result.recommendation == Recommendation.AUTO_APPROVE:
        transition(request, RequestStatus.AUTO_APPROVED)
        request.decided_at = now
        action = AuditAction.AUTO_APPROVED
    elif result.recommendation == Recommendation.ESCALATE:
        transition(request, RequestStatus.PENDING)
        reason = escalation_reason(result)
        request.manager_id = employee.manager_id
        request.escalation_reason = reason
        action = AuditAction.ESCALATED
    else:
        transition(request, RequestStatus.DENIED)
        request.decided_at = now
        request.violations_json = [v.model_dump(mode="json") for v in result.violations]
        request.decision_note = "; ".join(v.message for v in result.violations)
        action = AuditAction.DENIED

    if RequestStatus(request.status) in CHARGING_STATES:
        await charge_for(session, request)
    await session.flush()

    await write_audit_log(
        session,
        ctx.model_copy(update={"actor_type": ActorType.SYSTEM}),
        entity_type=AUDIT_ENTITY_TYPES[request_type],
        entity_id=request.id,
        action=action,
        details={
            "recommendation": result.recommendation.value,
            "quantity": result.quantity_requested,
            "auto_approval_limit": result.auto_approval_limit,
            "submitted_by": ctx.user_id,
            "submitted_via": ctx.actor_type.value,
            "after": model_to_audit_dict(request),
        },
    )

    await commit_or_raise(session)
    logger.info("%s request %s for %s: %s", request_type, request.id, employee.id, request.status)

    return SubmissionResponse(
        request=build_request_response(request),
        validation=result,
        message=_decision_message(request_type, result, reason),
    )


async def _notify_escalated(response: SubmissionResponse, employee: EmployeeInfo) -> None:
    if response.request.status != RequestStatus.PENDING or response.request.manager_id is None:
        return
    await dispatch_notification(
        response.request.manager_id,
        f"{employee.name} submitted a {response.request.request_type} request that needs your approval: "
        f"{response.request.escalation_reason}",
        NotificationKind.ESCALATION,
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def submit_pto(session: AsyncSession, ctx: RequestContext, draft: PTODraft) -> SubmissionResponse:
    """Evaluate and persist a PTO request in one transaction.

    Auto-approval charges the leave balance; a ledger conflict re-runs the whole
    submission once against fresh balances.
    """
    employee = await resolve_subject(ctx, draft.employee_id)

    async def _submit() -> SubmissionResponse:
        evaluation = await build_pto_context(session, employee, draft.start_date, draft.end_date)
        result = evaluate(evaluation)
        request = PTORequest(
            employee_id=employee.id,
            start_date=draft.start_date,
            end_date=draft.end_date,
            total_days=evaluation.quantity,
            reason=draft.reason,
        )
        return await _record_submission(session, ctx, employee, request, result)

    async with storage_guard(session):
        response = await run_with_conflict_retry(session, _submit)
    await _notify_escalated(response, employee)
    return response


async def submit_expense(session: AsyncSession, ctx: RequestContext, draft: ExpenseDraft) -> SubmissionResponse:
    """Evaluate and persist an expense request in one transaction."""
    employee = await resolve_subject(ctx, draft.employee_id)

    async def _submit() -> SubmissionResponse:
        request = ExpenseRequest(
            employee_id=employee.id,
            category=draft.category.value,
            amount=draft.amount,
            currency=draft.currency.upper(),
            description=draft.description,
            expense_date=draft.expense_date,
        )
        evaluation = await build_expense_context(
            session, employee, draft.category, draft.amount, expense_fiscal_year(request)
        )
        return await _record_submission(session, ctx, employee, request, evaluate(evaluation))

    async with storage_guard(session):
        response = await run_with_conflict_retry(session, _submit)
    await _notify_escalated(response, employee)
    return response


async def get_request_status(
    session: AsyncSession,
    ctx: RequestContext,
    request_type: RequestType,
    request_id: uuid.UUID,
) -> RequestResponse:
    """Fetch one request. Requests the caller may not see are reported as missing."""
    request = await get_request(session, request_type, request_id)
    if request is None or not await is_visible_to(ctx, request):
        raise NotFoundError(f"{request_type.value} request {request_id} not found")
    return build_request_response(request)


async def list_requests(
    session: AsyncSession,
    ctx: RequestContext,
    request_type: RequestType,
    employee_id: uuid.UUID | None = None,
    status_filter: RequestStatus | None = None,
    offset: int = 0,
    limit: int = 10,
) -> RequestListResponse:
    """Request history for an employee (the caller by default), newest first."""
    employee = await resolve_subject(ctx, employee_id)
    model = REQUEST_MODELS[request_type]

    filters = [col(model.employee_id) == employee.id]
    if status_filter is not None:
        filters.append(col(model.status) == status_filter.value)

    count_result = await session.execute(select(func.count()).select_from(model).where(*filters))
    total = count_result.scalar_one()

    result = await session.execute(
        select(model).where(*filters).order_by(col(model.created_at).desc()).offset(offset).limit(limit)
    )
    return RequestListResponse(
        items=[build_request_response(r) for r in result.scalars().all()],
        total=total,
    )


async def find_latest_open_request(
    session: AsyncSession,
    request_type: RequestType,
    employee_id: uuid.UUID,
) -> AnyRequest | None:
    """Most recently created pending or pending_approval request of a type for an employee."""
    model = REQUEST_MODELS[request_type]
    result = await session.execute(
        select(model)
        .where(
            col(model.employee_id) == employee_id,
            col(model.status).in_([s.value for s in OPEN_STATES]),
        )
        .order_by(col(model.created_at).desc())
        .limit(1)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()
