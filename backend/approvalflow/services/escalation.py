"""Escalation routing.

Escalation targets are resolved leniently: callers (typically the chat agent)
may pass a stale, malformed or missing request id, in which case the caller's
most recent open request of the same type is used and the response says so.
"""

# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlmodel import col

from approvalflow.db import commit_or_raise, storage_guard
from approvalflow.exceptions import ForbiddenError, InvalidStateTransition, NotFoundError
from approvalflow.models.base import now_utc
from approvalflow.models.enums import AuditAction, Decision, NotificationKind, RequestStatus, RequestType
from approvalflow.schemas.escalation import EscalationResponse, PendingEscalationItem, PendingEscalationsResponse
from approvalflow.services.audit import write_audit_log
from approvalflow.services.employee import get_employee_service, is_in_management_chain
from approvalflow.services.ledger import run_with_conflict_retry
from approvalflow.services.notification import dispatch_notification
from approvalflow.services.requests import (
    AUDIT_ENTITY_TYPES,
    REQUEST_MODELS,
    build_request_response,
    charge_for,
    find_latest_open_request,
    get_request,
    is_visible_to,
)
from approvalflow.services.state_machine import CHARGING_STATES, TERMINAL_STATES, transition

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from approvalflow.models.request import AnyRequest
    from approvalflow.schemas.auth import RequestContext
    from approvalflow.schemas.request import RequestResponse

logger = logging.getLogger(__name__)


def _parse_request_id(raw: str | None) -> uuid.UUID | None:
    if raw is None:
        return None
    try:
        return uuid.UUID(raw.strip())
    except ValueError:
        return None


async def _owned_by(ctx: RequestContext, request: AnyRequest) -> bool:
    if request.employee_id == ctx.user_id:
        return True
    return await is_in_management_chain(ctx.user_id, request.employee_id)


async def _resolve_target(
    session: AsyncSession,
    ctx: RequestContext,
    request_type: RequestType,
    raw_request_id: str | None,
) -> tuple[AnyRequest, bool]:
    """Return the request to escalate and whether the recency fallback chose it."""
    request_id = _parse_request_id(raw_request_id)
    if request_id is not None:
        request = await get_request(session, request_type, request_id, for_update=True)
        if request is not None and await _owned_by(ctx, request):
            return request, False
        if request is not None:
            logger.warning("Request %s exists but is not visible to %s; using fallback", request_id, ctx.user_id)

    fallback = await find_latest_open_request(session, request_type, ctx.user_id)
    if fallback is None:
        msg = f"No {request_type.value} request matches {raw_request_id!r} and no open request exists to escalate"
        raise NotFoundError(msg)
    logger.warning("Escalation target %r unresolved; fell back to request %s", raw_request_id, fallback.id)
    return fallback, True


async def _resolve_manager(request: AnyRequest) -> uuid.UUID:
    if request.manager_id is not None:
        return request.manager_id
    employee = await get_employee_service().get_employee(request.employee_id)
    if employee is None or employee.manager_id is None:
        raise NotFoundError(f"No manager on record for employee {request.employee_id}")
    return employee.manager_id


async def _person_label(person_id: uuid.UUID) -> str:
    person = await get_employee_service().get_employee(person_id)
    return person.name if person is not None else str(person_id)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def escalate_request(
    session: AsyncSession,
    ctx: RequestContext,
    request_type: RequestType,
    request_id: str | None,
    escalation_reason: str,
) -> EscalationResponse:
    """Route a request to a human approver.

    Every call writes its own audit entry, including repeat escalations of a request
    that is already pending. The manager is notified after commit; a failed
    notification does not undo the escalation.
    """
    async with storage_guard(session):
        request, used_fallback = await _resolve_target(session, ctx, request_type, request_id)
        manager_id = await _resolve_manager(request)

        previous = transition(request, RequestStatus.PENDING)
        request.manager_id = manager_id
        request.escalation_reason = escalation_reason
        await session.flush()

        await write_audit_log(
            session,
            ctx,
            entity_type=AUDIT_ENTITY_TYPES[request_type],
            entity_id=request.id,
            action=AuditAction.ESCALATED,
            details={
                "reason": escalation_reason,
                "manager_id": manager_id,
                "previous_status": previous.value,
                "requested_id": request_id,
                "used_fallback": used_fallback,
            },
        )
        await commit_or_raise(session)

    manager_label = await _person_label(manager_id)
    label = "PTO request" if request_type == RequestType.PTO else "Expense request"
    if used_fallback:
        message = (
            f"{label} escalated to {manager_label} "
            f"(fallback to request {request.id}; no match for {request_id!r})"
        )
    else:
        message = f"{label} {request.id} escalated to {manager_label}"
    logger.info("Escalated %s request %s to %s (fallback=%s)", request_type, request.id, manager_id, used_fallback)

    employee_label = await _person_label(request.employee_id)
    await dispatch_notification(
        manager_id,
        f"{employee_label}'s {request_type.value} request needs your approval: {escalation_reason}",
        NotificationKind.ESCALATION,
    )

    return EscalationResponse(
        success=True,
        request_id=request.id,
        manager_id=manager_id,
        used_fallback=used_fallback,
        message=message,
    )


async def list_pending_escalations(session: AsyncSession, ctx: RequestContext) -> PendingEscalationsResponse:
    """Pending requests assigned to the acting manager, oldest first."""
    buckets: dict[RequestType, list[PendingEscalationItem]] = {}
    for request_type, model in REQUEST_MODELS.items():
        result = await session.execute(
            select(model)
            .where(
                col(model.manager_id) == ctx.user_id,
                col(model.status) == RequestStatus.PENDING.value,
            )
            .order_by(col(model.created_at))
        )
        items = []
        for request in result.scalars().all():
            employee = await get_employee_service().get_employee(request.employee_id)
            items.append(
                PendingEscalationItem(
                    **build_request_response(request).model_dump(),
                    employee_name=employee.name if employee is not None else None,
                )
            )
        buckets[request_type] = items

    pto, expense = buckets[RequestType.PTO], buckets[RequestType.EXPENSE]
    return PendingEscalationsResponse(pto_pending=pto, expense_pending=expense, total=len(pto) + len(expense))


async def resolve_escalation(
    session: AsyncSession,
    ctx: RequestContext,
    request_type: RequestType,
    request_id: uuid.UUID,
    decision: Decision,
    reason: str | None = None,
) -> RequestResponse:
    """Record a manager's decision on a pending request.

    Requests the caller cannot see are reported as missing, and a request that is
    already decided fails as an invalid transition before authority is checked. Only
    the assigned manager or an admin may decide. Approval charges the ledger in the
    same commit as the status change.
    """

    async def _resolve() -> AnyRequest:
        request = await get_request(session, request_type, request_id, for_update=True)
        if request is None or not await is_visible_to(ctx, request):
            raise NotFoundError(f"{request_type.value} request {request_id} not found")
        current = RequestStatus(request.status)
        if current in TERMINAL_STATES:
            raise InvalidStateTransition(f"Request {request.id} is already {current.value}")
        if request.manager_id != ctx.user_id and not ctx.is_admin:
            raise ForbiddenError("Only the assigned manager can decide this request")

        target = RequestStatus.APPROVED if decision == Decision.APPROVE else RequestStatus.DENIED
        transition(request, target)
        request.decided_at = now_utc()
        request.decided_by = ctx.user_id
        request.decision_note = reason
        if target in CHARGING_STATES:
            await charge_for(session, request)
        await session.flush()

        await write_audit_log(
            session,
            ctx,
            entity_type=AUDIT_ENTITY_TYPES[request_type],
            entity_id=request.id,
            action=AuditAction.APPROVED if target == RequestStatus.APPROVED else AuditAction.DENIED,
            details={"decision": decision.value, "reason": reason},
        )
        await commit_or_raise(session)
        return request

    async with storage_guard(session):
        request = await run_with_conflict_retry(session, _resolve)
    logger.info("%s request %s %s by %s", request_type, request.id, request.status, ctx.user_id)

    outcome = "approved" if decision == Decision.APPROVE else "denied"
    note = f": {reason}" if reason else ""
    await dispatch_notification(
        request.employee_id,
        f"Your {request_type.value} request {request.id} was {outcome}{note}",
        NotificationKind.DECISION,
    )
    return build_request_response(request)
