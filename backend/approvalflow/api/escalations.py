# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter

from approvalflow.api.deps import ContextDep
from approvalflow.db import SessionDep
from approvalflow.models.enums import RequestType
from approvalflow.schemas.escalation import (
    EscalateRequestPayload,
    EscalationResponse,
    PendingEscalationsResponse,
    ResolveEscalationPayload,
)
from approvalflow.schemas.request import RequestResponse
from approvalflow.services import escalation as escalation_service

escalations_router = APIRouter(
    prefix="/escalations",
    tags=["escalations"],
)


@escalations_router.get("/pending", response_model=PendingEscalationsResponse)
async def list_pending_escalations(session: SessionDep, ctx: ContextDep) -> PendingEscalationsResponse:
    """Requests awaiting the caller's decision."""
    return await escalation_service.list_pending_escalations(session, ctx)


@escalations_router.post("", response_model=EscalationResponse)
async def escalate_request(
    payload: EscalateRequestPayload,
    session: SessionDep,
    ctx: ContextDep,
) -> EscalationResponse:
    """Escalate a request to the employee's manager."""
    return await escalation_service.escalate_request(
        session, ctx, payload.request_type, payload.request_id, payload.escalation_reason
    )


@escalations_router.post("/{request_type}/{request_id}/resolve", response_model=RequestResponse)
async def resolve_escalation(
    request_type: RequestType,
    request_id: uuid.UUID,
    payload: ResolveEscalationPayload,
    session: SessionDep,
    ctx: ContextDep,
) -> RequestResponse:
    """Approve or deny an escalated request (assigned manager or admin)."""
    return await escalation_service.resolve_escalation(
        session, ctx, request_type, request_id, payload.decision, payload.reason
    )
