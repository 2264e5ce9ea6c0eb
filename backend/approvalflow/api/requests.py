# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Query, status

from approvalflow.api.deps import ContextDep
from approvalflow.db import SessionDep
from approvalflow.models.enums import RequestStatus, RequestType
from approvalflow.schemas.request import (
    ExpenseDraft,
    PTODraft,
    RequestListResponse,
    RequestResponse,
    SubmissionResponse,
    ValidationResult,
)
from approvalflow.services import evaluator
from approvalflow.services import requests as request_service

requests_router = APIRouter(
    prefix="/requests",
    tags=["requests"],
)


@requests_router.post("/pto/validate", response_model=ValidationResult)
async def validate_pto(payload: PTODraft, session: SessionDep, ctx: ContextDep) -> ValidationResult:
    """Evaluate a PTO draft against policy without submitting it."""
    return await evaluator.validate_pto(session, ctx, payload)


@requests_router.post("/expense/validate", response_model=ValidationResult)
async def validate_expense(payload: ExpenseDraft, session: SessionDep, ctx: ContextDep) -> ValidationResult:
    """Evaluate an expense draft against policy without submitting it."""
    return await evaluator.validate_expense(session, ctx, payload)


@requests_router.post("/pto", response_model=SubmissionResponse, status_code=status.HTTP_201_CREATED)
async def submit_pto(payload: PTODraft, session: SessionDep, ctx: ContextDep) -> SubmissionResponse:
    """Submit a PTO request; it is auto-approved, escalated or denied immediately."""
    return await request_service.submit_pto(session, ctx, payload)


@requests_router.post("/expense", response_model=SubmissionResponse, status_code=status.HTTP_201_CREATED)
async def submit_expense(payload: ExpenseDraft, session: SessionDep, ctx: ContextDep) -> SubmissionResponse:
    """Submit an expense request; it is auto-approved, escalated or denied immediately."""
    return await request_service.submit_expense(session, ctx, payload)


@requests_router.get("/{request_type}/{request_id}", response_model=RequestResponse)
async def get_request_status(
    request_type: RequestType,
    request_id: uuid.UUID,
    session: SessionDep,
    ctx: ContextDep,
) -> RequestResponse:
    return await request_service.get_request_status(session, ctx, request_type, request_id)


@requests_router.get("/{request_type}", response_model=RequestListResponse)
async def list_requests(
    request_type: RequestType,
    session: SessionDep,
    ctx: ContextDep,
    employee_id: uuid.UUID | None = Query(default=None),
    status_filter: RequestStatus | None = Query(default=None, alias="status"),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=10, ge=1, le=100),
) -> RequestListResponse:
    """Request history, newest first. Defaults to the caller's own requests."""
    return await request_service.list_requests(
        session, ctx, request_type, employee_id, status_filter, offset, limit
    )
