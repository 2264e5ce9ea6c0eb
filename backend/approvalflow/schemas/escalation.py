# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid

from pydantic import BaseModel, Field

from approvalflow.models.enums import Decision, RequestType
from approvalflow.schemas.request import RequestResponse


class EscalateRequestPayload(BaseModel):
    """Request body for escalating a request to a human approver.

    request_id is a free-form string: a missing, malformed or unknown id falls back
    to the acting employee's most recent open request of the same type.
    """

    request_id: str | None = None
    request_type: RequestType
    escalation_reason: str = Field(min_length=1, max_length=1000)


class EscalationResponse(BaseModel):
    success: bool
    request_id: uuid.UUID
    manager_id: uuid.UUID
    used_fallback: bool
    message: str


class ResolveEscalationPayload(BaseModel):
    """Request body for a manager's decision on an escalated request."""

    decision: Decision
    reason: str | None = Field(default=None, max_length=1000)


class PendingEscalationItem(RequestResponse):
    """A pending request annotated with the requesting employee's name."""

    employee_name: str | None


class PendingEscalationsResponse(BaseModel):
    """Requests awaiting the acting manager's decision."""

    pto_pending: list[PendingEscalationItem]
    expense_pending: list[PendingEscalationItem]
    total: int
