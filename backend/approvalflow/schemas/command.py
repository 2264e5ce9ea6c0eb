# ruff: noqa: TC001, TC003
"""Typed commands accepted from the chat tool layer.

Each command is a pydantic model with a literal ``command`` tag; the union below is
closed, so anything that is not one of these shapes is rejected before dispatch.
"""

from __future__ import annotations

import uuid
from datetime import date
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field

from approvalflow.models.enums import CalendarEventKind, Decision, RequestStatus, RequestType
from approvalflow.schemas.request import ExpenseDraft, PTODraft


class ComputeBusinessDaysCommand(BaseModel):
    command: Literal["compute_business_days"]
    start_date: date
    end_date: date


class ListCalendarEventsCommand(BaseModel):
    command: Literal["list_calendar_events"]
    start_date: date
    end_date: date
    kind: CalendarEventKind | None = None


class ValidatePTOCommand(PTODraft):
    command: Literal["validate_pto"]


class ValidateExpenseCommand(ExpenseDraft):
    command: Literal["validate_expense"]


class SubmitPTOCommand(PTODraft):
    command: Literal["submit_pto"]


class SubmitExpenseCommand(ExpenseDraft):
    command: Literal["submit_expense"]


class GetRequestStatusCommand(BaseModel):
    command: Literal["get_request_status"]
    request_type: RequestType
    request_id: uuid.UUID


class ListRequestsCommand(BaseModel):
    command: Literal["list_requests"]
    request_type: RequestType
    employee_id: uuid.UUID | None = None
    status: RequestStatus | None = None
    limit: int = Field(default=10, ge=1, le=100)


class GetBalanceCommand(BaseModel):
    command: Literal["get_balance"]
    employee_id: uuid.UUID | None = None


class ListPendingEscalationsCommand(BaseModel):
    command: Literal["list_pending_escalations"]


class EscalateRequestCommand(BaseModel):
    command: Literal["escalate_request"]
    request_id: str | None = None
    request_type: RequestType
    escalation_reason: str = Field(min_length=1, max_length=1000)


class ResolveEscalationCommand(BaseModel):
    command: Literal["resolve_escalation"]
    request_type: RequestType
    request_id: uuid.UUID
    decision: Decision
    reason: str | None = Field(default=None, max_length=1000)


Command = Annotated[
    ComputeBusinessDaysCommand
    | ListCalendarEventsCommand
    | ValidatePTOCommand
    | ValidateExpenseCommand
    | SubmitPTOCommand
    | SubmitExpenseCommand
    | GetRequestStatusCommand
    | ListRequestsCommand
    | GetBalanceCommand
    | ListPendingEscalationsCommand
    | EscalateRequestCommand
    | ResolveEscalationCommand,
    Field(discriminator="command"),
]


class CommandEnvelope(BaseModel):
    """Request body for POST /commands."""

    payload: Command


class CommandResult(BaseModel):
    command: str
    result: dict[str, Any]
