"""Dispatch of typed commands from the chat tool layer.

Commands arrive already validated against the closed ``Command`` union, so every
branch below receives a fully typed model.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import BaseModel

from approvalflow.schemas.calendar import BusinessDaysResponse
from approvalflow.schemas.command import (
    CommandResult,
    ComputeBusinessDaysCommand,
    EscalateRequestCommand,
    GetBalanceCommand,
    GetRequestStatusCommand,
    ListCalendarEventsCommand,
    ListPendingEscalationsCommand,
    ListRequestsCommand,
    ResolveEscalationCommand,
    SubmitExpenseCommand,
    SubmitPTOCommand,
    ValidateExpenseCommand,
    ValidatePTOCommand,
)
from approvalflow.services import escalation, evaluator, ledger, requests
from approvalflow.services.calendar import calculate_business_days, list_events_in_range
from approvalflow.services.employee import resolve_subject

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from approvalflow.schemas.auth import RequestContext
    from approvalflow.schemas.command import Command

logger = logging.getLogger(__name__)


async def _run(session: AsyncSession, ctx: RequestContext, command: Command) -> BaseModel:
    if isinstance(command, ComputeBusinessDaysCommand):
        breakdown = await calculate_business_days(session, command.start_date, command.end_date)
        return BusinessDaysResponse(
            start_date=command.start_date,
            end_date=command.end_date,
            business_days=breakdown.business_days,
            weekend_days=breakdown.weekend_days,
            holidays=breakdown.holidays,
        )
    if isinstance(command, ListCalendarEventsCommand):
        return await list_events_in_range(session, command.start_date, command.end_date, command.kind)
    if isinstance(command, ValidatePTOCommand):
        return await evaluator.validate_pto(session, ctx, command)
    if isinstance(command, ValidateExpenseCommand):
        return await evaluator.validate_expense(session, ctx, command)
    if isinstance(command, SubmitPTOCommand):
        return await requests.submit_pto(session, ctx, command)
    if isinstance(command, SubmitExpenseCommand):
        return await requests.submit_expense(session, ctx, command)
    if isinstance(command, GetRequestStatusCommand):
        return await requests.get_request_status(session, ctx, command.request_type, command.request_id)
    if isinstance(command, ListRequestsCommand):
        return await requests.list_requests(
            session, ctx, command.request_type, command.employee_id, command.status, limit=command.limit
        )
    if isinstance(command, GetBalanceCommand):
        employee = await resolve_subject(ctx, command.employee_id)
        return await ledger.get_balance(session, employee.id)
    if isinstance(command, ListPendingEscalationsCommand):
        return await escalation.list_pending_escalations(session, ctx)
    if isinstance(command, EscalateRequestCommand):
        return await escalation.escalate_request(
            session, ctx, command.request_type, command.request_id, command.escalation_reason
        )
    if isinstance(command, ResolveEscalationCommand):
        return await escalation.resolve_escalation(
            session, ctx, command.request_type, command.request_id, command.decision, command.reason
        )
    msg = f"Unhandled command {type(command).__name__}"
    raise TypeError(msg)


async def dispatch(session: AsyncSession, ctx: RequestContext, command: Command) -> CommandResult:
    """Execute one command on behalf of ``ctx`` and wrap its JSON-ready result."""
    logger.info("Command %s from %s (%s)", command.command, ctx.user_id, ctx.actor_type)
    result = await _run(session, ctx, command)
    return CommandResult(command=command.command, result=result.model_dump(mode="json"))
