"""Tests for typed command dispatch from the chat tool layer."""

from __future__ import annotations

import uuid
from datetime import date
from typing import TYPE_CHECKING

import pytest
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select
from sqlmodel import col

from approvalflow.models.audit import AuditLog
from approvalflow.models.calendar import CalendarEvent
from approvalflow.models.enums import ActorType, CalendarEventKind
from approvalflow.schemas.auth import RequestContext
from approvalflow.schemas.command import Command, ComputeBusinessDaysCommand, GetBalanceCommand
from approvalflow.services.commands import dispatch

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from httpx import AsyncClient
    from sqlalchemy.ext.asyncio import AsyncSession

    from tests.conftest import People

_command_adapter: TypeAdapter[Command] = TypeAdapter(Command)


def _headers(user_id: uuid.UUID, role: str = "employee") -> dict[str, str]:
    return {"X-User-Id": str(user_id), "X-Role": role}


def test_union_parses_by_tag() -> None:
    command = _command_adapter.validate_python(
        {"command": "compute_business_days", "start_date": "2025-12-01", "end_date": "2025-12-07"}
    )
    assert isinstance(command, ComputeBusinessDaysCommand)
    assert command.end_date == date(2025, 12, 7)


def test_union_rejects_unknown_tag() -> None:
    with pytest.raises(PydanticValidationError):
        _command_adapter.validate_python({"command": "delete_everything"})


async def test_dispatch_wraps_result(db_session: AsyncSession, people: People) -> None:
    ctx = RequestContext(user_id=people.employee.id)
    result = await dispatch(db_session, ctx, GetBalanceCommand(command="get_balance"))
    assert result.command == "get_balance"
    assert result.result["employee_id"] == str(people.employee.id)
    assert result.result["current_balance"] == "0"


async def test_business_days_command(async_client: AsyncClient, people: People) -> None:
    response = await async_client.post(
        "/commands",
        json={"payload": {"command": "compute_business_days", "start_date": "2025-12-01", "end_date": "2025-12-07"}},
        headers=_headers(people.employee.id),
    )
    assert response.status_code == 200
    assert response.json()["result"]["business_days"] == 5
    assert response.json()["result"]["weekend_days"] == 2


async def test_calendar_events_command_filters_by_kind_and_range(
    async_client: AsyncClient,
    db_session: AsyncSession,
    people: People,
) -> None:
    db_session.add_all(
        [
            CalendarEvent(
                kind=CalendarEventKind.BLACKOUT.value,
                name="Year-end close",
                start_date=date(2025, 12, 22),
                end_date=date(2025, 12, 31),
            ),
            CalendarEvent(
                kind=CalendarEventKind.HOLIDAY.value,
                name="Christmas Day",
                start_date=date(2025, 12, 25),
                end_date=date(2025, 12, 25),
            ),
            CalendarEvent(
                kind=CalendarEventKind.BLACKOUT.value,
                name="Q3 close",
                start_date=date(2025, 9, 26),
                end_date=date(2025, 9, 30),
            ),
        ]
    )
    await db_session.commit()

    response = await async_client.post(
        "/commands",
        json={
            "payload": {
                "command": "list_calendar_events",
                "start_date": "2025-12-29",
                "end_date": "2026-01-02",
                "kind": "blackout",
            }
        },
        headers=_headers(people.employee.id),
    )
    assert response.status_code == 200
    result = response.json()["result"]
    assert result["total"] == 1
    assert result["items"][0]["name"] == "Year-end close"

    everything = await async_client.post(
        "/commands",
        json={"payload": {"command": "list_calendar_events", "start_date": "2025-12-01", "end_date": "2025-12-31"}},
        headers=_headers(people.employee.id),
    )
    assert [e["name"] for e in everything.json()["result"]["items"]] == ["Year-end close", "Christmas Day"]


async def test_calendar_events_command_rejects_reversed_range(async_client: AsyncClient, people: People) -> None:
    response = await async_client.post(
        "/commands",
        json={"payload": {"command": "list_calendar_events", "start_date": "2025-12-31", "end_date": "2025-12-01"}},
        headers=_headers(people.employee.id),
    )
    assert response.status_code == 400
    assert response.json()["error"] == "InvalidRangeError"


async def test_submit_via_command_is_audited_as_agent(
    async_client: AsyncClient,
    db_session: AsyncSession,
    people: People,
    set_balance: Callable[..., Awaitable[object]],
) -> None:
    await set_balance(people.employee.id, "15")
    submitted = await async_client.post(
        "/commands",
        json={"payload": {"command": "submit_pto", "start_date": "2025-12-01", "end_date": "2025-12-05"}},
        headers=_headers(people.employee.id),
    )
    request_id = submitted.json()["result"]["request"]["id"]

    escalated = await async_client.post(
        "/commands",
        json={
            "payload": {
                "command": "escalate_request",
                "request_id": "the one I just filed",
                "request_type": "pto",
                "escalation_reason": "Employee asked for a quick decision",
            }
        },
        headers=_headers(people.employee.id),
    )
    result = escalated.json()["result"]
    assert result["request_id"] == request_id
    assert f"fallback to request {request_id}" in result["message"]

    entries = (await db_session.execute(select(AuditLog).order_by(col(AuditLog.created_at)))).scalars().all()
    assert [(e.action, e.actor_type) for e in entries] == [
        ("escalated", ActorType.SYSTEM.value),
        ("escalated", ActorType.AI_AGENT.value),
    ]
    assert entries[0].details["submitted_via"] == "ai_agent"


async def test_resolve_via_command(
    async_client: AsyncClient,
    people: People,
    set_balance: Callable[..., Awaitable[object]],
) -> None:
    await set_balance(people.employee.id, "15")
    submitted = await async_client.post(
        "/commands",
        json={"payload": {"command": "submit_pto", "start_date": "2025-12-01", "end_date": "2025-12-05"}},
        headers=_headers(people.employee.id),
    )
    request_id = submitted.json()["result"]["request"]["id"]

    resolved = await async_client.post(
        "/commands",
        json={
            "payload": {
                "command": "resolve_escalation",
                "request_type": "pto",
                "request_id": request_id,
                "decision": "approve",
            }
        },
        headers=_headers(people.manager.id, "manager"),
    )
    assert resolved.json()["result"]["status"] == "approved"


async def test_unknown_command_is_rejected(async_client: AsyncClient, people: People) -> None:
    response = await async_client.post(
        "/commands",
        json={"payload": {"command": "drop_tables"}},
        headers=_headers(people.employee.id),
    )
    assert response.status_code == 422


async def test_command_errors_keep_their_status(async_client: AsyncClient, people: People) -> None:
    response = await async_client.post(
        "/commands",
        json={
            "payload": {
                "command": "get_request_status",
                "request_type": "expense",
                "request_id": str(uuid.uuid4()),
            }
        },
        headers=_headers(people.employee.id),
    )
    assert response.status_code == 404
