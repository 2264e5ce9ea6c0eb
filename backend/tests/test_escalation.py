"""Tests for escalation routing, the recency fallback and manager decisions."""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlmodel import col

from approvalflow.exceptions import NotificationError
from approvalflow.models.audit import AuditLog
from approvalflow.models.enums import NotificationKind
from approvalflow.models.ledger import LedgerEntry
from approvalflow.models.request import PTORequest
from approvalflow.services.ledger import get_leave_balance
from approvalflow.services.notification import set_notification_service

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from httpx import AsyncClient, Response
    from sqlalchemy.ext.asyncio import AsyncSession

    from approvalflow.services.notification import InMemoryNotificationService
    from tests.conftest import People


def _headers(user_id: uuid.UUID, role: str = "employee") -> dict[str, str]:
    return {"X-User-Id": str(user_id), "X-Role": role}


async def _submit_pending(
    client: AsyncClient,
    employee_id: uuid.UUID,
    start: str = "2025-12-01",
    end: str = "2025-12-05",
) -> str:
    """Submit a PTO request long enough to be escalated and return its id."""
    response = await client.post(
        "/requests/pto",
        json={"start_date": start, "end_date": end},
        headers=_headers(employee_id),
    )
    assert response.json()["request"]["status"] == "pending"
    return response.json()["request"]["id"]


async def _escalate(
    client: AsyncClient,
    user_id: uuid.UUID,
    request_id: str | None,
    reason: str = "Needs a human look",
    request_type: str = "pto",
) -> Response:
    return await client.post(
        "/escalations",
        json={"request_id": request_id, "request_type": request_type, "escalation_reason": reason},
        headers=_headers(user_id),
    )


class _FailingNotifier:
    async def notify(self, recipient_id: uuid.UUID, message: str, kind: NotificationKind) -> None:
        raise NotificationError("smtp down")


# ---------------------------------------------------------------------------
# Escalation target resolution
# ---------------------------------------------------------------------------


async def test_unknown_id_falls_back_to_latest_open_request(
    async_client: AsyncClient,
    people: People,
    set_balance: Callable[..., Awaitable[object]],
) -> None:
    await set_balance(people.employee.id, "15")
    request_id = await _submit_pending(async_client, people.employee.id)

    response = await _escalate(async_client, people.employee.id, str(uuid.uuid4()))
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["used_fallback"] is True
    assert data["request_id"] == request_id
    assert f"fallback to request {request_id}" in data["message"]
    assert "Ramya Manager" in data["message"]


async def test_malformed_or_missing_id_falls_back(
    async_client: AsyncClient,
    people: People,
    set_balance: Callable[..., Awaitable[object]],
) -> None:
    await set_balance(people.employee.id, "15")
    request_id = await _submit_pending(async_client, people.employee.id)

    malformed = await _escalate(async_client, people.employee.id, "req-42")
    missing = await _escalate(async_client, people.employee.id, None)
    assert malformed.json()["request_id"] == request_id
    assert missing.json()["request_id"] == request_id
    assert missing.json()["used_fallback"] is True


async def test_fallback_picks_most_recent_open_request(
    async_client: AsyncClient,
    people: People,
    set_balance: Callable[..., Awaitable[object]],
) -> None:
    await set_balance(people.employee.id, "20")
    await _submit_pending(async_client, people.employee.id)
    newest = await _submit_pending(async_client, people.employee.id, "2025-11-03", "2025-11-07")

    response = await _escalate(async_client, people.employee.id, "does-not-exist")
    assert response.json()["request_id"] == newest


async def test_explicit_id_is_honored(
    async_client: AsyncClient,
    people: People,
    set_balance: Callable[..., Awaitable[object]],
) -> None:
    await set_balance(people.employee.id, "20")
    oldest = await _submit_pending(async_client, people.employee.id)
    await _submit_pending(async_client, people.employee.id, "2025-11-03", "2025-11-07")

    response = await _escalate(async_client, people.employee.id, oldest)
    data = response.json()
    assert data["request_id"] == oldest
    assert data["used_fallback"] is False
    assert "fallback" not in data["message"]


async def test_no_open_request_is_404(async_client: AsyncClient, people: People) -> None:
    response = await _escalate(async_client, people.employee.id, str(uuid.uuid4()))
    assert response.status_code == 404
    assert response.json()["error"] == "NotFoundError"


async def test_fallback_is_scoped_to_request_type(
    async_client: AsyncClient,
    people: People,
    set_balance: Callable[..., Awaitable[object]],
) -> None:
    await set_balance(people.employee.id, "15")
    await _submit_pending(async_client, people.employee.id)

    response = await _escalate(async_client, people.employee.id, None, request_type="expense")
    assert response.status_code == 404


async def test_someone_elses_request_is_not_escalated(
    async_client: AsyncClient,
    people: People,
    set_balance: Callable[..., Awaitable[object]],
) -> None:
    await set_balance(people.employee.id, "15")
    await set_balance(people.senior.id, "30")
    colleague_request = await _submit_pending(async_client, people.employee.id)
    own_request = await _submit_pending(async_client, people.senior.id, "2025-11-03", "2025-11-21")

    response = await _escalate(async_client, people.senior.id, colleague_request)
    data = response.json()
    assert data["request_id"] == own_request
    assert data["used_fallback"] is True


async def test_terminal_request_cannot_be_escalated(
    async_client: AsyncClient,
    people: People,
    set_balance: Callable[..., Awaitable[object]],
) -> None:
    await set_balance(people.employee.id, "10")
    submitted = await async_client.post(
        "/requests/pto",
        json={"start_date": "2025-12-08", "end_date": "2025-12-08"},
        headers=_headers(people.employee.id),
    )
    request_id = submitted.json()["request"]["id"]

    response = await _escalate(async_client, people.employee.id, request_id)
    assert response.status_code == 409


# ---------------------------------------------------------------------------
# Escalation side effects
# ---------------------------------------------------------------------------


async def test_repeat_escalation_audits_each_call(
    async_client: AsyncClient,
    db_session: AsyncSession,
    people: People,
    set_balance: Callable[..., Awaitable[object]],
) -> None:
    await set_balance(people.employee.id, "15")
    request_id = await _submit_pending(async_client, people.employee.id)

    first = await _escalate(async_client, people.employee.id, request_id, reason="First nudge")
    second = await _escalate(async_client, people.employee.id, request_id, reason="Second nudge")
    assert first.json()["manager_id"] == second.json()["manager_id"] == str(people.manager.id)

    result = await db_session.execute(
        select(AuditLog).where(
            col(AuditLog.entity_id) == uuid.UUID(request_id),
            col(AuditLog.actor_type) == "user",
        )
    )
    entries = result.scalars().all()
    assert len(entries) == 2
    assert {e.details["reason"] for e in entries} == {"First nudge", "Second nudge"}

    request = (
        await db_session.execute(
            select(PTORequest)
            .where(col(PTORequest.id) == uuid.UUID(request_id))
            .execution_options(populate_existing=True)
        )
    ).scalar_one()
    assert request.status == "pending"
    assert request.escalation_reason == "Second nudge"


async def test_manager_is_notified(
    async_client: AsyncClient,
    people: People,
    notifications: InMemoryNotificationService,
    set_balance: Callable[..., Awaitable[object]],
) -> None:
    await set_balance(people.employee.id, "15")
    request_id = await _submit_pending(async_client, people.employee.id)
    notifications.sent.clear()

    await _escalate(async_client, people.employee.id, request_id, reason="Trip got longer")
    assert len(notifications.sent) == 1
    assert notifications.sent[0].recipient_id == people.manager.id
    assert notifications.sent[0].kind == NotificationKind.ESCALATION
    assert "Trip got longer" in notifications.sent[0].message


async def test_notification_failure_does_not_undo_escalation(
    async_client: AsyncClient,
    people: People,
    set_balance: Callable[..., Awaitable[object]],
) -> None:
    await set_balance(people.employee.id, "15")
    request_id = await _submit_pending(async_client, people.employee.id)
    set_notification_service(_FailingNotifier())

    response = await _escalate(async_client, people.employee.id, request_id)
    assert response.status_code == 200
    assert response.json()["success"] is True

    status = await async_client.get(f"/requests/pto/{request_id}", headers=_headers(people.employee.id))
    assert status.json()["escalation_reason"] == "Needs a human look"


# ---------------------------------------------------------------------------
# Manager decisions
# ---------------------------------------------------------------------------


async def test_pending_list_shows_requests_assigned_to_manager(
    async_client: AsyncClient,
    people: People,
    set_balance: Callable[..., Awaitable[object]],
) -> None:
    await set_balance(people.employee.id, "15")
    request_id = await _submit_pending(async_client, people.employee.id)

    response = await async_client.get("/escalations/pending", headers=_headers(people.manager.id, "manager"))
    data = response.json()
    assert data["total"] == 1
    assert data["expense_pending"] == []
    assert data["pto_pending"][0]["id"] == request_id
    assert data["pto_pending"][0]["employee_name"] == "Jordan Junior"

    others = await async_client.get("/escalations/pending", headers=_headers(people.senior.id))
    assert others.json()["total"] == 0


async def test_approval_charges_balance_and_notifies_employee(
    async_client: AsyncClient,
    db_session: AsyncSession,
    people: People,
    notifications: InMemoryNotificationService,
    set_balance: Callable[..., Awaitable[object]],
) -> None:
    await set_balance(people.employee.id, "15")
    request_id = await _submit_pending(async_client, people.employee.id)
    notifications.sent.clear()

    response = await async_client.post(
        f"/escalations/pto/{request_id}/resolve",
        json={"decision": "approve", "reason": "Enjoy"},
        headers=_headers(people.manager.id, "manager"),
    )
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "approved"
    assert data["decided_by"] == str(people.manager.id)
    assert data["decision_note"] == "Enjoy"

    balance = await get_leave_balance(db_session, people.employee.id)
    assert balance is not None
    assert balance.current_balance == Decimal(10)
    entries = (await db_session.execute(select(LedgerEntry))).scalars().all()
    assert [(e.entry_type, e.amount) for e in entries] == [("usage", Decimal(-5))]

    assert notifications.sent[0].recipient_id == people.employee.id
    assert notifications.sent[0].kind == NotificationKind.DECISION


async def test_denial_leaves_balance_untouched(
    async_client: AsyncClient,
    db_session: AsyncSession,
    people: People,
    set_balance: Callable[..., Awaitable[object]],
) -> None:
    await set_balance(people.employee.id, "15")
    request_id = await _submit_pending(async_client, people.employee.id)

    response = await async_client.post(
        f"/escalations/pto/{request_id}/resolve",
        json={"decision": "deny", "reason": "Quarter close"},
        headers=_headers(people.manager.id, "manager"),
    )
    assert response.json()["status"] == "denied"
    balance = await get_leave_balance(db_session, people.employee.id)
    assert balance is not None
    assert balance.current_balance == Decimal(15)


async def test_only_assigned_manager_or_admin_can_decide(
    async_client: AsyncClient,
    people: People,
    set_balance: Callable[..., Awaitable[object]],
) -> None:
    await set_balance(people.employee.id, "15")
    request_id = await _submit_pending(async_client, people.employee.id)
    url = f"/escalations/pto/{request_id}/resolve"

    peer = await async_client.post(url, json={"decision": "approve"}, headers=_headers(people.senior.id, "manager"))
    assert peer.status_code == 404

    own = await async_client.post(url, json={"decision": "approve"}, headers=_headers(people.employee.id))
    assert own.status_code == 403
    assert own.json()["error"] == "ForbiddenError"

    admin = await async_client.post(
        f"/escalations/pto/{request_id}/resolve",
        json={"decision": "approve"},
        headers=_headers(uuid.uuid4(), "admin"),
    )
    assert admin.status_code == 200


async def test_decided_request_cannot_be_decided_again(
    async_client: AsyncClient,
    people: People,
    set_balance: Callable[..., Awaitable[object]],
) -> None:
    await set_balance(people.employee.id, "15")
    request_id = await _submit_pending(async_client, people.employee.id)
    url = f"/escalations/pto/{request_id}/resolve"
    headers = _headers(people.manager.id, "manager")

    await async_client.post(url, json={"decision": "approve"}, headers=headers)
    again = await async_client.post(url, json={"decision": "deny"}, headers=headers)
    assert again.status_code == 409
    assert again.json()["error"] == "InvalidStateTransition"


async def test_approval_fails_when_balance_no_longer_covers_request(
    async_client: AsyncClient,
    db_session: AsyncSession,
    people: People,
    set_balance: Callable[..., Awaitable[object]],
) -> None:
    balance = await set_balance(people.employee.id, "15")
    request_id = await _submit_pending(async_client, people.employee.id)

    balance.current_balance = Decimal(2)
    await db_session.commit()

    response = await async_client.post(
        f"/escalations/pto/{request_id}/resolve",
        json={"decision": "approve"},
        headers=_headers(people.manager.id, "manager"),
    )
    assert response.status_code == 409
    status = await async_client.get(f"/requests/pto/{request_id}", headers=_headers(people.employee.id))
    assert status.json()["status"] == "pending"


async def test_auto_approved_request_is_already_decided_for_its_manager(
    async_client: AsyncClient,
    db_session: AsyncSession,
    people: People,
    set_balance: Callable[..., Awaitable[object]],
) -> None:
    await set_balance(people.employee.id, "15")
    submitted = await async_client.post(
        "/requests/pto",
        json={"start_date": "2025-12-08", "end_date": "2025-12-09"},
        headers=_headers(people.employee.id),
    )
    request = submitted.json()["request"]
    assert request["status"] == "auto_approved"
    assert request["manager_id"] is None

    response = await async_client.post(
        f"/escalations/pto/{request['id']}/resolve",
        json={"decision": "approve"},
        headers=_headers(people.manager.id, "manager"),
    )
    assert response.status_code == 409
    assert response.json()["error"] == "InvalidStateTransition"

    balance = await get_leave_balance(db_session, people.employee.id)
    assert balance is not None
    assert balance.current_balance == Decimal(13)
