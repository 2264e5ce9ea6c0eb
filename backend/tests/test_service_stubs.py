"""Tests for the employee, policy threshold and notification service stubs."""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import TYPE_CHECKING

from approvalflow.models.enums import EmployeeLevel, NotificationKind, RequestType
from approvalflow.services.employee import EmployeeInfo, InMemoryEmployeeService, is_in_management_chain
from approvalflow.services.notification import (
    InMemoryNotificationService,
    dispatch_notification,
    set_notification_service,
)
from approvalflow.services.policy_lookup import InMemoryPolicyThresholdService, lookup_policy_threshold

if TYPE_CHECKING:
    from httpx import AsyncClient

    from tests.conftest import People


def _make_employee(name: str = "Jane", manager_id: uuid.UUID | None = None) -> EmployeeInfo:
    return EmployeeInfo(
        id=uuid.uuid4(),
        name=name,
        email=f"{name.lower()}@example.com",
        manager_id=manager_id,
    )


# ---------------------------------------------------------------------------
# InMemoryEmployeeService tests
# ---------------------------------------------------------------------------


async def test_employee_service_get_not_found() -> None:
    svc = InMemoryEmployeeService()
    result = await svc.get_employee(uuid.uuid4())
    assert result is None


async def test_employee_service_seed_and_get() -> None:
    svc = InMemoryEmployeeService()
    emp = _make_employee()
    svc.seed(emp)
    result = await svc.get_employee(emp.id)
    assert result is not None
    assert result.id == emp.id
    assert result.level == EmployeeLevel.STANDARD


async def test_employee_service_list_empty() -> None:
    svc = InMemoryEmployeeService()
    result = await svc.list_employees()
    assert result == []


async def test_management_chain(people: People) -> None:
    assert await is_in_management_chain(people.manager.id, people.employee.id)
    assert not await is_in_management_chain(people.employee.id, people.manager.id)
    assert not await is_in_management_chain(people.senior.id, people.employee.id)
    assert not await is_in_management_chain(people.manager.id, people.orphan.id)


# ---------------------------------------------------------------------------
# Policy threshold lookup
# ---------------------------------------------------------------------------


async def test_threshold_falls_back_to_settings(thresholds: InMemoryPolicyThresholdService) -> None:
    assert await lookup_policy_threshold(RequestType.PTO, EmployeeLevel.STANDARD) == Decimal(3)
    assert await lookup_policy_threshold(RequestType.PTO, EmployeeLevel.ELEVATED) == Decimal(10)
    assert await lookup_policy_threshold(RequestType.EXPENSE, EmployeeLevel.STANDARD) == Decimal(100)
    assert await lookup_policy_threshold(RequestType.EXPENSE, EmployeeLevel.ELEVATED) == Decimal(500)


async def test_threshold_override_wins(thresholds: InMemoryPolicyThresholdService) -> None:
    thresholds.seed(RequestType.PTO, EmployeeLevel.STANDARD, Decimal(5))
    assert await lookup_policy_threshold(RequestType.PTO, EmployeeLevel.STANDARD) == Decimal(5)
    assert await lookup_policy_threshold(RequestType.PTO, EmployeeLevel.ELEVATED) == Decimal(10)


# ---------------------------------------------------------------------------
# Notification dispatch
# ---------------------------------------------------------------------------


async def test_dispatch_records_notification(notifications: InMemoryNotificationService) -> None:
    recipient = uuid.uuid4()
    assert await dispatch_notification(recipient, "hello", NotificationKind.DECISION)
    assert notifications.sent[0].recipient_id == recipient


async def test_dispatch_swallows_sender_failure() -> None:
    class _Broken:
        async def notify(self, recipient_id: uuid.UUID, message: str, kind: NotificationKind) -> None:
            raise RuntimeError("gateway timeout")

    set_notification_service(_Broken())
    assert not await dispatch_notification(uuid.uuid4(), "hello", NotificationKind.ESCALATION)


# ---------------------------------------------------------------------------
# Employee directory endpoints
# ---------------------------------------------------------------------------


async def test_admin_upserts_employee(async_client: AsyncClient, people: People) -> None:
    new_id = uuid.uuid4()
    response = await async_client.put(
        f"/employees/{new_id}",
        json={"name": "Priya New", "email": "priya@example.com", "manager_id": str(people.manager.id)},
        headers={"X-User-Id": str(uuid.uuid4()), "X-Role": "admin"},
    )
    assert response.status_code == 200
    assert response.json()["level"] == "standard"

    fetched = await async_client.get(f"/employees/{new_id}", headers={"X-User-Id": str(people.manager.id)})
    assert fetched.json()["manager_id"] == str(people.manager.id)

    listed = await async_client.get("/employees", headers={"X-User-Id": str(people.manager.id)})
    assert listed.json()["total"] == 5


async def test_upsert_requires_admin(async_client: AsyncClient, people: People) -> None:
    response = await async_client.put(
        f"/employees/{uuid.uuid4()}",
        json={"name": "Mallory", "email": "mallory@example.com"},
        headers={"X-User-Id": str(people.employee.id)},
    )
    assert response.status_code == 403


async def test_unknown_employee_is_404(async_client: AsyncClient, people: People) -> None:
    response = await async_client.get(f"/employees/{uuid.uuid4()}", headers={"X-User-Id": str(people.employee.id)})
    assert response.status_code == 404
