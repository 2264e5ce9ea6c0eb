from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from approvalflow.db import get_session
from approvalflow.main import app
from approvalflow.models import SQLModel
from approvalflow.models.balance import LeaveBalance
from approvalflow.models.enums import EmployeeLevel
from approvalflow.services.employee import EmployeeInfo, InMemoryEmployeeService, set_employee_service
from approvalflow.services.notification import InMemoryNotificationService, set_notification_service
from approvalflow.services.policy_lookup import InMemoryPolicyThresholdService, set_policy_threshold_service

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable, Iterator

    from sqlalchemy.ext.asyncio import AsyncEngine


@dataclass(frozen=True)
class People:
    """Directory seeded for every test: a manager with two reports and an employee with no manager."""

    manager: EmployeeInfo
    employee: EmployeeInfo
    senior: EmployeeInfo
    orphan: EmployeeInfo


@pytest.fixture
async def engine() -> AsyncIterator[AsyncEngine]:
    """A fresh in-memory SQLite database per test."""
    _engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with _engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield _engine
    await _engine.dispose()


@pytest.fixture
async def db_session(engine: AsyncEngine) -> AsyncIterator[AsyncSession]:
    async with AsyncSession(engine, expire_on_commit=False) as session:
        yield session


@pytest.fixture
async def async_client(db_session: AsyncSession) -> AsyncIterator[AsyncClient]:
    """Async HTTP client with the database session dependency overridden."""

    async def _override_get_session() -> AsyncIterator[AsyncSession]:
        yield db_session

    app.dependency_overrides[get_session] = _override_get_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def people() -> Iterator[People]:
    """Seed the in-memory employee directory for every test."""
    manager = EmployeeInfo(
        id=uuid.uuid4(),
        name="Ramya Manager",
        email="ramya@example.com",
        level=EmployeeLevel.ELEVATED,
        hire_date=date(2018, 6, 1),
    )
    employee = EmployeeInfo(
        id=uuid.uuid4(),
        name="Jordan Junior",
        email="jordan@example.com",
        level=EmployeeLevel.STANDARD,
        manager_id=manager.id,
        hire_date=date(2024, 2, 15),
    )
    senior = EmployeeInfo(
        id=uuid.uuid4(),
        name="Sam Senior",
        email="sam@example.com",
        level=EmployeeLevel.ELEVATED,
        manager_id=manager.id,
        hire_date=date(2021, 9, 1),
    )
    orphan = EmployeeInfo(
        id=uuid.uuid4(),
        name="Olive Orphan",
        email="olive@example.com",
        level=EmployeeLevel.STANDARD,
    )

    svc = InMemoryEmployeeService()
    for person in (manager, employee, senior, orphan):
        svc.seed(person)
    set_employee_service(svc)
    yield People(manager=manager, employee=employee, senior=senior, orphan=orphan)
    set_employee_service(InMemoryEmployeeService())


@pytest.fixture(autouse=True)
def notifications() -> Iterator[InMemoryNotificationService]:
    svc = InMemoryNotificationService()
    set_notification_service(svc)
    yield svc
    set_notification_service(InMemoryNotificationService())


@pytest.fixture(autouse=True)
def thresholds() -> Iterator[InMemoryPolicyThresholdService]:
    svc = InMemoryPolicyThresholdService()
    set_policy_threshold_service(svc)
    yield svc
    set_policy_threshold_service(InMemoryPolicyThresholdService())


@pytest.fixture
def set_balance(db_session: AsyncSession) -> Callable[[uuid.UUID, str], Awaitable[LeaveBalance]]:
    """Return a helper that stores a committed PTO balance for an employee."""

    async def _set(employee_id: uuid.UUID, days: str) -> LeaveBalance:
        balance = LeaveBalance(
            employee_id=employee_id,
            current_balance=Decimal(days),
            total_accrued=Decimal(days),
        )
        db_session.add(balance)
        await db_session.commit()
        return balance

    return _set
