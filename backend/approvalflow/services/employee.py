# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from pydantic import BaseModel

from approvalflow.exceptions import ForbiddenError, NotFoundError
from approvalflow.models.enums import EmployeeLevel

if TYPE_CHECKING:
    from approvalflow.schemas.auth import RequestContext

# Bound on manager-chain walks; guards against cycles in external data.
_MAX_CHAIN_DEPTH = 32


class EmployeeInfo(BaseModel):
    """Employee metadata from the Employee Service."""

    id: uuid.UUID
    name: str
    email: str
    level: EmployeeLevel = EmployeeLevel.STANDARD
    manager_id: uuid.UUID | None = None
    hire_date: date | None = None


@runtime_checkable
class EmployeeService(Protocol):
    """Interface for the Employee Service."""

    async def get_employee(self, employee_id: uuid.UUID) -> EmployeeInfo | None:
        """Fetch employee metadata. Returns None if not found."""
        ...

    async def list_employees(self) -> list[EmployeeInfo]:
        """List all employees."""
        ...


class InMemoryEmployeeService:
    """In-memory stub implementation for development."""

    def __init__(self) -> None:
        self._employees: dict[uuid.UUID, EmployeeInfo] = {}

    def seed(self, employee: EmployeeInfo) -> None:
        """Seed an employee for testing."""
        self._employees[employee.id] = employee

    async def get_employee(self, employee_id: uuid.UUID) -> EmployeeInfo | None:
        """Fetch employee metadata. Returns None if not found."""
        return self._employees.get(employee_id)

    async def list_employees(self) -> list[EmployeeInfo]:
        """List all employees."""
        return list(self._employees.values())


_employee_service: EmployeeService = InMemoryEmployeeService()


def get_employee_service() -> EmployeeService:
    """FastAPI dependency for the Employee Service."""
    return _employee_service


def set_employee_service(service: EmployeeService) -> None:
    """Override the service (for testing or production wiring)."""
    global _employee_service
    _employee_service = service


async def require_employee(employee_id: uuid.UUID) -> EmployeeInfo:
    """Fetch an employee or raise NotFoundError."""
    employee = await get_employee_service().get_employee(employee_id)
    if employee is None:
        raise NotFoundError(f"Employee {employee_id} not found")
    return employee


async def is_in_management_chain(manager_id: uuid.UUID, employee_id: uuid.UUID) -> bool:
    """Return True when manager_id manages employee_id directly or transitively."""
    service = get_employee_service()
    seen: set[uuid.UUID] = set()
    current = await service.get_employee(employee_id)
    while current is not None and current.manager_id is not None and len(seen) < _MAX_CHAIN_DEPTH:
        if current.manager_id == manager_id:
            return True
        if current.manager_id in seen:
            return False
        seen.add(current.manager_id)
        current = await service.get_employee(current.manager_id)
    return False


async def resolve_subject(ctx: RequestContext, employee_id: uuid.UUID | None = None) -> EmployeeInfo:
    """Return the employee an action targets, defaulting to the caller.

    Admins may act for anyone, and managers for anyone in their reporting chain.
    """
    target = employee_id if employee_id is not None else ctx.user_id
    if target != ctx.user_id and not ctx.is_admin and not await is_in_management_chain(ctx.user_id, target):
        raise ForbiddenError("Not allowed to act for this employee")
    return await require_employee(target)
