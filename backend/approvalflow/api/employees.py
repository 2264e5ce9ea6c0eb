# ruff: noqa: TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter

from approvalflow.api.deps import AdminDep, ContextDep
from approvalflow.schemas.employee import EmployeeListResponse, EmployeeResponse, UpsertEmployeeRequest
from approvalflow.services.employee import EmployeeInfo, get_employee_service, require_employee

employees_router = APIRouter(
    prefix="/employees",
    tags=["employees"],
)


def _to_response(employee: EmployeeInfo) -> EmployeeResponse:
    return EmployeeResponse(
        id=employee.id,
        name=employee.name,
        email=employee.email,
        level=employee.level,
        manager_id=employee.manager_id,
        hire_date=employee.hire_date,
    )


@employees_router.put("/{employee_id}", response_model=EmployeeResponse)
async def upsert_employee(
    employee_id: uuid.UUID,
    payload: UpsertEmployeeRequest,
    ctx: AdminDep,
) -> EmployeeResponse:
    """Create or update an employee in the stub directory (admin only)."""
    employee = EmployeeInfo(id=employee_id, **payload.model_dump())
    get_employee_service().seed(employee)  # ty: ignore[unresolved-attribute]
    return _to_response(employee)


@employees_router.get("/{employee_id}", response_model=EmployeeResponse)
async def get_employee(employee_id: uuid.UUID, ctx: ContextDep) -> EmployeeResponse:
    return _to_response(await require_employee(employee_id))


@employees_router.get("", response_model=EmployeeListResponse)
async def list_employees(ctx: ContextDep) -> EmployeeListResponse:
    """List employees known to the directory."""
    items = [_to_response(e) for e in await get_employee_service().list_employees()]
    return EmployeeListResponse(items=items, total=len(items))
