# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date

from pydantic import BaseModel, Field

from approvalflow.models.enums import EmployeeLevel


class UpsertEmployeeRequest(BaseModel):
    """Request body for upserting an employee in the stub service."""

    name: str = Field(min_length=1, max_length=200)
    email: str = Field(min_length=1, max_length=255)
    level: EmployeeLevel = EmployeeLevel.STANDARD
    manager_id: uuid.UUID | None = None
    hire_date: date | None = None


class EmployeeResponse(BaseModel):
    """Response schema for an employee."""

    id: uuid.UUID
    name: str
    email: str
    level: EmployeeLevel
    manager_id: uuid.UUID | None
    hire_date: date | None


class EmployeeListResponse(BaseModel):
    """List of employees."""

    items: list[EmployeeResponse]
    total: int
