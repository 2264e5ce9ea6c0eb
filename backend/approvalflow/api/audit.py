# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Query

from approvalflow.api.deps import AdminDep
from approvalflow.db import SessionDep
from approvalflow.models.enums import AuditEntityType
from approvalflow.schemas.audit import AuditListResponse
from approvalflow.services.audit import list_audit_entries

audit_router = APIRouter(
    prefix="/audit",
    tags=["audit"],
)


@audit_router.get("", response_model=AuditListResponse)
async def list_audit(
    session: SessionDep,
    ctx: AdminDep,
    entity_type: AuditEntityType | None = Query(default=None),
    entity_id: uuid.UUID | None = Query(default=None),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=200),
) -> AuditListResponse:
    """Read the audit trail, optionally for one entity (admin only)."""
    return await list_audit_entries(
        session,
        entity_type.value if entity_type is not None else None,
        entity_id,
        offset,
        limit,
    )
