from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, select
from sqlmodel import col

from approvalflow.models.audit import AuditLog
from approvalflow.schemas.audit import AuditEntryResponse, AuditListResponse

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession
    from sqlmodel import SQLModel

    from approvalflow.models.enums import AuditAction, AuditEntityType
    from approvalflow.schemas.auth import RequestContext


def to_json_safe(value: Any) -> Any:
    """Convert UUIDs, dates and decimals (recursively) into JSON-safe values."""
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, dict):
        return {k: to_json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json_safe(v) for v in value]
    return value


def model_to_audit_dict(model: SQLModel) -> dict[str, Any]:
    """Serialize a SQLModel instance to a JSON-safe dict for audit logging."""
    return to_json_safe(model.model_dump())


async def write_audit_log(
    session: AsyncSession,
    ctx: RequestContext,
    *,
    entity_type: AuditEntityType,
    entity_id: uuid.UUID,
    action: AuditAction,
    details: dict[str, Any] | None = None,
) -> AuditLog:
    """Write an immutable audit log entry within the caller's transaction.

    The entry is flushed and committed together with the mutation it describes, so a
    failed audit insert aborts that mutation too.
    """
    entry = AuditLog(
        entity_type=entity_type.value,
        entity_id=entity_id,
        action=action.value,
        actor_id=ctx.user_id,
        actor_type=ctx.actor_type.value,
        details=to_json_safe(details) if details is not None else None,
    )
    session.add(entry)
    return entry


async def list_audit_entries(
    session: AsyncSession,
    entity_type: str | None = None,
    entity_id: uuid.UUID | None = None,
    offset: int = 0,
    limit: int = 50,
) -> AuditListResponse:
    """List audit entries, oldest first, optionally for a single entity."""
    filters = []
    if entity_type is not None:
        filters.append(col(AuditLog.entity_type) == entity_type)
    if entity_id is not None:
        filters.append(col(AuditLog.entity_id) == entity_id)

    count_result = await session.execute(select(func.count()).select_from(AuditLog).where(*filters))
    total = count_result.scalar_one()

    result = await session.execute(
        select(AuditLog).where(*filters).order_by(col(AuditLog.created_at)).offset(offset).limit(limit)
    )
    items = [
        AuditEntryResponse(
            id=e.id,
            entity_type=e.entity_type,
            entity_id=e.entity_id,
            action=e.action,
            actor_id=e.actor_id,
            actor_type=e.actor_type,
            details=e.details,
            created_at=e.created_at,
        )
        for e in result.scalars().all()
    ]
    return AuditListResponse(items=items, total=total)
