# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel


class AuditEntryResponse(BaseModel):
    id: uuid.UUID
    entity_type: str
    entity_id: uuid.UUID
    action: str
    actor_id: uuid.UUID | None
    actor_type: str
    details: dict[str, Any] | None
    created_at: datetime


class AuditListResponse(BaseModel):
    """Audit trail for one entity, oldest first."""

    items: list[AuditEntryResponse]
    total: int
