# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any

import sqlalchemy as sa
from sqlalchemy import event
from sqlmodel import Field

from approvalflow.models.base import UUIDBase, now_utc

logger = logging.getLogger(__name__)


class AuditImmutabilityError(Exception):
    """Raised when code tries to modify or delete an audit row."""


class AuditLog(UUIDBase, table=True):
    """Immutable record of every state-changing decision."""

    __tablename__ = "audit_log"
    __table_args__ = (sa.Index("ix_audit_entity", "entity_type", "entity_id"),)

    entity_type: str = Field(max_length=50)
    entity_id: uuid.UUID
    action: str = Field(max_length=50)
    actor_id: uuid.UUID | None = None
    actor_type: str = Field(default="user", max_length=20)
    details: dict[str, Any] | None = Field(default=None, sa_type=sa.JSON)
    created_at: datetime = Field(
        default_factory=now_utc,
        index=True,
        sa_type=sa.DateTime(timezone=True),  # ty: ignore[invalid-argument-type]
    )


def _reject_update(_mapper: Any, _connection: Any, target: AuditLog) -> None:
    logger.error("Blocked UPDATE of audit entry %s", target.id)
    msg = f"Audit entry {target.id} is immutable"
    raise AuditImmutabilityError(msg)


def _reject_delete(_mapper: Any, _connection: Any, target: AuditLog) -> None:
    logger.error("Blocked DELETE of audit entry %s", target.id)
    msg = f"Audit entry {target.id} cannot be deleted"
    raise AuditImmutabilityError(msg)


def register_audit_immutability() -> None:
    """Install ORM listeners that keep the audit log append-only. Safe to call repeatedly."""
    if not event.contains(AuditLog, "before_update", _reject_update):
        event.listen(AuditLog, "before_update", _reject_update)
    if not event.contains(AuditLog, "before_delete", _reject_delete):
        event.listen(AuditLog, "before_delete", _reject_delete)
