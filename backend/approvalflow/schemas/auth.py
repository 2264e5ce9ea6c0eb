# ruff: noqa: TC003
from __future__ import annotations

import uuid

from pydantic import BaseModel

from approvalflow.models.enums import ActorType


class RequestContext(BaseModel):
    """Who is acting on the engine, threaded explicitly through every service call."""

    user_id: uuid.UUID
    role: str = "employee"
    actor_type: ActorType = ActorType.USER

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"
