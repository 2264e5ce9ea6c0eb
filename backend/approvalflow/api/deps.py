# ruff: noqa: B008, TC003
from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import Depends, Header

from approvalflow.exceptions import ForbiddenError
from approvalflow.schemas.auth import RequestContext


async def get_request_context(
    x_user_id: uuid.UUID = Header(),
    x_role: str = Header(default="employee"),
) -> RequestContext:
    """Extract dev auth context from request headers."""
    return RequestContext(user_id=x_user_id, role=x_role)


ContextDep = Annotated[RequestContext, Depends(get_request_context)]


async def require_admin(ctx: ContextDep) -> RequestContext:
    """Require admin role for the request."""
    if not ctx.is_admin:
        raise ForbiddenError("Admin access required")
    return ctx


AdminDep = Annotated[RequestContext, Depends(require_admin)]
