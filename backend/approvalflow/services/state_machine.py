"""Request lifecycle.

pending_approval is the only entry state. The evaluator moves a request to
auto_approved, pending or denied; a manager moves a pending request to approved
or denied. Re-escalating a pending request keeps it pending.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from approvalflow.exceptions import InvalidStateTransition
from approvalflow.models.base import now_utc
from approvalflow.models.enums import RequestStatus

if TYPE_CHECKING:
    from approvalflow.models.request import AnyRequest

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[RequestStatus, frozenset[RequestStatus]] = {
    RequestStatus.PENDING_APPROVAL: frozenset(
        {RequestStatus.AUTO_APPROVED, RequestStatus.PENDING, RequestStatus.DENIED}
    ),
    RequestStatus.PENDING: frozenset({RequestStatus.PENDING, RequestStatus.APPROVED, RequestStatus.DENIED}),
}

TERMINAL_STATES = frozenset({RequestStatus.AUTO_APPROVED, RequestStatus.APPROVED, RequestStatus.DENIED})

# Entering one of these charges the ledger in the same commit.
CHARGING_STATES = frozenset({RequestStatus.AUTO_APPROVED, RequestStatus.APPROVED})

OPEN_STATES = (RequestStatus.PENDING_APPROVAL, RequestStatus.PENDING)


def can_transition(current: RequestStatus, target: RequestStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def transition(request: AnyRequest, target: RequestStatus) -> RequestStatus:
    """Move a request to ``target``, returning the previous status.

    This is the only place that writes ``request.status``.
    """
    current = RequestStatus(request.status)
    if not can_transition(current, target):
        if current in TERMINAL_STATES:
            msg = f"Request {request.id} is already {current.value}"
        else:
            msg = f"Request {request.id} cannot move from {current.value} to {target.value}"
        raise InvalidStateTransition(msg)

    request.status = target.value
    request.updated_at = now_utc()
    logger.debug("Request %s: %s -> %s", request.id, current, target)
    return current
