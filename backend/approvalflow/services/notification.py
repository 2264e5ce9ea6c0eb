from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from approvalflow.models.enums import NotificationKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notification:
    recipient_id: uuid.UUID
    message: str
    kind: NotificationKind


@runtime_checkable
class NotificationService(Protocol):
    """Interface for the external notification sender."""

    async def notify(self, recipient_id: uuid.UUID, message: str, kind: NotificationKind) -> None:
        """Deliver a notification. May raise NotificationError."""
        ...


class InMemoryNotificationService:
    """Stub sender that records notifications instead of delivering them."""

    def __init__(self) -> None:
        self.sent: list[Notification] = []

    async def notify(self, recipient_id: uuid.UUID, message: str, kind: NotificationKind) -> None:
        self.sent.append(Notification(recipient_id=recipient_id, message=message, kind=kind))


_notification_service: NotificationService = InMemoryNotificationService()


def get_notification_service() -> NotificationService:
    return _notification_service


def set_notification_service(service: NotificationService) -> None:
    """Override the service (for testing or production wiring)."""
    global _notification_service
    _notification_service = service


async def dispatch_notification(recipient_id: uuid.UUID, message: str, kind: NotificationKind) -> bool:
    """Send a notification after commit. Failures are logged and reported as False, never raised."""
    try:
        await get_notification_service().notify(recipient_id, message, kind)
    except Exception:
        logger.warning("Notification %s to %s failed", kind, recipient_id, exc_info=True)
        return False
    logger.info("Notification %s sent to %s", kind, recipient_id)
    return True
