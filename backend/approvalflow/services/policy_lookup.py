"""Auto-approval thresholds sourced from the handbook/policy collaborator.

The collaborator may not know a threshold, or may be unavailable; the numeric
fallbacks from settings apply in both cases.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Protocol, runtime_checkable

from approvalflow.config import get_settings
from approvalflow.models.enums import EmployeeLevel, RequestType

logger = logging.getLogger(__name__)


@runtime_checkable
class PolicyThresholdService(Protocol):
    """Interface for looking up auto-approval thresholds."""

    async def lookup_threshold(self, request_type: RequestType, level: EmployeeLevel) -> Decimal | None:
        """Return the threshold, or None when the policy source has no answer."""
        ...


class InMemoryPolicyThresholdService:
    """Stub policy source holding explicit overrides only."""

    def __init__(self) -> None:
        self._thresholds: dict[tuple[RequestType, EmployeeLevel], Decimal] = {}

    def seed(self, request_type: RequestType, level: EmployeeLevel, threshold: Decimal) -> None:
        self._thresholds[(request_type, level)] = threshold

    async def lookup_threshold(self, request_type: RequestType, level: EmployeeLevel) -> Decimal | None:
        return self._thresholds.get((request_type, level))


_policy_service: PolicyThresholdService = InMemoryPolicyThresholdService()


def get_policy_threshold_service() -> PolicyThresholdService:
    return _policy_service


def set_policy_threshold_service(service: PolicyThresholdService) -> None:
    """Override the service (for testing or production wiring)."""
    global _policy_service
    _policy_service = service


def default_threshold(request_type: RequestType, level: EmployeeLevel) -> Decimal:
    """Numeric fallback threshold from settings."""
    settings = get_settings()
    if request_type == RequestType.PTO:
        if level == EmployeeLevel.ELEVATED:
            return settings.pto_auto_approve_days_elevated
        return settings.pto_auto_approve_days_standard
    if level == EmployeeLevel.ELEVATED:
        return settings.expense_auto_approve_elevated
    return settings.expense_auto_approve_standard


async def lookup_policy_threshold(request_type: RequestType, level: EmployeeLevel) -> Decimal:
    """Resolve the auto-approval threshold for a request type and employee level."""
    try:
        threshold = await get_policy_threshold_service().lookup_threshold(request_type, level)
    except Exception:
        logger.warning(
            "Policy lookup failed for %s/%s; using default threshold", request_type, level, exc_info=True
        )
        threshold = None
    if threshold is None:
        return default_threshold(request_type, level)
    return Decimal(threshold)
