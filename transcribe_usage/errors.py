"""Exception types raised by the usage and account-lifecycle services."""

from __future__ import annotations

from enum import Enum
from typing import Any


class QuotaErrorCode(str, Enum):
    """Machine-readable reasons attached to quota rejections."""

    TRANSCRIPTIONS = "QUOTA_EXCEEDED_TRANSCRIPTIONS"
    DURATION = "QUOTA_EXCEEDED_DURATION"
    FILESIZE = "QUOTA_EXCEEDED_FILESIZE"
    HARD_CAP = "QUOTA_EXCEEDED_HARD_CAP"
    PAYG_CREDITS = "QUOTA_EXCEEDED_PAYG_CREDITS"
    ON_DEMAND_ANALYSES = "QUOTA_EXCEEDED_ON_DEMAND_ANALYSES"


class UsageLifecycleError(Exception):
    """Base class for errors raised by this package."""


class NotFoundError(UsageLifecycleError):
    """A user or reset job does not exist."""

    def __init__(self, resource: str, identifier: str):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} not found: {identifier}")


class QuotaExceededError(UsageLifecycleError):
    """The requested operation would exceed the user's subscription quota.

    Callers branch on ``code``; ``message`` is for display only.
    """

    status_code = 402

    def __init__(self, code: QuotaErrorCode, message: str):
        self.code = code
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Return the error body surfaced to API clients."""
        return {"code": self.code.value, "message": self.message}


class InvalidConfigurationError(UsageLifecycleError):
    """Static configuration is missing or inconsistent (e.g., a tier without limits)."""


class ExternalServiceError(UsageLifecycleError):
    """A collaborating service (payments, identity, blob storage) failed."""

    def __init__(self, service: str, message: str):
        self.service = service
        super().__init__(f"{service}: {message}")
