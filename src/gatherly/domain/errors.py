"""Business-rule errors raised inside the engine.

The tool registry is the only place these are caught; it turns each one into
a failed ``ToolResult`` carrying the error's ``kind``.
"""

from __future__ import annotations

from typing import Any, ClassVar, Dict, Optional

from .enums import ErrorKind


class ActivityError(Exception):
    """Base class for business-rule failures surfaced to the caller verbatim."""

    kind: ClassVar[ErrorKind] = ErrorKind.VALIDATION_FAILED

    def __init__(self, message: str, *, hint: Optional[str] = None, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint
        self.details = dict(details or {})


class NotFoundError(ActivityError):
    """Raised when the referenced activity, participation or intent does not exist."""

    kind = ErrorKind.NOT_FOUND


class ForbiddenError(ActivityError):
    """Raised when the caller does not own the record it tries to act on."""

    kind = ErrorKind.FORBIDDEN


class InvalidStateError(ActivityError):
    """Raised when the record's lifecycle phase does not allow the action."""

    kind = ErrorKind.INVALID_STATE


class CapacityExceededError(ActivityError):
    kind = ErrorKind.CAPACITY_EXCEEDED


class QuotaExhaustedError(ActivityError):
    kind = ErrorKind.QUOTA_EXHAUSTED


class ExpiredError(ActivityError):
    """Raised when the activity's (or intent's) time window has already passed."""

    kind = ErrorKind.EXPIRED


class AlreadyJoinedError(ActivityError):
    kind = ErrorKind.ALREADY_JOINED


class DuplicateActionError(ActivityError):
    kind = ErrorKind.DUPLICATE_ACTION


class ValidationFailedError(ActivityError):
    kind = ErrorKind.VALIDATION_FAILED


class InfrastructureError(RuntimeError):
    """Base class for transient faults the caller may retry."""


class StoreUnavailableError(InfrastructureError):
    """Raised when the durable store cannot be reached or rejects the call."""


class ModerationUnavailableError(InfrastructureError):
    """Raised when the content-safety classifier cannot be reached in time."""


class IdentityUnavailableError(InfrastructureError):
    """Raised when the identity provider cannot be reached to verify a token."""


ERRORS_BY_KIND: Dict[ErrorKind, type[ActivityError]] = {
    cls.kind: cls
    for cls in (
        NotFoundError,
        ForbiddenError,
        InvalidStateError,
        CapacityExceededError,
        QuotaExhaustedError,
        ExpiredError,
        AlreadyJoinedError,
        DuplicateActionError,
        ValidationFailedError,
    )
}


def error_for_kind(kind: str, message: str) -> ActivityError:
    """Rebuild a typed error from a kind string reported by the store."""

    try:
        error_cls = ERRORS_BY_KIND[ErrorKind(kind)]
    except (KeyError, ValueError):
        error_cls = ValidationFailedError
    return error_cls(message)
