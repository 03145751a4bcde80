from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ..domain import ErrorKind
from ..domain.errors import ActivityError


@dataclass(slots=True)
class ToolResult:
    """Uniform tool outcome: ``data`` on success, ``error`` and ``error_kind`` otherwise."""

    success: bool
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    retryable: Optional[bool] = None
    hint: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, data: Dict[str, Any]) -> "ToolResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(
        cls,
        kind: ErrorKind,
        message: str,
        *,
        retryable: Optional[bool] = None,
        hint: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> "ToolResult":
        return cls(
            success=False,
            error=message,
            error_kind=kind,
            retryable=retryable,
            hint=hint,
            details=dict(details or {}),
        )

    @classmethod
    def from_error(cls, error: ActivityError) -> "ToolResult":
        return cls.fail(error.kind, error.message, hint=error.hint, details=error.details)

    def to_dict(self) -> Dict[str, Any]:
        if self.success:
            return {"success": True, "data": self.data or {}}
        payload: Dict[str, Any] = {
            "success": False,
            "error": self.error,
            "errorKind": self.error_kind.value if self.error_kind else None,
        }
        if self.retryable is not None:
            payload["retryable"] = self.retryable
        if self.hint:
            payload["hint"] = self.hint
        if self.details:
            payload["details"] = self.details
        return payload


__all__ = ["ToolResult"]
