"""
Error taxonomy shared by services and the web adapter.

Why:
    Services stay framework-free and signal failures by raising these
    exceptions. The web layer renders them with a single exception handler so
    status codes and payload shapes cannot drift between routers.
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class AppError(Exception):
    """Base class carrying an HTTP status, a stable error code and a detail."""

    status_code = 500
    code = "internal_error"

    def __init__(self, detail: Optional[str] = None, **extra: Any) -> None:
        super().__init__(detail or self.code)
        self.detail = detail
        self.extra: Dict[str, Any] = extra

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.code}
        if self.detail:
            payload["detail"] = self.detail
        payload.update(self.extra)
        return payload


class Unauthenticated(AppError):
    status_code = 401
    code = "unauthenticated"


class Forbidden(AppError):
    status_code = 403
    code = "forbidden"


class SelfModificationForbidden(Forbidden):
    """An admin tried to change or remove their own account.

    Answered with 400 rather than 403: the caller is authorized in general,
    the request itself is invalid.
    """

    status_code = 400
    code = "bad_request"


class ValidationError(AppError):
    status_code = 400
    code = "bad_request"


class NotFound(AppError):
    status_code = 404
    code = "not_found"


class Conflict(AppError):
    status_code = 409
    code = "conflict"


class InternalError(AppError):
    status_code = 500
    code = "internal_error"


class AuditWriteError(InternalError):
    """The audit trail could not be written; the mutation must not look audited."""


__all__ = [
    "AppError",
    "Unauthenticated",
    "Forbidden",
    "SelfModificationForbidden",
    "ValidationError",
    "NotFound",
    "Conflict",
    "InternalError",
    "AuditWriteError",
]
