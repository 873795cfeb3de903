"""
Shared request dependencies and error translation for the API routers.
"""

from __future__ import annotations

from typing import Dict

from fastapi import Depends
from fastapi.requests import Request

from cellar.FileSystemGate.models import ErrorKind, OperationResult
from cellar.SecurityManager import (
    AdminRequiredError,
    InvalidTokenError,
    SecurityManager,
    TokenClaims,
)


STATUS_BY_KIND: Dict[ErrorKind, int] = {
    ErrorKind.ACCESS_DENIED: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.BAD_REQUEST: 400,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.CONFLICT: 409,
    ErrorKind.INTERNAL_ERROR: 500,
}


class ApiError(Exception):
    """A failure to report as {"error": kind, "detail": message}."""

    def __init__(self, kind: ErrorKind, detail: str):
        super().__init__(detail)
        self.kind = kind
        self.detail = detail

    @property
    def status_code(self) -> int:
        return STATUS_BY_KIND.get(self.kind, 500)


def error_body(kind: ErrorKind, detail: str) -> Dict[str, str]:
    return {"error": kind.value, "detail": detail}


def raise_for_result(result: OperationResult) -> OperationResult:
    """Raise ApiError for a failed operation, otherwise hand the result back."""
    if not result.success:
        raise ApiError(result.error_kind or ErrorKind.INTERNAL_ERROR, result.error or "Operation failed")
    return result


def current_user(request: Request) -> TokenClaims:
    """Claims stored by AuthMiddleware for this request."""
    claims = getattr(request.state, "user", None)
    if claims is None:
        raise InvalidTokenError("Authorization header required")
    return claims


def require_admin(claims: TokenClaims = Depends(current_user)) -> TokenClaims:
    """Dependency that rejects non-admin callers with 403."""
    return SecurityManager.require_admin(claims)


__all__ = [
    "ApiError",
    "STATUS_BY_KIND",
    "AdminRequiredError",
    "error_body",
    "raise_for_result",
    "current_user",
    "require_admin",
]
