from __future__ import annotations

from starlette.middleware.base import BaseHTTPMiddleware
from fastapi.responses import JSONResponse

from cellar.SecurityManager import AuthError
from cellar.shared.gate import GateLogger

_log = GateLogger.get("Gateway")


class AuthMiddleware(BaseHTTPMiddleware):
    """Require a valid bearer token on every API route except the public ones."""

    # Routes that don't require a token
    PUBLIC_PATHS = {
        "/api/login",
        "/api/health",
    }

    def __init__(self, app, security_manager):
        super().__init__(app)
        self._security = security_manager

    def _is_public(self, path: str) -> bool:
        if not path.startswith("/api/"):
            return True
        return path.rstrip("/") in self.PUBLIC_PATHS

    async def dispatch(self, request, call_next):
        path = request.url.path

        # CORS preflight carries no credentials
        if request.method == "OPTIONS" or self._is_public(path):
            return await call_next(request)

        try:
            claims = self._security.authenticate(request.headers.get("Authorization"))
        except AuthError as e:
            _log.debug(f"Rejected {request.method} {path}: {e}")
            return JSONResponse(
                status_code=401,
                content={"error": e.kind.value, "detail": str(e)},
                headers={"WWW-Authenticate": "Bearer"},
            )

        request.state.user = claims
        return await call_next(request)


__all__ = ["AuthMiddleware"]
