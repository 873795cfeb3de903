from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.requests import Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from cellar import Config
from cellar.FileSystemGate import ErrorKind, FileSystemGate
from cellar.IndexGate import IndexGate
from cellar.SecurityManager import AuthError, SecurityManager
from cellar.shared.gate import GateLogger

from gateway import lifecycle
from gateway.api import auth, files, health, index, users
from gateway.api.deps import ApiError, STATUS_BY_KIND, error_body
from gateway.middleware.security import AuthMiddleware

_log = GateLogger.get("Gateway")

KIND_BY_STATUS = {
    400: ErrorKind.BAD_REQUEST,
    401: ErrorKind.UNAUTHORIZED,
    403: ErrorKind.FORBIDDEN,
    404: ErrorKind.NOT_FOUND,
    405: ErrorKind.BAD_REQUEST,
    409: ErrorKind.CONFLICT,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    lifecycle.startup()
    try:
        yield
    finally:
        lifecycle.shutdown()


def _register_exception_handlers(app: FastAPI):
    @app.exception_handler(ApiError)
    async def handle_api_error(request: Request, exc: ApiError):
        return JSONResponse(status_code=exc.status_code, content=error_body(exc.kind, exc.detail))

    @app.exception_handler(AuthError)
    async def handle_auth_error(request: Request, exc: AuthError):
        return JSONResponse(status_code=STATUS_BY_KIND[exc.kind], content=error_body(exc.kind, str(exc)))

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content=error_body(ErrorKind.BAD_REQUEST, "Invalid request body"))

    @app.exception_handler(HTTPException)
    async def handle_http_exception(request: Request, exc: HTTPException):
        kind = KIND_BY_STATUS.get(exc.status_code, ErrorKind.INTERNAL_ERROR)
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(kind, str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )


def create_app() -> FastAPI:
    """Build the API application. Gates are initialized by the lifespan."""
    app = FastAPI(title="Cellar", lifespan=lifespan)

    _register_exception_handlers(app)

    app.include_router(health.create_router())
    app.include_router(auth.create_router(SecurityManager))
    app.include_router(users.create_router(SecurityManager))
    app.include_router(files.create_router(FileSystemGate))
    app.include_router(index.create_router(IndexGate))

    # Added before CORS so CORS is the outer layer
    app.add_middleware(AuthMiddleware, security_manager=SecurityManager)

    origins = Config.get("CORS_ORIGINS") or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Length", "Content-Disposition"],
    )

    return app


def main():
    """Run the API server with uvicorn."""
    import uvicorn

    config = Config.get_manager()
    host = config.get("HOST")
    port = config.get("PORT")
    _log.info(f"Starting Cellar on {host}:{port}")
    uvicorn.run(create_app(), host=host, port=port, log_level=(config.get("LOG_LEVEL") or "info").lower())


__all__ = ["create_app", "lifespan", "main"]
