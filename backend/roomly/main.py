"""
Roomly Backend - FastAPI Application Factory
=============================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn to start the server (uvicorn roomly.main:app).

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                       FastAPI App                        │
    │                                                          │
    │  Middleware: CORS → Request ID → Logging → Rate Limit    │
    │              → GZip                                      │
    │                                                          │
    │  App dependency: authenticate (session cookie / Bearer)  │
    │                                                          │
    │  Routes:                                                 │
    │    /healthcheck   /v1/auth   /v1/user   /v1/listings     │
    │    /v1/bookings   /v1/upload/image   /v1/files           │
    │                                                          │
    │  Exception handlers: RoomlyError subclasses → status +   │
    │  {"error", "message", "details", "request_id"}           │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging, configuration warnings, storage directory
    Shutdown: dispose database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncGenerator, Dict, Optional, Type

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from roomly import __version__
from roomly.config import settings
from roomly.database import dispose_engine
from roomly.dependencies import authenticate, clear_session_cookie
from roomly.exceptions import (
    AlreadyAuthenticatedError,
    AuthenticationRequiredError,
    BadRequestError,
    ConflictError,
    DatabaseError,
    ExternalServiceError,
    FileStorageError,
    ForbiddenError,
    InactiveAccountError,
    InvalidAuthenticationTokenError,
    InvalidCredentialsError,
    NotFoundError,
    RateLimitExceededError,
    RoomlyError,
    ValidationError,
)
from roomly.middleware.logging import RequestLoggingMiddleware
from roomly.middleware.rate_limit import RateLimitMiddleware
from roomly.middleware.request_id import RequestIDMiddleware, request_id_var
from roomly.routes import auth, bookings, health, listings, uploads, users

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Structured Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    Request IDs are part of the access log message (see middleware.logging).
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party libraries log every operation at DEBUG/INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("Roomly Backend %s starting up...", __version__)

    for warning in settings.validate_required_for_production():
        logger.warning("Configuration: %s", warning)

    storage = Path(settings.storage_root)
    storage.mkdir(parents=True, exist_ok=True)
    logger.info("Storage directory: %s", storage.resolve())

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Roomly Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

# Exception class → (HTTP status, error code). Starlette resolves handlers
# along the exception's MRO, so subclasses listed here win over their bases.
ERROR_STATUS: Dict[Type[RoomlyError], tuple] = {
    BadRequestError: (400, "bad_request"),
    AlreadyAuthenticatedError: (400, "already_authenticated"),
    ValidationError: (422, "failed_validation"),
    AuthenticationRequiredError: (401, "authentication_required"),
    InvalidAuthenticationTokenError: (401, "invalid_token"),
    InvalidCredentialsError: (401, "invalid_credentials"),
    InactiveAccountError: (403, "inactive_account"),
    ForbiddenError: (403, "forbidden"),
    NotFoundError: (404, "not_found"),
    ConflictError: (409, "conflict"),
    RateLimitExceededError: (429, "rate_limit_exceeded"),
    ExternalServiceError: (502, "external_service_error"),
}


def error_response(
    status_code: int,
    error: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error,
            "message": message,
            "details": details or None,
            "request_id": request_id_var.get(""),
        },
        headers=headers,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register global exception handlers for consistent error responses.

    Handler hierarchy:
        RoomlyError subclasses  → ERROR_STATUS table
        FileStorageError        → 500 server_error (message is generic)
        DatabaseError           → 500 server_error (details logged only)
        RequestValidationError  → 400 bad_request (malformed body or params)
        HTTPException           → its own status (unknown route, bad method)
        Exception (fallback)    → 500 internal_server_error

    Responses never include stack traces, SQL or file paths.
    """

    async def handle_roomly_error(request: Request, exc: RoomlyError) -> JSONResponse:
        status_code, code = next(
            ERROR_STATUS[cls] for cls in type(exc).__mro__ if cls in ERROR_STATUS
        )
        if status_code >= 500:
            logger.error(
                "[%s] %s: %s | Context: %s",
                request_id_var.get(""), type(exc).__name__, exc.message, exc.context,
            )
        return error_response(status_code, code, exc.message, exc.context)

    for exc_class in ERROR_STATUS:
        app.add_exception_handler(exc_class, handle_roomly_error)

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError) -> JSONResponse:
        logger.info("[%s] Validation failed: %s", request_id_var.get(""), exc.errors)
        return error_response(422, "failed_validation", exc.message, exc.errors)

    @app.exception_handler(InvalidAuthenticationTokenError)
    async def handle_invalid_token(
        request: Request, exc: InvalidAuthenticationTokenError
    ) -> JSONResponse:
        response = error_response(
            401, "invalid_token", exc.message,
            headers={"WWW-Authenticate": "Bearer"},
        )
        clear_session_cookie(response)
        return response

    @app.exception_handler(RateLimitExceededError)
    async def handle_rate_limit(request: Request, exc: RateLimitExceededError) -> JSONResponse:
        return error_response(
            429, "rate_limit_exceeded", exc.message, exc.context,
            headers={"Retry-After": str(exc.retry_after)},
        )

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError) -> JSONResponse:
        logger.error(
            "[%s] Database error: %s | Context: %s",
            request_id_var.get(""), exc.message, exc.context,
        )
        return error_response(
            500, "server_error", "An internal error occurred. Please try again later."
        )

    @app.exception_handler(FileStorageError)
    async def handle_file_storage_error(request: Request, exc: FileStorageError) -> JSONResponse:
        logger.error(
            "[%s] File storage error: %s | Context: %s",
            request_id_var.get(""), exc.message, exc.context,
        )
        return error_response(500, "server_error", exc.message)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        details = {
            ".".join(str(part) for part in error["loc"]): error["msg"]
            for error in exc.errors()
        }
        return error_response(
            400, "bad_request", "the request body or parameters are malformed", details
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        if exc.status_code == 404:
            code, message = "not_found", "the requested resource could not be found"
        elif exc.status_code == 405:
            code = "method_not_allowed"
            message = f"the {request.method} method is not supported for this resource"
        else:
            code, message = "http_error", str(exc.detail)
        return error_response(exc.status_code, code, message, headers=exc.headers)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "[%s] Unexpected error: %s",
            request_id_var.get(""),
            str(exc),
            exc_info=True,
        )
        return error_response(
            500,
            "internal_server_error",
            "the server encountered a problem and could not process your request",
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Every request passes through `authenticate`, so request.state.user is
    always set (a User or the anonymous placeholder) before a handler runs.
    """
    app = FastAPI(
        title="Roomly API",
        description=(
            "Short-term rental marketplace: accounts, listings with photo "
            "galleries, and bookings."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
        dependencies=[Depends(authenticate)],
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first: CORS → RequestID → Logging → RateLimit → GZip
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE"],
        allow_headers=["Content-Type", "Authorization"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(listings.router)
    app.include_router(bookings.router)
    app.include_router(uploads.router)

    return app


# uvicorn imports `roomly.main:app`
app = create_app()
