"""
Memory Locks API — FastAPI Application Factory
===============================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() wires middleware, exception handlers and routers.
Who:   uvicorn (uvicorn memorylocks.main:app) and the test suite.

Application Architecture:
    ┌──────────────────────────────────────────────────────────────┐
    │                        FastAPI App                           │
    │                                                              │
    │  Middleware Chain:                                           │
    │  Rate Limit → Request ID → Logging → Worker API Key → GZip   │
    │                                                              │
    │  Routes:                                                     │
    │  /health  /locks  /media-objects  /album(s)  /users          │
    │                                                              │
    │  Exception Handlers (one envelope for all):                  │
    │  {"Success": false, "Message", "Code", "RequestId"}          │
    │  Validation→400  Auth→401  NotFound→404  Conflict→409        │
    │  RateLimit→429   Database / unexpected→500                   │
    └──────────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  configure logging, warn about missing secrets, log the milestones
    Shutdown: dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from memorylocks import __version__
from memorylocks.config import settings
from memorylocks.database import dispose_engine
from memorylocks.exceptions import (
    DatabaseError,
    MemoryLocksError,
    RateLimitExceededError,
    ValidationError,
)
from memorylocks.middleware.auth import WorkerAPIKeyMiddleware
from memorylocks.middleware.logging import RequestLoggingMiddleware
from memorylocks.middleware.rate_limit import RateLimitMiddleware
from memorylocks.middleware.request_id import RequestIDMiddleware, request_id_var
from memorylocks.routes import albums, health, locks, media_objects, users

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure the root logger once, at startup.

    Format: 2025-02-14T12:00:00 [INFO] memorylocks.access: GET /locks/7 200 4.1ms [...]
    Docker and Fly collect stdout, so that is the only handler.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party loggers are chatty at INFO
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
    logger.info("Memory Locks API %s starting (%s)", __version__, settings.environment)

    # Missing secrets are logged, not fatal: health checks must keep answering
    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.warning("Configuration warning: %s", e)

    logger.info("Scan milestones: %s", settings.scan_milestones_list)
    if not (settings.core_api_base_url and settings.core_api_shared_secret):
        logger.warning("Milestone notifications disabled: core API not configured")
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Memory Locks API shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def error_response(
    status_code: int,
    message: str,
    code: str,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "Success": False,
            "Message": message,
            "Code": code,
            "RequestId": request_id_var.get(""),
        },
        headers=headers,
    )


def _describe_validation_errors(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        msg = err.get("msg", "Invalid value")
        parts.append(f"{'.'.join(loc)}: {msg}" if loc else msg)
    return "Invalid request: " + "; ".join(parts) if parts else "Invalid request"


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map application exceptions to the error envelope.

        ValidationError / RequestValidationError → 400
        AuthenticationError                      → 401
        NotFoundError                            → 404
        ConflictError                            → 409
        RateLimitExceededError                   → 429 (+ Retry-After, X-RateLimit-*)
        DatabaseError                            → 500, generic message
        Exception (fallback)                     → 500, generic message

    Internal details (SQL, stack traces) are only ever logged.
    """

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        message = _describe_validation_errors(exc)
        logger.warning("[%s] Request validation failed: %s", request_id_var.get(""), message)
        return error_response(400, message, ValidationError.code)

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return error_response(exc.status_code, exc.message, exc.code)

    @app.exception_handler(RateLimitExceededError)
    async def handle_rate_limit(request: Request, exc: RateLimitExceededError):
        headers = {"Retry-After": str(exc.retry_after)}
        headers.update(exc.headers)
        return error_response(exc.status_code, exc.message, exc.code, headers=headers)

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        logger.error(
            "[%s] Database error: %s | Context: %s",
            request_id_var.get(""), exc.message, exc.context,
        )
        return error_response(
            500, "An internal error occurred. Please try again later.", exc.code
        )

    @app.exception_handler(MemoryLocksError)
    async def handle_app_error(request: Request, exc: MemoryLocksError):
        """NotFoundError, ConflictError, AuthenticationError and any future subclass."""
        if exc.status_code >= 500:
            logger.error("[%s] %s: %s", request_id_var.get(""), type(exc).__name__, exc.message)
        return error_response(exc.status_code, exc.message, exc.code)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error(
            "[%s] Unexpected error: %s", request_id_var.get(""), exc, exc_info=True
        )
        return error_response(
            500,
            "An unexpected error occurred. Please try again or contact support.",
            "SERVER_ERROR",
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="Memory Locks API",
        description=(
            "Locks, media and accounts for Memory Locks: physical love locks whose "
            "QR code opens a shared photo album."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first. Execution order:
    # RateLimit → RequestID → Logging → WorkerAPIKey → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[
            "X-Request-ID",
            "Retry-After",
            "X-RateLimit-Limit",
            "X-RateLimit-Remaining",
            "X-RateLimit-Reset",
        ],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(WorkerAPIKeyMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(health.router)
    app.include_router(locks.router)
    app.include_router(media_objects.router)
    app.include_router(albums.router)
    app.include_router(users.router)

    return app


app = create_app()
