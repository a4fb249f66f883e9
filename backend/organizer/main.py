"""
Excalidraw Organizer Backend — FastAPI Application Factory
===========================================================

What:  Creates and configures the FastAPI application instance.
Why:   Centralizes middleware registration, error rendering, route mounting
       and lifecycle management in one place.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn (uvicorn organizer.main:app) and by the test suite.

Application Architecture:
    ┌──────────────────────────────────────────────────────────────┐
    │                         FastAPI App                          │
    │                                                              │
    │  Middleware Chain:                                           │
    │  ┌────────────┐ ┌────────┐ ┌──────────┐ ┌─────────┐ ┌──────┐ │
    │  │ Rate Limit │→│ Req ID │→│ Security │→│ Logging │→│ GZip │ │
    │  └────────────┘ └────────┘ └──────────┘ └─────────┘ └──────┘ │
    │                                                              │
    │  Routes:                                                     │
    │  /api/auth  /api/projects  /api/drawings  /api/public        │
    │  /health  /health/db  /health/storage  /api                  │
    │                                                              │
    │  Exception Handlers:                                         │
    │  OrganizerError family → status_code │ schema errors → 400   │
    │  unknown route → 404 │ anything else → 500                   │
    └──────────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Initialize logging
    2. Validate configuration (logged, not fatal)
    3. Create the local storage directory
    Shutdown:
    1. Dispose database engine (close all connections)
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncGenerator, Dict, List

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from organizer import __version__
from organizer.config import settings
from organizer.database import dispose_engine
from organizer.exceptions import (
    DatabaseError,
    OrganizerError,
    RateLimitExceededError,
    StorageError,
)
from organizer.middleware.logging import RequestLoggingMiddleware
from organizer.middleware.rate_limit import RateLimitMiddleware
from organizer.middleware.request_id import RequestIDMiddleware, request_id_var
from organizer.middleware.security_headers import SecurityHeadersMiddleware
from organizer.routes import auth, drawings, health, projects, public
from organizer.schemas.common import FieldError, ValidationErrorDetails

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Format: 2024-01-15T12:00:00 [INFO] organizer.services.drawing_service: ...

    Called once during startup, before anything else logs.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # These log every operation at DEBUG/INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("passlib").setLevel(logging.ERROR)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("Excalidraw Organizer backend starting (%s)...", settings.environment)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))
        logger.error("Fix the configuration and restart the server.")
        # Keep running so health checks can report the problem

    if settings.storage_backend == "local":
        storage = Path(settings.storage_root)
        storage.mkdir(parents=True, exist_ok=True)
        logger.info("Local storage directory: %s", storage.resolve())
    else:
        logger.info("Supabase storage bucket: %s", settings.supabase_storage_bucket)

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Excalidraw Organizer backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _field_errors(exc: RequestValidationError) -> List[FieldError]:
    """Flattens pydantic errors to [{field, message}] with camelCase field paths."""
    errors = []
    for error in exc.errors():
        loc = list(error.get("loc", ()))
        if loc and loc[0] == "body":
            loc = loc[1:]
        message = str(error.get("msg", "Invalid value"))
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.append(FieldError(
            field=".".join(str(part) for part in loc) or "body",
            message=message,
        ))
    return errors


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register global exception handlers for consistent error responses.

    Handler hierarchy:
        RateLimitExceededError  → 429 with Retry-After
        DatabaseError           → 500, generic message
        StorageError            → 500, generic message
        OrganizerError (base)   → exc.status_code (400/401/403/404/409)
        RequestValidationError  → 400 validation_error, [{field, message}]
        HTTPException           → its status (unknown routes → 404)
        Exception (fallback)    → 500

    Internal details (SQL, paths, stack traces) are logged, never returned.
    """

    @app.exception_handler(RateLimitExceededError)
    async def handle_rate_limit(request: Request, exc: RateLimitExceededError):
        rid = request_id_var.get("")
        return JSONResponse(
            status_code=429,
            content={
                "error": exc.error_code,
                "message": exc.message,
                "details": exc.context,
                "request_id": rid,
            },
            headers={"Retry-After": str(exc.retry_after)},
        )

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        """Generic message to the user, details logged server-side."""
        rid = request_id_var.get("")
        logger.error("[%s] Database error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": "server_error",
                "message": "An internal error occurred. Please try again later.",
                "request_id": rid,
            },
        )

    @app.exception_handler(StorageError)
    async def handle_storage_error(request: Request, exc: StorageError):
        rid = request_id_var.get("")
        logger.error("[%s] Storage error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": exc.error_code,
                "message": "Drawing storage is temporarily unavailable. Please try again later.",
                "request_id": rid,
            },
        )

    @app.exception_handler(OrganizerError)
    async def handle_organizer_error(request: Request, exc: OrganizerError):
        """Client errors: the message and context are safe to return."""
        rid = request_id_var.get("")
        if exc.status_code >= 500:
            logger.error("[%s] %s: %s | Context: %s", rid, type(exc).__name__, exc.message, exc.context)
            return JSONResponse(
                status_code=exc.status_code,
                content={
                    "error": exc.error_code,
                    "message": "An internal error occurred. Please try again later.",
                    "request_id": rid,
                },
            )
        logger.warning("[%s] %s: %s", rid, type(exc).__name__, exc.message)
        content: Dict[str, Any] = {"error": exc.error_code, "message": exc.message}
        if exc.context:
            content["details"] = exc.context
        content["request_id"] = rid
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        rid = request_id_var.get("")
        details = ValidationErrorDetails(errors=_field_errors(exc)).model_dump()
        logger.warning("[%s] Request validation failed: %s", rid, details["errors"])
        return JSONResponse(
            status_code=400,
            content={
                "error": "validation_error",
                "message": "Validation failed",
                "details": details,
                "request_id": rid,
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        rid = request_id_var.get("")
        if exc.status_code == 404:
            content = {
                "error": "not_found",
                "message": f"Route {request.method} {request.url.path} not found",
                "request_id": rid,
            }
        else:
            content = {"error": "http_error", "message": str(exc.detail), "request_id": rid}
        return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        """Catch-all: stack trace to the log, request ID to the client."""
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred. Please try again or contact support.",
                "request_id": rid,
            },
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="Excalidraw Organizer API",
        description=(
            "Backend for organizing Excalidraw drawings into projects: accounts, "
            "project folders, drawing storage, thumbnails and public share links."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Executes in REVERSE order of addition:
    # RateLimit → RequestID → SecurityHeaders → Logging → GZip → CORS

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-CSRF-Token", "X-Request-ID"],
        expose_headers=[
            "X-Request-ID",
            "X-Total-Count",
            "Retry-After",
            "RateLimit-Limit",
            "RateLimit-Remaining",
            "RateLimit-Reset",
        ],
    )

    # Scene JSON compresses well; tiny bodies are not worth it
    app.add_middleware(GZipMiddleware, minimum_size=500)

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(auth.router)
    app.include_router(projects.router)
    app.include_router(drawings.router)
    app.include_router(public.router)
    app.include_router(health.router)

    return app


# ── Application Instance ─────────────────────────────────────────────────
# uvicorn expects `organizer.main:app` to be importable
app = create_app()
