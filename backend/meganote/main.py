"""
Meganote Backend - FastAPI Application Factory
===============================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn to start the server (uvicorn meganote.main:app).

Application Architecture:
    ┌───────────────────────────────────────────────────────────┐
    │                       FastAPI App                         │
    │                                                           │
    │  Middleware Chain:                                        │
    │  Request ID → Logging → Login Rate Limit → GZip → CORS    │
    │                                                           │
    │  Routes:                                                  │
    │  /auth (public)   /account /users /notes (session)        │
    │  /health (public)                                         │
    │                                                           │
    │  Exception Handlers:                                      │
    │  MeganoteError → its status │ validation → 400            │
    │  unknown route → 404        │ anything else → 500         │
    └───────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging, configuration check, startup banner
    Shutdown: dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from meganote import __version__
from meganote.config import settings
from meganote.database import dispose_engine
from meganote.event_log import ERROR_LOG, log_events
from meganote.exceptions import MeganoteError, RateLimitExceededError
from meganote.middleware.logging import RequestLoggingMiddleware
from meganote.middleware.rate_limit import RateLimitMiddleware
from meganote.middleware.request_id import RequestIDMiddleware, request_id_var
from meganote.routes import account, auth, health, notes, users

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure process logging once, before anything else logs.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s

    The append-only reqLog.log / errLog.log files are written separately by
    meganote.event_log; this only configures the stdout stream.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    logger.info("=" * 60)
    logger.info("Meganote Backend starting up (%s)...", settings.app_env)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # The server still starts so /health can report; fix and restart
        logger.error("Configuration error: %s", str(e))

    logger.info("Reset links point to %s", settings.frontend_url)
    logger.info("Event log directory: %s", settings.log_dir)
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("Meganote Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

async def _log_server_error(request: Request, name: str, message: str) -> None:
    await log_events(
        f"{name}: {message}\t{request.method}\t{request.url}\t{request.headers.get('origin')}",
        ERROR_LOG,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exceptions to JSON envelopes.

    Handler hierarchy:
        MeganoteError (and subclasses)  → exc.status_code, exc.error_code
        RequestValidationError          → 400 "Missing required data!"
        StarletteHTTPException          → 404 {"message": "404 Not Found"} for unknown routes
        Exception (fallback)            → 500 generic message, isError: true

    5xx responses never carry internal details; those go to the process log
    and to errLog.log.
    """

    @app.exception_handler(MeganoteError)
    async def handle_meganote_error(request: Request, exc: MeganoteError):
        rid = request_id_var.get("")
        content = {
            "error": exc.error_code,
            "message": exc.message,
            "request_id": rid,
        }
        headers = {}

        if exc.status_code >= 500:
            logger.error("[%s] %s: %s | Context: %s", rid, type(exc).__name__, exc.message, exc.context)
            await _log_server_error(request, type(exc).__name__, exc.message)
            content["isError"] = True
        else:
            logger.warning("[%s] %s: %s", rid, type(exc).__name__, exc.message)
            if exc.context:
                content["details"] = exc.context

        if isinstance(exc, RateLimitExceededError):
            headers["Retry-After"] = str(exc.retry_after)

        return JSONResponse(status_code=exc.status_code, content=content, headers=headers)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        rid = request_id_var.get("")
        errors = [
            {
                "field": ".".join(str(part) for part in err.get("loc", ())[1:]),
                "message": err.get("msg", ""),
            }
            for err in exc.errors()
        ]
        logger.warning("[%s] Request validation failed: %s", rid, errors)
        return JSONResponse(
            status_code=400,
            content={
                "error": "validation_error",
                "message": "Missing required data!",
                "details": {"errors": errors},
                "request_id": rid,
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return JSONResponse(status_code=404, content={"message": "404 Not Found"})
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": "http_error",
                "message": str(exc.detail),
                "request_id": request_id_var.get(""),
            },
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        await _log_server_error(request, type(exc).__name__, str(exc))
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred. Please try again later.",
                "request_id": rid,
                "isError": True,
            },
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Each call builds a fresh app with its own middleware instances, so tests
    get a clean login rate-limit window per app.
    """
    app = FastAPI(
        title="Meganote API",
        description="Notes and tickets assigned between team members, with account administration.",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Middleware executes in REVERSE order of addition:
    # RequestID → Logging → RateLimit → GZip → CORS

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(auth.router)
    app.include_router(account.router)
    app.include_router(users.router)
    app.include_router(notes.router)
    app.include_router(health.router)

    return app


app = create_app()
