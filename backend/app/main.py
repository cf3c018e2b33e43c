"""
StudyGenie Backend — FastAPI Application Factory
==================================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn to start the server (uvicorn app.main:app).
When:  Once at server startup; the returned app handles all subsequent requests.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                          │
    │                                                           │
    │  Middleware Chain:                                        │
    │  ┌──────────┐ ┌─────────────────┐ ┌─────────┐            │
    │  │  Req ID  │→│ Rate Limit (AI) │→│ Logging │→ GZip → CORS│
    │  └──────────┘ └─────────────────┘ └─────────┘            │
    │                                                           │
    │  Routes:                                                  │
    │  ┌──────────────────┐ ┌──────────────┐ ┌──────────────┐  │
    │  │ POST /api/ai/*   │ │ GET /history │ │ GET /health  │  │
    │  └──────────────────┘ └──────────────┘ └──────────────┘  │
    │                                                           │
    │  Exception Handlers:                                      │
    │  ┌─────────────────────────────────────────────────────┐ │
    │  │ Validation→400 │ Auth→401 │ RateLimit→429 │ DB→500  │ │
    │  └─────────────────────────────────────────────────────┘ │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  configure logging, report which providers are live or mock
    Shutdown: close provider HTTP clients, dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from app import __version__
from app.config import settings
from app.database import dispose_engine
from app.exceptions import (
    AuthenticationError,
    RateLimitExceededError,
    StudyGenieError,
    ValidationError,
)
from app.middleware.logging import RequestLoggingMiddleware
from app.middleware.rate_limit import RateLimitMiddleware
from app.middleware.request_id import RequestIDMiddleware, request_id_var
from app.routes import ai, health, history
from app.services.assistant_service import assistant_service

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configures the root logger once, at startup.

    Format: 2024-01-15T12:00:00 [INFO] app.services.resilient_invoker: ...
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Reduce noise from third-party libraries
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
    logger.info("StudyGenie Backend %s starting up...", __version__)

    for provider, mode in settings.provider_status().items():
        if mode == "available":
            logger.info("Provider %s: live", provider)
        else:
            logger.info("Provider %s: no credential, canned responses only", provider)

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("StudyGenie Backend shutting down...")
    await assistant_service.aclose()
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

GENERIC_SERVER_MESSAGE = "An internal error occurred. Please try again later."


def _error_body(error: str, message: str, details=None) -> dict:
    body = {"error": error, "message": message, "request_id": request_id_var.get("")}
    if details:
        body["details"] = details
    return body


def _error_response(status_code: int, error: str, message: str, details=None, headers=None):
    return JSONResponse(
        status_code=status_code,
        content=_error_body(error, message, details),
        headers=headers,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Handler hierarchy:
        ValidationError         → 400 Bad Request
        AuthenticationError     → 401 Unauthorized
        RateLimitExceededError  → 429 Too Many Requests
        DatabaseError           → 500 Internal Server Error
        StudyGenieError (base)  → 500 Internal Server Error
        Exception (fallback)    → 500 Internal Server Error

    Client-caused errors echo their message and context; server-side errors
    answer with a generic message and keep the details in the log.
    """

    @app.exception_handler(ValidationError)
    async def on_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Rejected input: %s", request_id_var.get(""), exc.message)
        return _error_response(400, "validation_error", exc.message, exc.context)

    @app.exception_handler(AuthenticationError)
    async def on_authentication_error(request: Request, exc: AuthenticationError):
        return _error_response(401, "authentication_required", exc.message)

    @app.exception_handler(RateLimitExceededError)
    async def on_rate_limited(request: Request, exc: RateLimitExceededError):
        return _error_response(
            429, "rate_limit_exceeded", exc.message, exc.context,
            headers={"Retry-After": str(exc.retry_after)},
        )

    @app.exception_handler(StudyGenieError)
    async def on_server_side_error(request: Request, exc: StudyGenieError):
        # DatabaseError and any other StudyGenieError subclass land here
        logger.error(
            "[%s] %s: %s | context=%s",
            request_id_var.get(""), type(exc).__name__, exc.message, exc.context,
        )
        return _error_response(500, "server_error", GENERIC_SERVER_MESSAGE)

    @app.exception_handler(Exception)
    async def on_unexpected_error(request: Request, exc: Exception):
        logger.exception("[%s] Unhandled %s", request_id_var.get(""), type(exc).__name__)
        return _error_response(
            500,
            "internal_server_error",
            "An unexpected error occurred. Please try again or contact support.",
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """Assembles middleware, exception handlers and routers."""
    app = FastAPI(
        title="StudyGenie API",
        description=(
            "AI study assistant: learning-style analysis, stress assessment, study "
            "roadmaps, NOVA chat, support coaching and image analysis. Every feature "
            "answers with a structured response, falling back to canned responses "
            "when no AI provider is reachable."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first: RequestID → RateLimit → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(ai.router)
    app.include_router(history.router)
    app.include_router(health.router)

    return app


app = create_app()
