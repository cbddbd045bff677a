"""
Sloka API — FastAPI Application Factory
========================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() wires settings, the database handle,
       middleware, exception handlers and routers into one FastAPI app.
Who:   uvicorn (`uvicorn sloka_api.main:app`) and the `sloka-api` console script.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                       FastAPI App                        │
    │                                                          │
    │  Middleware Chain (outermost first):                     │
    │  Security headers → CORS → Body cap → Query sanitizer    │
    │  → Rate limit (/api) → Rate limit (quotes) → Request ID  │
    │  → Access log → GZip → Unexpected-error catch-all        │
    │                                                          │
    │  Routes:                                                 │
    │  /health  /api  /api/quote/*  /api/quotes*  /quote/*     │
    │                                                          │
    │  Exception Handlers:                                     │
    │  Validation→400 │ NotFound→404 │ RateLimit→429 │ DB→500  │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  configure logging, connect the database. A failed connection
              aborts startup unless SERVERLESS is set, in which case the next
              request retries it.
    Shutdown: dispose the engine (uvicorn turns SIGINT/SIGTERM into this).
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from sloka_api import __version__
from sloka_api.config import Settings, settings
from sloka_api.database import Database
from sloka_api.exceptions import RateLimitExceededError, SlokaError
from sloka_api.middleware.errors import INTERNAL_ERROR_MESSAGE, UnexpectedErrorMiddleware
from sloka_api.middleware.logging import RequestLoggingMiddleware
from sloka_api.middleware.rate_limit import RateLimitMiddleware, is_api_path, is_quote_path
from sloka_api.middleware.request_id import RequestIDMiddleware, request_id_var
from sloka_api.middleware.security import (
    BodySizeLimitMiddleware,
    QuerySanitizeMiddleware,
    SecurityHeadersMiddleware,
)
from sloka_api.routes import health, info, quotes

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str = settings.log_level) -> None:
    """
    Configure logging for the whole process.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s on stdout.
    Shared by the server and the seed CLI.
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party loggers that are noisy at INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    app_settings: Settings = app.state.settings
    database: Database = app.state.database

    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging(app_settings.log_level)
    logger.info("Sloka API %s starting (%s)", __version__, app_settings.app_env)

    try:
        await database.connect()
    except Exception as e:
        logger.error("Database connection error: %s", str(e))
        if not app_settings.serverless:
            raise
        logger.warning("Serverless mode: will retry the connection on the next request")

    logger.info("Server ready on port %d", app_settings.port)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Shutting down, closing database connection...")
    await database.dispose()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error(status_code: int, message: str, headers: Optional[dict] = None, **extra) -> JSONResponse:
    content = {"success": False, "error": message}
    content.update({k: v for k, v in extra.items() if v is not None})
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def _original_url(request: Request) -> str:
    query = request.url.query
    return f"{request.url.path}?{query}" if query else request.url.path


def register_exception_handlers(app: FastAPI, app_settings: Settings) -> None:
    """
    Map exceptions to the error envelope.

        SlokaError subclasses   → their status_code (400/404/429/500)
        RequestValidationError  → 400 "Validation error" with details
        Starlette 404/405       → 404 "Endpoint not found" with path
        Exception               → 500 (normally converted earlier by
                                  UnexpectedErrorMiddleware, inside the
                                  middleware stack; this is the fallback)

    500 responses show the raw message only outside production; the full
    detail is always logged with the request ID.
    """

    def server_message(message: str) -> str:
        return INTERNAL_ERROR_MESSAGE if app_settings.is_production else message

    @app.exception_handler(SlokaError)
    async def handle_app_error(request: Request, exc: SlokaError):
        rid = request_id_var.get("")
        headers = None
        if isinstance(exc, RateLimitExceededError):
            headers = {"Retry-After": str(exc.retry_after)}

        if exc.status_code >= 500:
            logger.error("[%s] %s: %s | Context: %s", rid, type(exc).__name__, exc.message, exc.context)
            return _error(exc.status_code, server_message(exc.message))

        if exc.status_code == 400:
            logger.warning("[%s] Validation error: %s", rid, exc.message)
        return _error(exc.status_code, exc.message, headers=headers)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        details = [err.get("msg", "invalid value") for err in exc.errors()]
        return _error(400, "Validation error", details=details)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        if exc.status_code in (404, 405):
            return _error(404, "Endpoint not found", path=_original_url(request))
        return _error(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return _error(500, server_message(str(exc) or INTERNAL_ERROR_MESSAGE))


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    app_settings: Optional[Settings] = None,
    database: Optional[Database] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        app_settings: Settings to use (defaults to the module singleton)
        database:     Connection handle (defaults to one built from settings;
                      it is not connected until startup or first use)
    """
    app_settings = app_settings or settings

    app = FastAPI(
        title="Sloka API",
        description="Sanskrit verses with transliteration and translation: random, daily, search and paging.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = app_settings
    app.state.database = database or Database(app_settings)

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first.
    app.add_middleware(UnexpectedErrorMiddleware, expose_details=not app_settings.is_production)
    app.add_middleware(GZipMiddleware, minimum_size=1024)
    app.add_middleware(RequestLoggingMiddleware, trust_proxy=app_settings.trust_proxy)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        limit=app_settings.quote_rate_limit_requests,
        window=app_settings.quote_rate_limit_window,
        message="Rate limit exceeded. Please slow down.",
        matcher=is_quote_path,
        trust_proxy=app_settings.trust_proxy,
    )
    app.add_middleware(
        RateLimitMiddleware,
        limit=app_settings.rate_limit_requests,
        window=app_settings.rate_limit_window,
        message="Too many requests, please try again later.",
        matcher=is_api_path,
        trust_proxy=app_settings.trust_proxy,
    )
    app.add_middleware(QuerySanitizeMiddleware)
    app.add_middleware(BodySizeLimitMiddleware, max_bytes=app_settings.max_body_size)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
        expose_headers=["X-Request-ID", "Retry-After", "RateLimit-Limit", "RateLimit-Remaining", "RateLimit-Reset"],
        max_age=86400,
    )
    app.add_middleware(SecurityHeadersMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app, app_settings)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(health.router)
    app.include_router(info.router)
    app.include_router(quotes.router)

    return app


app = create_app()


def run() -> None:
    """Console entry point: serve the module-level app with uvicorn."""
    import uvicorn

    uvicorn.run(
        "sloka_api.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
