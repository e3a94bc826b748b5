"""
IdeaStore Backend — FastAPI Application Factory
=================================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn to start the server (uvicorn ideastore.main:app).

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  ┌──────────┐ ┌──────────┐ ┌──────┐ ┌──────┐        │
    │  │ Req ID   │→│ Logging  │→│ GZip │→│ CORS │        │
    │  └──────────┘ └──────────┘ └──────┘ └──────┘        │
    │                                                     │
    │  Routes:                                            │
    │  /save  /entries  /content  /load  /update  /delete │
    │  /health                                            │
    │                                                     │
    │  Exception Handlers:                                │
    │  IdeaStoreError → ErrorKind status │ 404 fallback   │
    │  Exception → 500                                    │
    └─────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Initialize logging
    2. Validate configuration (reported, not fatal)
    3. Create the scratch directory
    4. Create the entries table if DB_AUTO_CREATE is on

    Shutdown:
    1. Dispose database engine (close all connections)
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ideastore import __version__
from ideastore.config import settings
from ideastore.database import create_schema, dispose_engine
from ideastore.exceptions import IdeaStoreError, Severity
from ideastore.middleware.logging import RequestLoggingMiddleware
from ideastore.middleware.request_id import RequestIDMiddleware, request_id_var
from ideastore.routes import entries, health

logger = logging.getLogger(__name__)

# Router outcomes for a request no route accepts: unknown path, or known
# path with another method
ROUTE_MISS_STATUSES = frozenset({404, 405})


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    Output: stdout (collected by the hosting platform)
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party libraries that log every operation at INFO/DEBUG
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("googleapiclient.discovery_cache").setLevel(logging.ERROR)
    logging.getLogger("googleapiclient.discovery").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown procedures (see module docstring)."""
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("IdeaStore Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # The server still starts: /health reports the missing dependency
        logger.error("Configuration error: %s", str(e))

    scratch = Path(settings.scratch_dir)
    scratch.mkdir(parents=True, exist_ok=True)
    logger.info("Scratch directory: %s", scratch.resolve())

    if settings.db_auto_create:
        await create_schema()
        logger.info("Entries table ensured")

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("IdeaStore Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    Resolve errors into JSON envelopes.

    Handler hierarchy:
        IdeaStoreError           → status and log level from exc.kind
        StarletteHTTPException   → 404 "API endpoint not found" when no route
                                   matches the path and method (Starlette's
                                   404 and 405), otherwise the exception's status
        Exception (fallback)     → 500

    Internal context (SQL errors, Drive responses, paths) is logged,
    never returned.
    """

    @app.exception_handler(IdeaStoreError)
    async def handle_app_error(request: Request, exc: IdeaStoreError):
        rid = request_id_var.get("")
        kind = exc.kind
        if kind.severity is Severity.CRITICAL:
            logger.error("[%s] %s: %s | Context: %s", rid, kind.code, exc.message, exc.context)
        else:
            logger.warning("[%s] %s: %s", rid, kind.code, exc.message)
        return JSONResponse(
            status_code=kind.status_code,
            content={
                "error": exc.message,
                "kind": kind.code,
                "request_id": rid,
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        rid = request_id_var.get("")
        if exc.status_code in ROUTE_MISS_STATUSES:
            return JSONResponse(
                status_code=404,
                content={"error": "API endpoint not found", "request_id": rid},
            )
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(exc.detail), "request_id": rid},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        # Rendered by ServerErrorMiddleware, outside RequestIDMiddleware, so
        # the header is set here
        rid = request_id_var.get("") or request.headers.get("X-Request-ID", "")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "An unexpected error occurred",
                "kind": "internal_server_error",
                "request_id": rid,
            },
            headers={"X-Request-ID": rid} if rid else None,
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns: Fully configured FastAPI instance ready to receive requests.
    """
    app = FastAPI(
        title="IdeaStore API",
        description=(
            "Markdown note storage: entry metadata in SQL, gzip-compressed "
            "content in Google Drive."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Middleware executes in REVERSE order of addition:
    # RequestID → Logging → GZip → CORS

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Entry-Title", "X-Request-ID"],
        expose_headers=["X-Request-ID"],
    )

    app.add_middleware(GZipMiddleware, minimum_size=500)

    app.add_middleware(RequestLoggingMiddleware)

    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(entries.router)
    app.include_router(health.router)

    return app


# ── Application Instance ─────────────────────────────────────────────────
app = create_app()
