"""
snippetbin — FastAPI Application Factory
==========================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by the `snippetbin` command (cli.py) and by the test suite;
       `uvicorn snippetbin.main:app` also works.
When:  Once at server startup; the returned app handles all subsequent requests.

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  ┌──────────────┐ ┌─────────────────┐               │
    │  │   Req ID     │→│  Logging        │               │
    │  └──────────────┘ └─────────────────┘               │
    │                                                     │
    │  Routes:                                            │
    │  ┌──────────────────┐ ┌──────────────────┐ ┌──────┐ │
    │  │ /snippets        │ │ /snippets/{id}   │ │health│ │
    │  │ GET POST         │ │ GET PATCH DELETE │ │ GET  │ │
    │  └──────────────────┘ └──────────────────┘ └──────┘ │
    │                                                     │
    │  Exception Handlers (plain-text bodies):            │
    │  ┌──────────────────────────────────────────────┐   │
    │  │ BadRequest→400 │ NotFound→404 │ Serialize→500│   │
    │  └──────────────────────────────────────────────┘   │
    └─────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  open the SnippetStore (create file, auto-migrate schema).
              Failure aborts startup; uvicorn then exits nonzero.
    Shutdown: close the store (dispose the engine).
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from snippetbin import __version__
from snippetbin.config import Settings, settings as default_settings
from snippetbin.exceptions import (
    BadRequestError,
    NotFoundError,
    SerializationError,
    SnippetBinError,
)
from snippetbin.middleware.logging import RequestLoggingMiddleware
from snippetbin.middleware.request_id import RequestIDMiddleware, request_id_var
from snippetbin.routes import health, snippets
from snippetbin.services.snippet_store import SnippetStore

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str = "INFO") -> None:
    """
    Configure the root logger for the whole process.

    Called once by the command-line entry point, before the server starts.
    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # The access middleware already logs each request
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if level == "DEBUG" else logging.WARNING
    )
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Open the snippet store on startup and close it on shutdown.

    The store is published on app.state.store for the get_store dependency.
    StoreUnavailableError is logged and re-raised: the service does not start
    without durable storage.
    """
    config: Settings = app.state.settings
    logger.info("snippetbin %s starting up...", __version__)

    try:
        store = await SnippetStore.open(
            config.database_path,
            busy_timeout=config.db_busy_timeout,
            echo=config.echo_sql,
        )
    except SnippetBinError as e:
        logger.critical("Startup aborted: %s", e.message)
        raise

    app.state.store = store
    logger.info("Ready; database at %s", config.database_path)

    try:
        yield
    finally:
        logger.info("snippetbin shutting down...")
        await store.close()
        logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exceptions to plain-text responses.

    Handler hierarchy:
        BadRequestError         → 400 Bad Request
        NotFoundError           → 404 Not Found
        SerializationError      → 500 Internal Server Error
        SnippetBinError (base)  → 500 Internal Server Error
        HTTPException           → its own status (unknown route 404, wrong verb 405)
        Exception (fallback)    → 500 Internal Server Error

    The exception message is the response body, unmodified.
    """

    @app.exception_handler(BadRequestError)
    async def handle_bad_request(request: Request, exc: BadRequestError):
        return PlainTextResponse(exc.message, status_code=400)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return PlainTextResponse(exc.message, status_code=404)

    @app.exception_handler(SerializationError)
    async def handle_serialization_error(request: Request, exc: SerializationError):
        rid = request_id_var.get("")
        logger.error("[%s] Serialization error: %s", rid, exc.message)
        return PlainTextResponse(exc.message, status_code=500)

    @app.exception_handler(SnippetBinError)
    async def handle_snippetbin_error(request: Request, exc: SnippetBinError):
        rid = request_id_var.get("")
        logger.error("[%s] Unhandled %s: %s | Context: %s", rid, type(exc).__name__, exc.message, exc.context)
        return PlainTextResponse(exc.message, status_code=500)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        return PlainTextResponse(
            str(exc.detail),
            status_code=exc.status_code,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return PlainTextResponse("Internal Server Error", status_code=500)


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Configuration to run with; defaults to the module-level
                  singleton loaded from the environment.

    Returns:
        A FastAPI instance. The store is opened by its lifespan, so nothing
        touches the database until the server (or a test) starts it.
    """
    app = FastAPI(
        title="snippetbin",
        description="Create, read, update and delete text snippets stored in a local SQLite file.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings if settings is not None else default_settings

    # Middleware executes in reverse order of addition:
    # RequestID (added last) runs first, then Logging
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(snippets.router)
    app.include_router(health.router)

    return app


# ── Application Instance ─────────────────────────────────────────────────
# For `uvicorn snippetbin.main:app`
app = create_app()
