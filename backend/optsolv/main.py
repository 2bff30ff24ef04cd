"""
OptSolv Backend — FastAPI Application Factory
===============================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() wires middleware, exception handlers and routers;
       uvicorn serves the module-level `app` (uvicorn optsolv.main:app).

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │  Middleware:  Rate Limit → Request ID → Logging → GZip → CORS
    │                                                          │
    │  Routes:                                                 │
    │   /api/upload  /api/ocr  /api/analyze  /api/pipeline     │
    │   /api/documents  /api/tasks  /api/notes  /api/files     │
    │   /api/preferences  /health                              │
    │                                                          │
    │  Exception Handlers:                                     │
    │   OptSolvError → its own status code (400/401/404/409/   │
    │                  429/500/503) in the error envelope      │
    │   RequestValidationError → 400 validation_error          │
    │   Exception → 500 internal_server_error                  │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging, configuration check (logged, not fatal), storage dir
    Shutdown: dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from optsolv import __version__
from optsolv.config import settings
from optsolv.database import dispose_engine
from optsolv.exceptions import OptSolvError
from optsolv.middleware.logging import RequestLoggingMiddleware
from optsolv.middleware.rate_limit import RateLimitMiddleware
from optsolv.middleware.request_id import RequestIDMiddleware, request_id_var
from optsolv.responses import error_body, error_response
from optsolv.routes import health, ingest, library, preferences

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure the root logger once, before anything else logs.

    Format: 2024-01-15T12:00:00 [INFO] optsolv.services.pipeline: message
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Per-request noise; our access middleware already logs each request
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("PIL").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    logger.info("=" * 60)
    logger.info("OptSolv Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Not fatal: /health keeps answering, and affected endpoints
        # report ConfigurationError
        logger.error("Configuration error: %s", str(e))

    storage = Path(settings.storage_root)
    storage.mkdir(parents=True, exist_ok=True)
    logger.info("Storage directory: %s", storage.resolve())
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("OptSolv Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exceptions to the error envelope.

    Every OptSolvError subclass declares its status_code and error_code, so
    one handler covers the whole hierarchy. 5xx responses never carry the
    exception context; it is logged instead.
    """

    @app.exception_handler(OptSolvError)
    async def handle_optsolv_error(request: Request, exc: OptSolvError):
        rid = request_id_var.get("")
        if exc.status_code >= 500:
            logger.error(
                "[%s] %s: %s | Context: %s",
                rid,
                type(exc).__name__,
                exc.message,
                exc.context,
            )
        else:
            logger.warning("[%s] %s: %s", rid, type(exc).__name__, exc.message)
        return error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        """Malformed body, query or path parameter → 400 with the offending fields."""
        rid = request_id_var.get("")
        errors = [
            {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", "")}
            for err in exc.errors()
        ]
        logger.warning("[%s] Request validation failed: %s", rid, errors)
        return JSONResponse(
            status_code=400,
            content=error_body("validation_error", "Invalid request", {"errors": errors}),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content=error_body(
                "internal_server_error",
                "An unexpected error occurred. Please try again or contact support.",
            ),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="OptSolv API",
        description=(
            "Digitizes handwritten notes: upload a photo, get the text read by a "
            "vision model and organized into tasks and notes."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Last added runs first: RateLimit → RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,  # session cookie
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware)

    register_exception_handlers(app)

    app.include_router(ingest.router)
    app.include_router(library.router)
    app.include_router(preferences.router)
    app.include_router(health.router)

    return app


app = create_app()
