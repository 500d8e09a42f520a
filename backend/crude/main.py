"""
Crude — FastAPI Application Factory
======================================

What:  Creates and configures the FastAPI application instance.
Why:   Centralizes logging, middleware registration, CRUD mounting and
       lifecycle management in one place.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn to start the server (uvicorn crude.main:app).

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  ┌──────────┐ ┌──────────┐ ┌───────┐ ┌──────────┐  │
    │  │  Req ID  │→│ Logging  │→│ Flash │→│CORS/GZip │  │
    │  └──────────┘ └──────────┘ └───────┘ └──────────┘  │
    │                                                     │
    │  Routes:                                            │
    │  ┌───────────────────────────┐ ┌─────────────────┐  │
    │  │ /articles (CrudController)│ │ GET /health     │  │
    │  └───────────────────────────┘ └─────────────────┘  │
    │                                                     │
    │  Exception Handlers (backstop, pipelines catch):    │
    │  ┌──────────────────────────────────────────────┐   │
    │  │ Validation→400 │ NotFound→404 │ Crude→500    │   │
    │  └──────────────────────────────────────────────┘   │
    └─────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging, create missing tables, log readiness
    Shutdown: dispose the engine (close pooled connections)
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Iterable, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from crude import __version__
from crude.config import settings
from crude.controllers.crud import CrudController
from crude.database import async_session_factory, dispose_engine, init_models
from crude.exceptions import (
    CrudeError,
    NotFoundError,
    UnimplementedRouteError,
    ValidationError,
)
from crude.middleware.flash import FlashMiddleware
from crude.middleware.logging import RequestLoggingMiddleware
from crude.middleware.request_id import RequestIDMiddleware, request_id_var
from crude.models.article import Article
from crude.routes import health
from crude.services.sqlalchemy_entity import SqlAlchemyEntity

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure the root logger once for the whole application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    Level comes from settings.log_level; chatty libraries are capped at WARNING.
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
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("Crude %s starting up...", __version__)

    await init_models()

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Crude shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    Register global exception handlers for anything a route lets escape.

    CRUD pipelines finish their own failures, so these mostly cover custom
    routes and pipeline steps added by the embedding application.

    Handler hierarchy:
        ValidationError          → 400
        NotFoundError            → 404
        UnimplementedRouteError  → 501 (plain text)
        CrudeError (base)        → 500
        Exception (fallback)     → 500

    Internal details (driver messages, stack traces) stay in the log.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        rid = request_id_var.get("")
        logger.warning("[%s] Validation error: %s", rid, exc.message)
        return JSONResponse(
            status_code=400,
            content={**exc.to_envelope(), "request_id": rid},
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        rid = request_id_var.get("")
        return JSONResponse(
            status_code=404,
            content={**exc.to_envelope(), "request_id": rid},
        )

    @app.exception_handler(UnimplementedRouteError)
    async def handle_unimplemented(request: Request, exc: UnimplementedRouteError):
        return PlainTextResponse(exc.message, status_code=exc.status_code)

    @app.exception_handler(CrudeError)
    async def handle_crude_error(request: Request, exc: CrudeError):
        rid = request_id_var.get("")
        logger.error("[%s] %s: %s | Context: %s", rid, type(exc).__name__, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={**exc.to_envelope(), "request_id": rid},
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred. Please try again.",
                "request_id": rid,
            },
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def default_controllers() -> list[CrudController]:
    """The demo entity mounted by create_app() when no controllers are given."""
    articles = SqlAlchemyEntity(Article, async_session_factory)
    return [
        CrudController(
            articles,
            "/articles",
            {
                "layout_view": "crude/layout.html",
                "edit_view": "crude/edit.html",
                "labels": {"local_url": "URL"},
            },
        )
    ]


def create_app(controllers: Optional[Iterable[CrudController]] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        controllers: CrudControllers to mount; defaults to the Article demo.
    """
    app = FastAPI(
        title="Crude",
        description="Generic create/read/update web views over SQLAlchemy models.",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first: RequestID → Logging → Flash → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(FlashMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(health.router)
    for controller in (default_controllers() if controllers is None else controllers):
        app.include_router(controller.router())
        logger.debug("Mounted CRUD routes at %s", controller.base_url)

    return app


app = create_app()
