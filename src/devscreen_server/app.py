"""Application factory and CLI entry point.

``create_app()`` builds the FastAPI application with:
  - Lifespan handler that loads the question catalog and wires the SDK once
  - CORS middleware
  - Global exception handlers (ScreeningError → its status, ValueError → 400)
  - All API routes mounted under ``/api/v1``
  - A ``/health`` endpoint for readiness probes

The ``cli()`` function is the ``devscreen-server`` console-script entry point.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from devscreen_db.engine import dispose_engine, get_engine
from devscreen_rules.actions import ScreeningActions
from devscreen_rules.analyzer import RiskAnalyzer
from devscreen_rules.catalog import QuestionCatalog
from devscreen_rules.errors import ScreeningError
from devscreen_rules.llm import build_completion_client
from devscreen_rules.payments import LedgerPaymentGateway
from devscreen_rules.pipeline import ScreeningPipeline
from devscreen_rules.storage import EvidenceStore
from devscreen_rules.submissions import SubmissionWorkflow

from devscreen_server.config import ServerSettings, load_settings
from devscreen_server.errors import (
    generic_error_handler,
    screening_error_handler,
    value_error_handler,
)
from devscreen_server.routes import register_routes

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Lifespan: runs once at startup/shutdown
# ------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Initialise shared resources at startup, tear down on shutdown.

    Startup:
      1. Load the YAML question catalog
      2. Build the analyzer (LLM client optional), payment gateway,
         ``ScreeningPipeline``, ``SubmissionWorkflow`` and ``EvidenceStore``
      3. Stash them on ``app.state`` for dependency injection

    Shutdown:
      1. Close the shared HTTP client
      2. Dispose the database engine's connection pool
    """
    settings: ServerSettings = app.state.settings

    # --- Load catalog ---
    catalog = QuestionCatalog(settings.catalog_path).load()

    # --- Build SDK objects ---
    http_client = httpx.AsyncClient(timeout=settings.llm.timeout_seconds)
    analyzer = RiskAnalyzer(
        build_completion_client(settings.llm, http_client=http_client),
    )
    payments = LedgerPaymentGateway()
    pipeline = ScreeningPipeline(
        catalog,
        settings=settings.screening,
        analyzer=analyzer,
        payments=payments,
    )
    submissions = SubmissionWorkflow(
        catalog, settings=settings.screening, payments=payments,
    )
    evidence = EvidenceStore(settings.storage)
    if not evidence.configured:
        logger.warning("Evidence storage not configured; uploads will fail")

    app.state.catalog = catalog
    app.state.pipeline = pipeline
    app.state.actions = ScreeningActions(pipeline, submissions, evidence)

    yield

    # --- Shutdown ---
    await http_client.aclose()
    await dispose_engine()
    logger.info("Database engine disposed")


# ------------------------------------------------------------------
# Factory
# ------------------------------------------------------------------

def create_app(settings: ServerSettings | None = None) -> FastAPI:
    """Build and return the configured FastAPI application."""
    if settings is None:
        settings = load_settings()

    # --- Configure logging ---
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app = FastAPI(
        title="Developmental Screening API Server",
        description="REST API for pediatric developmental screening",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Store settings so the lifespan handler can read them
    app.state.settings = settings

    # --- CORS ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # --- Exception handlers ---
    # ScreeningError is a ValueError; the more specific handler wins.
    app.add_exception_handler(ScreeningError, screening_error_handler)
    app.add_exception_handler(ValueError, value_error_handler)
    app.add_exception_handler(Exception, generic_error_handler)

    # --- Health check (outside /api/v1 prefix) ---
    @app.get("/health")
    async def health() -> dict:
        """Readiness probe — verifies DB connectivity."""
        try:
            engine = get_engine()
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return {"status": "ok"}
        except Exception as exc:
            logger.error("Health check failed: %s", exc)
            return {"status": "error", "detail": str(exc)}

    # --- Mount all API routes ---
    register_routes(app)

    return app


# ------------------------------------------------------------------
# Module-level ASGI export (for uvicorn devscreen_server.app:app)
# ------------------------------------------------------------------
app = create_app()


# ------------------------------------------------------------------
# CLI entry point
# ------------------------------------------------------------------

def cli() -> None:
    """Console-script entry point: ``devscreen-server``."""
    import uvicorn

    settings = load_settings()
    uvicorn.run(
        "devscreen_server.app:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload=False,
    )
