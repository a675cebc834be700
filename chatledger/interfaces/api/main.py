"""
FastAPI Main Application - Unified API entry point.

Run with: uvicorn chatledger.interfaces.api.main:app --reload
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from chatledger import __version__
from chatledger.config import Settings, get_settings
from chatledger.domains.orchestration import ChatLedgerOrchestrator

from .deps import cleanup_services, init_services
from .middleware import ErrorHandlerMiddleware, RateLimitMiddleware, RequestContextMiddleware
from .routes import conversations, credentials, extraction, health, monitoring, providers, tools

logger = logging.getLogger(__name__)


def create_app(
    orchestrator: ChatLedgerOrchestrator | None = None,
    settings: Settings | None = None,
) -> FastAPI:
    """
    Create FastAPI application.

    Args:
        orchestrator: Pre-built orchestrator (built from settings at startup if None)
        settings: Application settings (cached settings if None)
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        logger.info("Starting ChatLedger API...")
        logger.info("  Store backend: %s", settings.store_backend)

        await init_services(app, orchestrator, settings)
        logger.info("  Services initialized")

        yield

        logger.info("Shutting down ChatLedger API...")
        await cleanup_services(app)

    app = FastAPI(
        title="ChatLedger API",
        description="Provider extraction and monitoring for AI chat transcripts",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Add middleware (order matters - first added = innermost)
    app.add_middleware(RateLimitMiddleware, requests_per_minute=settings.api_rate_limit_rpm)
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(RequestContextMiddleware)

    allowed_origins = [
        "http://localhost:3000",
        "http://localhost:8000",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:8000",
    ]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
    )

    # Include routers
    app.include_router(health.router, tags=["Health"])
    app.include_router(providers.router, prefix="/api/providers", tags=["Providers"])
    app.include_router(tools.router, prefix="/api/tools", tags=["Tools"])
    app.include_router(credentials.router, prefix="/api/credentials", tags=["Credentials"])
    app.include_router(extraction.router, prefix="/api/extraction", tags=["Extraction"])
    app.include_router(monitoring.router, prefix="/api/monitoring", tags=["Monitoring"])
    app.include_router(conversations.router, prefix="/api/conversations", tags=["Conversations"])

    return app


# Create app instance
app = create_app()
