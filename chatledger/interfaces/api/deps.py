"""
API Dependencies - Dependency injection for FastAPI routes.

The orchestrator is built once per application in the lifespan handler and
kept on ``app.state``; routes receive it through ``get_orchestrator``.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request

from chatledger.config import Settings, get_settings
from chatledger.domains.orchestration import ChatLedgerOrchestrator, build_orchestrator

logger = logging.getLogger(__name__)


def get_orchestrator(request: Request) -> ChatLedgerOrchestrator:
    """Get the application's orchestrator."""
    return request.app.state.orchestrator


async def init_services(
    app: FastAPI,
    orchestrator: ChatLedgerOrchestrator | None = None,
    settings: Settings | None = None,
) -> ChatLedgerOrchestrator:
    """
    Initialize services on startup.

    This should be called from the FastAPI lifespan handler.
    """
    orchestrator = orchestrator or build_orchestrator(settings or get_settings())

    initialize = getattr(orchestrator.store, "initialize", None)
    if initialize is not None:
        await initialize()

    app.state.orchestrator = orchestrator
    return orchestrator


async def cleanup_services(app: FastAPI) -> None:
    """Stop sessions and jobs, release adapters."""
    orchestrator: ChatLedgerOrchestrator | None = getattr(app.state, "orchestrator", None)
    if orchestrator is not None:
        await orchestrator.shutdown()
