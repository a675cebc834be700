"""
Health Routes - System health and status endpoints.
"""

from typing import Any

from fastapi import APIRouter

from chatledger import __version__

router = APIRouter()


@router.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy", "service": "chatledger"}


@router.get("/api")
async def api_info() -> dict[str, Any]:
    """API info endpoint."""
    return {
        "name": "ChatLedger API",
        "version": __version__,
        "description": "Provider extraction and monitoring for AI chat transcripts",
        "docs": "/docs",
        "endpoints": {
            "providers": "/api/providers",
            "tools": "/api/tools",
            "credentials": "/api/credentials/validate",
            "extraction": "/api/extraction/jobs",
            "monitoring": "/api/monitoring/sessions",
            "conversations": "/api/conversations",
        },
    }
