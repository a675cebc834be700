"""
API Interface - FastAPI REST API.

Exposes the orchestrator over HTTP: providers and tools, credential
validation, extraction jobs, monitoring sessions and stored conversations.
"""

from .main import app, create_app

__all__ = ["app", "create_app"]
