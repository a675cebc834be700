"""
API Routes.
"""

from . import conversations, credentials, extraction, health, monitoring, providers, tools

__all__ = [
    "health",
    "providers",
    "tools",
    "credentials",
    "extraction",
    "monitoring",
    "conversations",
]
