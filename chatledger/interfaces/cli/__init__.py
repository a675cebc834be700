"""
CLI Interface - Command-line tools for ChatLedger.

Provides commands for:
- Browsing providers and tools
- Credential validation
- One-shot extraction and timed monitoring
- Stored conversations and the API server
"""

from .main import app, main

__all__ = ["app", "main"]
