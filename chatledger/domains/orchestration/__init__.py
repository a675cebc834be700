"""
Orchestration Domain - The orchestrator facade.

This domain handles:
- Wiring validator, gateway, scheduler and monitor around one registry and store
- The operation surface shared by the REST API and the CLI
"""

from .orchestrator import ChatLedgerOrchestrator, build_orchestrator, build_store

__all__ = [
    "ChatLedgerOrchestrator",
    "build_orchestrator",
    "build_store",
]
