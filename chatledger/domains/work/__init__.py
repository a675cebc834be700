"""
Work Domain - Lifecycle records shared by extraction jobs and monitoring sessions.

This domain handles:
- The active-work registry (one job / one session per credential)
- State change history and error snapshots
"""

from .models import ErrorInfo, StateChange
from .registry import ActiveWorkRegistry, slot_key

__all__ = [
    # Models
    "ErrorInfo",
    "StateChange",
    # Implementations
    "ActiveWorkRegistry",
    "slot_key",
]
