"""
Extraction Domain - Extraction Job Scheduler.

This domain handles:
- Accepting one-shot extraction jobs for validated credentials
- Running them in the background with retry on transient failures
- Progress, cancellation and aggregate statistics
"""

from .models import (
    JOB_TRANSITIONS,
    TERMINAL_JOB_STATES,
    ExtractionJob,
    ExtractionStats,
    JobState,
)
from .scheduler import ExtractionScheduler

__all__ = [
    # Models
    "ExtractionJob",
    "ExtractionStats",
    "JobState",
    "JOB_TRANSITIONS",
    "TERMINAL_JOB_STATES",
    # Implementations
    "ExtractionScheduler",
]
