"""
Credentials Domain - Credential validation and validation records.

This domain handles:
- Delegating checks to provider verifiers
- Caching validation records until TTL expiry
- Per-credential validation rate limiting
"""

from .cache import ValidationCache
from .contracts import ValidationAuthority
from .models import ValidationRecord
from .rate_limit import SlidingWindowRateLimiter
from .validator import CredentialValidator

__all__ = [
    # Contracts
    "ValidationAuthority",
    # Models
    "ValidationRecord",
    # Implementations
    "CredentialValidator",
    "ValidationCache",
    "SlidingWindowRateLimiter",
]
