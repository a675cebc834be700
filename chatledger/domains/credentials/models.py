"""
Credential Models - Validation records issued by the Credential Validator.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field


class ValidationRecord(BaseModel):
    """Time-bound proof that a credential was accepted by its provider."""

    provider_id: str
    fingerprint: str
    valid: bool
    issued_at: datetime
    expires_at: datetime | None = None
    permissions: list[str] = Field(default_factory=list)
    message: str = ""
    hit_count: int = 0

    def is_fresh(self, now: datetime | None = None) -> bool:
        """Valid and not yet expired."""
        if not self.valid:
            return False
        if self.expires_at is None:
            return True
        now = now or datetime.now(timezone.utc)
        return now < self.expires_at

    def authorizes(self, permission: str, now: datetime | None = None) -> bool:
        return self.is_fresh(now) and permission in self.permissions
