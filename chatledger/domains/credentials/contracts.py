"""
Credential Contracts - What the scheduler and monitor need from validation.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from .models import ValidationRecord


@runtime_checkable
class ValidationAuthority(Protocol):
    """
    Source of existing validation records.

    Work is only started on a record that is already on file; the
    authority is consulted, never asked to validate on the caller's behalf.
    """

    async def lookup(self, provider_id: str, fingerprint: str) -> ValidationRecord | None:
        """
        Get the fresh record for a credential.

        Args:
            provider_id: Provider id
            fingerprint: Credential fingerprint

        Returns:
            Valid, unexpired record or None
        """
        ...
