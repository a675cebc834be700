"""
Active Work Registry - Exclusive (provider, credential) slots.

The only mutable state shared between jobs or sessions. Every claim and
release is a compare-and-set under one lock, so it is safe from the event
loop and from worker threads alike.
"""

from __future__ import annotations

import logging
import threading

logger = logging.getLogger(__name__)

__all__ = ["ActiveWorkRegistry", "slot_key"]


def slot_key(provider_id: str, fingerprint: str) -> str:
    return f"{provider_id}:{fingerprint}"


class ActiveWorkRegistry:
    """
    Maps a slot key to the id of the work item holding it.

    Example:
        >>> slots = ActiveWorkRegistry("jobs")
        >>> slots.try_acquire("claude:ab12", "job_1")
        True
        >>> slots.try_acquire("claude:ab12", "job_2")
        False
        >>> slots.holder("claude:ab12")
        'job_1'
    """

    def __init__(self, name: str = "work") -> None:
        self.name = name
        self._holders: dict[str, str] = {}
        self._lock = threading.Lock()

    def try_acquire(self, key: str, owner: str) -> bool:
        """Claim the slot for owner. Re-claiming an owned slot succeeds."""
        with self._lock:
            current = self._holders.get(key)
            if current is not None and current != owner:
                return False
            self._holders[key] = owner
        logger.debug("%s slot %s claimed by %s", self.name, key[:24], owner)
        return True

    def release(self, key: str, owner: str) -> bool:
        """Release the slot only if owner still holds it."""
        with self._lock:
            if self._holders.get(key) != owner:
                return False
            del self._holders[key]
        logger.debug("%s slot %s released by %s", self.name, key[:24], owner)
        return True

    def holder(self, key: str) -> str | None:
        with self._lock:
            return self._holders.get(key)

    def active(self) -> dict[str, str]:
        with self._lock:
            return dict(self._holders)

    def __len__(self) -> int:
        with self._lock:
            return len(self._holders)
