"""
Validation Cache - In-memory validation records with TTL support.

Keeps successful validations keyed by (provider id, credential fingerprint)
so repeated validation calls do not hit the provider again.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from .models import ValidationRecord

logger = logging.getLogger(__name__)

__all__ = ["ValidationCache"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ValidationCache:
    """
    In-memory validation record cache.

    Features:
    - Automatic TTL expiration
    - Per-provider invalidation
    - Hit tracking for analytics
    """

    def __init__(
        self,
        max_size: int = 10_000,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """
        Initialize cache.

        Args:
            max_size: Maximum number of cached records
            clock: Source of the current UTC time
        """
        self._records: dict[tuple[str, str], ValidationRecord] = {}
        self._max_size = max_size
        self._clock = clock

    async def get(self, provider_id: str, fingerprint: str) -> ValidationRecord | None:
        """Get a fresh record, dropping it if expired."""
        key = (provider_id, fingerprint)
        record = self._records.get(key)
        if record is None:
            return None

        if not record.is_fresh(self._clock()):
            del self._records[key]
            logger.debug("Validation record expired: %s/%s", provider_id, fingerprint[:12])
            return None

        record.hit_count += 1
        return record

    async def put(self, record: ValidationRecord) -> None:
        """Cache a record. Invalid records are never cached."""
        if not record.valid:
            await self.invalidate(record.provider_id, record.fingerprint)
            return

        if len(self._records) >= self._max_size:
            self._evict_oldest()

        self._records[(record.provider_id, record.fingerprint)] = record
        logger.debug(
            "Cached validation %s/%s until %s",
            record.provider_id,
            record.fingerprint[:12],
            record.expires_at,
        )

    async def invalidate(self, provider_id: str, fingerprint: str | None = None) -> int:
        """Drop one record, or every record of a provider when fingerprint is None."""
        if fingerprint is not None:
            removed = self._records.pop((provider_id, fingerprint), None)
            return 1 if removed else 0

        keys = [key for key in self._records if key[0] == provider_id]
        for key in keys:
            del self._records[key]
        logger.info("Invalidated %d validation records for %s", len(keys), provider_id)
        return len(keys)

    async def clear(self) -> None:
        count = len(self._records)
        self._records.clear()
        logger.info("Cleared %d validation records", count)

    def _evict_oldest(self) -> None:
        """Evict the oldest 10% of records to make room."""
        sorted_keys = sorted(self._records, key=lambda k: self._records[k].issued_at)
        evict_count = max(1, len(sorted_keys) // 10)
        for key in sorted_keys[:evict_count]:
            del self._records[key]
        logger.debug("Evicted %d oldest validation records", evict_count)

    def stats(self) -> dict[str, Any]:
        by_provider: dict[str, int] = {}
        for provider_id, _ in self._records:
            by_provider[provider_id] = by_provider.get(provider_id, 0) + 1
        return {
            "size": len(self._records),
            "max_size": self._max_size,
            "total_hits": sum(r.hit_count for r in self._records.values()),
            "by_provider": by_provider,
        }
