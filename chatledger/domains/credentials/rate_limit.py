"""
Sliding-window rate limiter for validation attempts and API requests.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from collections.abc import Callable

from chatledger.config.errors import RateLimited

logger = logging.getLogger(__name__)

__all__ = ["SlidingWindowRateLimiter"]


class SlidingWindowRateLimiter:
    """Allow at most ``limit`` attempts per key within ``window_seconds``."""

    def __init__(
        self,
        limit: int = 5,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        subject: str = "validation attempts",
    ) -> None:
        if limit < 1:
            raise ValueError("limit must be at least 1")
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self.subject = subject
        self._attempts: dict[str, deque[float]] = {}
        self._lock = asyncio.Lock()

    async def acquire(self, key: str) -> None:
        """
        Record an attempt for ``key``.

        Raises:
            RateLimited: Window is full; ``retry_after`` says when a slot frees up
        """
        async with self._lock:
            now = self._clock()
            self._forget_idle(now)
            attempts = self._attempts.setdefault(key, deque())
            # Drop attempts that left the window
            while attempts and now - attempts[0] >= self.window_seconds:
                attempts.popleft()

            if len(attempts) >= self.limit:
                retry_after = self.window_seconds - (now - attempts[0])
                logger.warning(
                    "Rate limit on %s reached for %s, retry in %.1fs",
                    self.subject,
                    key[:12],
                    retry_after,
                )
                raise RateLimited(
                    f"Too many {self.subject}; retry after {retry_after:.0f}s",
                    retry_after=retry_after,
                )

            attempts.append(now)

    def remaining(self, key: str) -> int:
        now = self._clock()
        live = [t for t in self._attempts.get(key, ()) if now - t < self.window_seconds]
        return max(0, self.limit - len(live))

    @property
    def tracked_keys(self) -> int:
        return len(self._attempts)

    def _forget_idle(self, now: float) -> None:
        """Drop keys whose newest attempt has left the window."""
        idle = [
            key
            for key, attempts in self._attempts.items()
            if not attempts or now - attempts[-1] >= self.window_seconds
        ]
        for key in idle:
            del self._attempts[key]
