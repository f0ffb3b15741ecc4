"""Shared rate-limiting primitive for calls to external collaborators.

Ingestion talks to two rate-limited services in tight loops: the
embedding API (one call per chunk) and the vector store (one call per
upsert batch).  Each gets its own :class:`AsyncRateLimiter`, a token
bucket that every call to that collaborator acquires from before it goes
out.  With ``capacity=1`` the bucket spaces calls ``1 / rate`` seconds
apart; a larger capacity allows short bursts while keeping the same
long-run rate.

The rate is a constructor argument, taken from settings, so it can follow
the limits a provider advertises instead of a sleep hardcoded at each
call-site.
"""

from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable

import structlog

from sitechat.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)


class AsyncRateLimiter:
    """Async token bucket.

    Parameters
    ----------
    rate_per_second:
        Tokens added to the bucket per second.  Must be positive.
    capacity:
        Maximum tokens the bucket can hold.  The bucket starts full, so the
        first ``capacity`` acquisitions never wait.
    name:
        Label used in log events.
    clock, sleep:
        Injection points for tests; default to ``time.monotonic`` and
        ``asyncio.sleep``.
    """

    def __init__(
        self,
        rate_per_second: float,
        capacity: float = 1.0,
        *,
        name: str = "rate_limiter",
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if rate_per_second <= 0:
            raise ValueError(f"rate_per_second must be positive, got {rate_per_second}")
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")
        self._rate = rate_per_second
        self._capacity = capacity
        self._name = name
        self._clock = clock
        self._sleep = sleep
        self._tokens = capacity
        self._last_refill = clock()
        # Waiters queue on the lock, so acquisitions are served in order.
        self._lock = asyncio.Lock()

    async def acquire(self, tokens: float = 1.0) -> float:
        """Take *tokens* from the bucket, waiting for a refill if needed.

        Returns the number of seconds spent waiting.
        """
        if tokens > self._capacity:
            raise ValueError(
                f"cannot acquire {tokens} tokens from a bucket of capacity {self._capacity}"
            )
        async with self._lock:
            self._refill()
            waited = 0.0
            if self._tokens < tokens:
                waited = (tokens - self._tokens) / self._rate
                await self._sleep(waited)
                self._refill()
            self._tokens = max(0.0, self._tokens - tokens)
            if waited:
                _logger.debug("rate_limit_wait", limiter=self._name, waited_s=round(waited, 4))
            return waited

    def _refill(self) -> None:
        now = self._clock()
        elapsed = max(0.0, now - self._last_refill)
        self._tokens = min(self._capacity, self._tokens + elapsed * self._rate)
        self._last_refill = now
