"""
Client-side request budget per provider.

A tumbling window: the window opens at the first request, allows
``requests_per_minute`` calls, and resets once it has elapsed. Callers over
budget wait for the reset; they are never rejected.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class RateLimitStatus:
    """Snapshot of a limiter's window."""

    requests_per_minute: int
    remaining: int
    reset_in_seconds: float


class RateLimiter:
    """Cooperative requests-per-minute limiter."""

    def __init__(
        self,
        requests_per_minute: int,
        window: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if requests_per_minute < 1:
            raise ValueError(f"requests_per_minute must be positive, got {requests_per_minute}")
        self.requests_per_minute = requests_per_minute
        self.window = window
        self._clock = clock
        self._sleep = sleep
        self._count = 0
        self._window_start: float | None = None
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        """Wait until a request may be sent, then count it."""
        async with self._lock:
            now = self._clock()
            if self._window_start is None or now - self._window_start >= self.window:
                self._window_start = now
                self._count = 0

            if self._count >= self.requests_per_minute:
                wait = self.window - (now - self._window_start)
                if wait > 0:
                    logger.info(
                        "Rate limit reached (%d/min), waiting %.1fs", self.requests_per_minute, wait
                    )
                    await self._sleep(wait)
                self._window_start = self._clock()
                self._count = 0

            self._count += 1

    def status(self) -> RateLimitStatus:
        """Current budget for display."""
        now = self._clock()
        if self._window_start is None or now - self._window_start >= self.window:
            return RateLimitStatus(self.requests_per_minute, self.requests_per_minute, 0.0)
        return RateLimitStatus(
            requests_per_minute=self.requests_per_minute,
            remaining=max(0, self.requests_per_minute - self._count),
            reset_in_seconds=self.window - (now - self._window_start),
        )
