"""Sliding-window limiter shared by the embedding and LLM clients."""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from typing import Awaitable, Callable

from docgen.core.errors import RateLimited

logger = logging.getLogger(__name__)


class SlidingWindowRateLimiter:
    """Allow at most `max_requests` acquisitions in any `window_seconds` span.

    Callers wait for a free slot instead of failing. Waiters are served in
    arrival order because the lock is held while sleeping. `max_wait` bounds a
    single wait; past it the caller gets RateLimited.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        max_wait: float | None = None,
    ):
        if max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.max_wait = max_wait
        self._clock = clock
        self._sleep = sleep
        self._stamps: deque[float] = deque()
        self._lock = asyncio.Lock()

    def _evict(self, now: float) -> None:
        while self._stamps and now - self._stamps[0] >= self.window_seconds:
            self._stamps.popleft()

    @property
    def in_window(self) -> int:
        self._evict(self._clock())
        return len(self._stamps)

    async def acquire(self) -> None:
        async with self._lock:
            while True:
                now = self._clock()
                self._evict(now)
                if len(self._stamps) < self.max_requests:
                    self._stamps.append(now)
                    return
                wait = self.window_seconds - (now - self._stamps[0])
                if self.max_wait is not None and wait > self.max_wait:
                    raise RateLimited(f"rate limit wait of {wait:.1f}s exceeds budget of {self.max_wait:.1f}s")
                logger.info("rate limit reached (%d/%.0fs), waiting %.2fs", self.max_requests, self.window_seconds, wait)
                await self._sleep(wait)

    async def __aenter__(self):
        await self.acquire()
        return self

    async def __aexit__(self, *exc):
        return False
