from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
import logging
import time

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60.0


@dataclass(frozen=True)
class RateLimitStatus:
    requests_in_last_minute: int
    max_requests_per_minute: int
    requests_per_second: float
    can_make_request: bool

    @property
    def minute_usage_percentage(self) -> float:
        return self.requests_in_last_minute / self.max_requests_per_minute * 100.0


class RateLimiter:
    """Dual per-second / per-minute ceiling over outbound provider calls.

    Every prune, ceiling check and append happens under one asyncio lock, so
    concurrent callers are admitted one at a time in arrival order. A caller
    cancelled while waiting leaves no timestamp behind.
    """

    def __init__(
        self,
        requests_per_second: float = 3.0,
        requests_per_minute: int = 100,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if requests_per_second <= 0 or requests_per_minute <= 0:
            raise ValueError("rate limits must be positive")
        self.requests_per_second = float(requests_per_second)
        self.requests_per_minute = int(requests_per_minute)
        self.min_interval = 1.0 / self.requests_per_second
        self._clock = clock
        self._sleep = sleep
        self._timestamps: deque[float] = deque(maxlen=self.requests_per_minute)
        self._lock = asyncio.Lock()

    def _prune(self, now: float) -> None:
        cutoff = now - WINDOW_SECONDS
        while self._timestamps and self._timestamps[0] <= cutoff:
            self._timestamps.popleft()

    def _required_wait(self, now: float) -> float:
        wait = 0.0
        if len(self._timestamps) >= self.requests_per_minute:
            wait = WINDOW_SECONDS - (now - self._timestamps[0])
        if self._timestamps:
            wait = max(wait, self.min_interval - (now - self._timestamps[-1]))
        return wait

    async def acquire_slot(self) -> float:
        """Wait until one more call fits under both ceilings, then record it."""
        async with self._lock:
            while True:
                now = self._clock()
                self._prune(now)
                wait = self._required_wait(now)
                if wait <= 0:
                    break
                logger.debug("Rate limit reached, waiting %.3fs", wait)
                await self._sleep(wait)
            self._timestamps.append(now)
            return now

    def status(self) -> RateLimitStatus:
        now = self._clock()
        recent = sum(1 for ts in self._timestamps if now - ts < WINDOW_SECONDS)
        return RateLimitStatus(
            requests_in_last_minute=recent,
            max_requests_per_minute=self.requests_per_minute,
            requests_per_second=self.requests_per_second,
            can_make_request=recent < self.requests_per_minute,
        )

    def reset(self) -> None:
        self._timestamps.clear()
