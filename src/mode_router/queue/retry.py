"""Bounded retry around rate-limited provider calls.

Rate-limit and transient server failures are retried; auth failures and
everything else are terminal and propagate on the first attempt.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
import logging
from typing import Any, Generic, TypeVar

from ..errors import ErrorKind, ProviderError, RateLimited, RetryExhausted
from .rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_RETRY_AFTER = 60.0


@dataclass(frozen=True)
class CallOutcome(Generic[T]):
    value: T | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def error_kind(self) -> ErrorKind | None:
        if self.error is None:
            return None
        return getattr(self.error, "kind", None)


def backoff_delay(attempt: int, base_delay: float, use_exponential_backoff: bool) -> float:
    if use_exponential_backoff:
        return base_delay * (2**attempt)
    return base_delay


class RetryController:
    def __init__(
        self,
        rate_limiter: RateLimiter,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.rate_limiter = rate_limiter
        self._sleep = sleep

    async def execute_with_retry(
        self,
        operation: Callable[[], Awaitable[T]],
        max_retries: int = 3,
        base_delay: float = 1.0,
        use_exponential_backoff: bool = True,
    ) -> T:
        """Run ``operation`` with up to ``max_retries`` retries.

        Raises:
            AuthError: On the first auth failure, never retried.
            RetryExhausted: When the final attempt fails with a retryable error.
        """
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        for attempt in range(max_retries + 1):
            await self.rate_limiter.acquire_slot()
            try:
                return await operation()
            except ProviderError as exc:
                if exc.kind is ErrorKind.RATE_LIMITED:
                    delay = min(exc.retry_after, MAX_RETRY_AFTER) if isinstance(exc, RateLimited) else base_delay
                elif exc.kind is ErrorKind.TRANSIENT_SERVER:
                    delay = backoff_delay(attempt, base_delay, use_exponential_backoff)
                else:
                    raise

                if attempt == max_retries:
                    logger.error("Giving up after %d attempts: %s", attempt + 1, exc.describe())
                    raise RetryExhausted(exc, attempts=attempt + 1) from exc

                logger.warning(
                    "Retry %d/%d (%s, backoff: %.1fs)",
                    attempt + 1,
                    max_retries,
                    exc.describe(),
                    delay,
                )
                await self._sleep(delay)

        raise AssertionError("retry loop exited without a result")

    async def execute_batch(self, operations: Sequence[Callable[[], Awaitable[Any]]]) -> list[CallOutcome[Any]]:
        """Run each operation under the rate limiter; failures are collected, not raised."""
        outcomes: list[CallOutcome[Any]] = []
        for index, operation in enumerate(operations):
            await self.rate_limiter.acquire_slot()
            try:
                outcomes.append(CallOutcome(value=await operation()))
            except Exception as exc:
                logger.warning("Batch item %d of %d failed: %s", index + 1, len(operations), exc)
                outcomes.append(CallOutcome(error=exc))

        failures = sum(1 for outcome in outcomes if not outcome.ok)
        if failures:
            logger.info("Batch finished with %d of %d failures", failures, len(outcomes))
        return outcomes
