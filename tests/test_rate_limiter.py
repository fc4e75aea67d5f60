import asyncio
import time

import pytest

from src.mode_router.queue.rate_limiter import RateLimiter


def test_per_second_ceiling_spaces_calls(clock):
    limiter = RateLimiter(4, 100, clock=clock, sleep=clock.sleep)

    async def run():
        return [await limiter.acquire_slot() for _ in range(3)]

    assert asyncio.run(run()) == [0.0, 0.25, 0.5]
    assert clock.sleeps == [0.25, 0.25]


def test_per_minute_ceiling_waits_for_window(clock):
    limiter = RateLimiter(1024, 3, clock=clock, sleep=clock.sleep)

    async def run():
        return [await limiter.acquire_slot() for _ in range(4)]

    stamps = asyncio.run(run())
    assert stamps[-1] == 60.0
    assert clock.sleeps[-1] == pytest.approx(60.0 - 2 / 1024)
    assert limiter.status().requests_in_last_minute == 3


def test_five_calls_at_three_per_second_take_over_a_second():
    limiter = RateLimiter(3, 100)

    async def run():
        return [await limiter.acquire_slot() for _ in range(5)]

    started = time.monotonic()
    stamps = asyncio.run(run())
    elapsed = time.monotonic() - started

    gaps = [later - earlier for earlier, later in zip(stamps, stamps[1:])]
    assert all(gap >= limiter.min_interval for gap in gaps)
    assert elapsed >= 4 / 3 - 1e-9


def test_concurrent_callers_are_serialized(clock):
    limiter = RateLimiter(4, 100, clock=clock, sleep=clock.sleep)

    async def run():
        return await asyncio.gather(*(limiter.acquire_slot() for _ in range(4)))

    assert sorted(asyncio.run(run())) == [0.0, 0.25, 0.5, 0.75]


def test_cancelled_waiter_leaves_no_timestamp():
    limiter = RateLimiter(0.5, 100)

    async def run():
        await limiter.acquire_slot()
        waiter = asyncio.create_task(limiter.acquire_slot())
        await asyncio.sleep(0.05)
        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter
        return limiter.status()

    status = asyncio.run(run())
    assert status.requests_in_last_minute == 1


def test_status_and_reset(clock):
    limiter = RateLimiter(4, 10, clock=clock, sleep=clock.sleep)

    async def run():
        for _ in range(5):
            await limiter.acquire_slot()

    asyncio.run(run())
    status = limiter.status()
    assert status.requests_in_last_minute == 5
    assert status.minute_usage_percentage == 50.0
    assert status.can_make_request

    clock.now += 61
    assert limiter.status().requests_in_last_minute == 0

    limiter.reset()
    assert limiter.status().requests_in_last_minute == 0


def test_rejects_non_positive_limits():
    with pytest.raises(ValueError):
        RateLimiter(0, 100)
    with pytest.raises(ValueError):
        RateLimiter(3, 0)
