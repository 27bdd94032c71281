from __future__ import annotations

import asyncio

import pytest

from policyscout.scrapers.rate_limiter import RateLimiter
from tests.utils.http import FakeClock


def _limiter(clock: FakeClock, interval: float = 1.0) -> RateLimiter:
    return RateLimiter(interval, clock=clock, sleep=clock.sleep)


@pytest.mark.asyncio
async def test_first_request_is_not_delayed() -> None:
    clock = FakeClock()
    limiter = _limiter(clock)

    await limiter.throttle("example.com")

    assert clock.sleeps == []


@pytest.mark.asyncio
async def test_consecutive_requests_to_same_host_are_spaced() -> None:
    clock = FakeClock()
    limiter = _limiter(clock)

    await limiter.throttle("example.com")
    await limiter.throttle("example.com")

    assert clock.sleeps == [pytest.approx(1.0)]


@pytest.mark.asyncio
async def test_elapsed_time_counts_towards_interval() -> None:
    clock = FakeClock()
    limiter = _limiter(clock)

    await limiter.throttle("example.com")
    clock.now += 0.75
    await limiter.throttle("example.com")

    assert clock.sleeps == [pytest.approx(0.25)]


@pytest.mark.asyncio
async def test_different_hosts_do_not_wait_for_each_other() -> None:
    clock = FakeClock()
    limiter = _limiter(clock)

    await limiter.throttle("example.com")
    await limiter.throttle("example.org")

    assert clock.sleeps == []


@pytest.mark.asyncio
async def test_concurrent_requests_are_serialized_per_host() -> None:
    clock = FakeClock()
    limiter = _limiter(clock)

    await asyncio.gather(*(limiter.throttle("example.com") for _ in range(3)))

    assert clock.sleeps == [pytest.approx(1.0), pytest.approx(1.0)]
    assert clock.now == pytest.approx(2.0)


@pytest.mark.asyncio
async def test_defer_pushes_next_slot_back() -> None:
    clock = FakeClock()
    limiter = _limiter(clock)

    await limiter.throttle("example.com")
    await limiter.defer("example.com", 5.0)
    await limiter.throttle("example.com")

    assert clock.sleeps == [pytest.approx(5.0)]


@pytest.mark.asyncio
async def test_defer_never_shortens_existing_wait() -> None:
    clock = FakeClock()
    limiter = _limiter(clock, interval=3.0)

    await limiter.throttle("example.com")
    await limiter.defer("example.com", 1.0)
    await limiter.throttle("example.com")

    assert clock.sleeps == [pytest.approx(3.0)]


@pytest.mark.asyncio
async def test_per_call_interval_override() -> None:
    clock = FakeClock()
    limiter = _limiter(clock)

    await limiter.throttle("example.com", min_interval=0.0)
    await limiter.throttle("example.com")

    assert clock.sleeps == []


@pytest.mark.asyncio
async def test_idle_hosts_are_forgotten() -> None:
    clock = FakeClock()
    limiter = RateLimiter(1.0, clock=clock, sleep=clock.sleep, stale_after=60.0)

    await limiter.throttle("a.example")
    await limiter.throttle("b.example")
    clock.now = 30.0
    await limiter.throttle("b.example")
    clock.now = 75.0
    await limiter.throttle("c.example")

    assert sorted(limiter.tracked_keys) == ["b.example", "c.example"]


@pytest.mark.asyncio
async def test_forgotten_host_is_not_delayed_on_return() -> None:
    clock = FakeClock()
    limiter = RateLimiter(1.0, clock=clock, sleep=clock.sleep, stale_after=10.0)

    await limiter.throttle("a.example")
    clock.now = 20.0
    await limiter.throttle("b.example")
    await limiter.throttle("a.example")

    assert clock.sleeps == []
    assert sorted(limiter.tracked_keys) == ["a.example", "b.example"]
