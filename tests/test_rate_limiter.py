"""Tests for the tumbling-window rate limiter."""

import asyncio

import pytest

from textweaver.llm.rate_limiter import RateLimiter


@pytest.mark.asyncio
async def test_requests_within_budget_do_not_wait(clock):
    limiter = RateLimiter(3, clock=clock, sleep=clock.sleep)

    for _ in range(3):
        await limiter.acquire()

    assert clock.sleeps == []


@pytest.mark.asyncio
async def test_request_over_budget_waits_for_window_reset(clock):
    limiter = RateLimiter(3, clock=clock, sleep=clock.sleep)

    await limiter.acquire()
    clock.now += 20
    await limiter.acquire()
    await limiter.acquire()
    await limiter.acquire()

    assert clock.sleeps == [pytest.approx(40.0)]
    status = limiter.status()
    assert status.remaining == 2
    assert status.reset_in_seconds == pytest.approx(60.0)


@pytest.mark.asyncio
async def test_window_resets_after_elapsing(clock):
    limiter = RateLimiter(2, clock=clock, sleep=clock.sleep)

    await limiter.acquire()
    await limiter.acquire()
    clock.now += 61
    await limiter.acquire()

    assert clock.sleeps == []


@pytest.mark.asyncio
async def test_concurrent_callers_share_budget(clock):
    limiter = RateLimiter(5, clock=clock, sleep=clock.sleep)

    await asyncio.gather(*(limiter.acquire() for _ in range(6)))

    # Exactly one caller is pushed into the next window
    assert len(clock.sleeps) == 1


def test_status_before_first_request(clock):
    limiter = RateLimiter(15, clock=clock, sleep=clock.sleep)
    status = limiter.status()
    assert status.requests_per_minute == 15
    assert status.remaining == 15
    assert status.reset_in_seconds == 0.0


def test_rejects_non_positive_budget():
    with pytest.raises(ValueError):
        RateLimiter(0)
