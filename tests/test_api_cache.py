"""Tests for the response cache and rate limiter."""

import pytest

from levelboard.utils.api_cache import RateLimiter, ResponseCache


@pytest.mark.asyncio
async def test_response_cache_returns_copies(clock):
    cache = ResponseCache(ttl=15, clock=clock)
    await cache.set("k", {"data": [1]})

    first = await cache.get("k")
    first["data"].append(2)

    assert await cache.get("k") == {"data": [1]}


@pytest.mark.asyncio
async def test_response_cache_expiry_and_cleanup(clock):
    cache = ResponseCache(ttl=15, clock=clock)
    await cache.set("a", {})
    await cache.set("b", {})
    clock.advance(15)

    assert await cache.get("a") is None
    assert await cache.cleanup_expired() == 1
    assert await cache.clear() == 0


@pytest.mark.asyncio
async def test_rate_limiter_burst_limit(clock):
    limiter = RateLimiter(requests_per_minute=100, burst_limit=2, clock=clock)

    assert await limiter.is_allowed("ip") == (True, None)
    assert await limiter.is_allowed("ip") == (True, None)
    assert await limiter.is_allowed("ip") == (False, 1)

    clock.advance(1.5)
    assert (await limiter.is_allowed("ip"))[0] is True


@pytest.mark.asyncio
async def test_rate_limiter_minute_window(clock):
    limiter = RateLimiter(requests_per_minute=2, burst_limit=10, clock=clock)
    await limiter.is_allowed("ip")
    clock.advance(10)
    await limiter.is_allowed("ip")

    allowed, retry_after = await limiter.is_allowed("ip")
    assert allowed is False
    assert retry_after == 51


@pytest.mark.asyncio
async def test_rate_limiter_cleanup_removes_idle_clients(clock):
    limiter = RateLimiter(clock=clock)
    await limiter.is_allowed("ip")
    clock.advance(121)

    assert await limiter.cleanup() == 1
