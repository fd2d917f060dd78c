"""Unit tests for the tenant rate limiter."""

import pytest

from lam_engine.utils.rate_limiter import TenantRateLimiter, TokenBucket

from helpers import OTHER_TENANT, TENANT, FakeClock


class TestTokenBucket:
    """Test TokenBucket."""

    def test_consume_and_refill(self):
        bucket = TokenBucket(capacity=2, tokens=2, last_refill=0.0, refill_rate=1.0)

        assert bucket.consume(0.0)
        assert bucket.consume(0.0)
        assert not bucket.consume(0.0)
        assert bucket.seconds_until_available() == pytest.approx(1.0)

        assert bucket.consume(1.0)

    def test_refill_capped_at_capacity(self):
        bucket = TokenBucket(capacity=2, tokens=0, last_refill=0.0, refill_rate=1.0)

        bucket.refill(100.0)

        assert bucket.tokens == 2


class TestTenantRateLimiter:
    """Test TenantRateLimiter."""

    @pytest.mark.asyncio
    async def test_burst_then_limited(self, clock):
        """Test the burst capacity is honoured before limiting."""
        limiter = TenantRateLimiter(requests_per_minute=6, clock=clock)

        allowed = [await limiter.acquire(TENANT) for _ in range(6)]

        assert allowed == [True] * 5 + [False]
        assert await limiter.retry_after(TENANT) == pytest.approx(10.0)

    @pytest.mark.asyncio
    async def test_refills_over_time(self, clock):
        limiter = TenantRateLimiter(requests_per_minute=6, clock=clock)
        for _ in range(5):
            await limiter.acquire(TENANT)

        clock.advance(10)

        assert await limiter.acquire(TENANT)
        assert not await limiter.acquire(TENANT)

    @pytest.mark.asyncio
    async def test_tenants_have_separate_buckets(self, clock):
        """Test one tenant exhausting its budget does not affect another."""
        limiter = TenantRateLimiter(requests_per_minute=6, clock=clock)
        for _ in range(5):
            await limiter.acquire(TENANT)

        assert not await limiter.acquire(TENANT)
        assert await limiter.acquire(OTHER_TENANT)
        assert limiter.get_stats() == {"active_buckets": 2, "requests_per_minute": 6}

    @pytest.mark.asyncio
    async def test_large_budget_capacity(self):
        limiter = TenantRateLimiter(requests_per_minute=120, clock=FakeClock())

        allowed = [await limiter.acquire(TENANT) for _ in range(21)]

        assert allowed.count(True) == 20
