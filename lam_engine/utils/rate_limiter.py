"""Per-tenant rate limiting for run submission."""

import asyncio
import time
from dataclasses import dataclass
from typing import Callable

import structlog

logger = structlog.get_logger(__name__)


@dataclass
class TokenBucket:
    """Token bucket for one tenant."""

    capacity: int
    tokens: float
    last_refill: float
    refill_rate: float  # tokens per second

    def refill(self, now: float) -> None:
        elapsed = max(0.0, now - self.last_refill)
        self.tokens = min(self.capacity, self.tokens + elapsed * self.refill_rate)
        self.last_refill = now

    def consume(self, now: float, tokens: int = 1) -> bool:
        """Try to take tokens out of the bucket.

        Args:
            now: Current clock reading
            tokens: Number of tokens to consume

        Returns:
            True if tokens were consumed, False otherwise
        """
        self.refill(now)
        if self.tokens >= tokens:
            self.tokens -= tokens
            return True
        return False

    def seconds_until_available(self, tokens: int = 1) -> float:
        if self.tokens >= tokens:
            return 0.0
        return (tokens - self.tokens) / self.refill_rate


class TenantRateLimiter:
    """Token bucket rate limiter keyed by tenant."""

    def __init__(
        self,
        requests_per_minute: int = 30,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize rate limiter.

        Args:
            requests_per_minute: Sustained requests allowed per tenant
            clock: Monotonic clock, replaceable in tests
        """
        self.requests_per_minute = requests_per_minute
        self._clock = clock
        self._buckets: dict[str, TokenBucket] = {}
        self._lock = asyncio.Lock()

        logger.info(
            "Initialized TenantRateLimiter",
            requests_per_minute=requests_per_minute
        )

    async def _bucket_for(self, tenant_id: str) -> TokenBucket:
        async with self._lock:
            bucket = self._buckets.get(tenant_id)
            if bucket is None:
                # Allow short bursts of up to a sixth of the per-minute budget
                capacity = max(5, self.requests_per_minute // 6)
                bucket = TokenBucket(
                    capacity=capacity,
                    tokens=capacity,
                    last_refill=self._clock(),
                    refill_rate=self.requests_per_minute / 60.0,
                )
                self._buckets[tenant_id] = bucket
                logger.debug("Created rate limit bucket", tenant=tenant_id, capacity=capacity)
            return bucket

    async def acquire(self, tenant_id: str, tokens: int = 1) -> bool:
        """Take tokens for a tenant without waiting.

        Args:
            tenant_id: Tenant submitting the request
            tokens: Number of tokens to acquire

        Returns:
            True if the request is allowed
        """
        bucket = await self._bucket_for(tenant_id)
        if bucket.consume(self._clock(), tokens):
            return True

        logger.warning(
            "Rate limit exceeded",
            tenant=tenant_id,
            retry_after=round(bucket.seconds_until_available(tokens), 2),
        )
        return False

    async def retry_after(self, tenant_id: str) -> float:
        """Seconds until the tenant can submit again."""
        bucket = await self._bucket_for(tenant_id)
        bucket.refill(self._clock())
        return bucket.seconds_until_available()

    def get_stats(self) -> dict[str, int]:
        return {
            "active_buckets": len(self._buckets),
            "requests_per_minute": self.requests_per_minute,
        }
