"""Per-client token bucket rate limiting.

Every tool call can spawn an ssh client on this host, so the HTTP surface
limits how quickly a single client may start them.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any

from remote_mcp.middleware.base import MCPMiddleware

logger = logging.getLogger(__name__)


class RateLimitError(PermissionError):
    """Client exceeded its request budget."""

    def __init__(self, retry_after: float):
        self.retry_after = retry_after
        super().__init__(f"Rate limit exceeded. Retry after {retry_after:.1f} seconds.")


@dataclass
class TokenBucket:
    """Token bucket refilled continuously at ``refill_rate`` tokens/second."""

    capacity: int
    refill_rate: float
    tokens: float = field(init=False)
    last_refill: float = field(init=False)

    def __post_init__(self) -> None:
        self.tokens = float(self.capacity)
        self.last_refill = time.monotonic()

    def _refill(self) -> None:
        now = time.monotonic()
        self.tokens = min(
            float(self.capacity),
            self.tokens + (now - self.last_refill) * self.refill_rate,
        )
        self.last_refill = now

    def consume(self, count: int = 1) -> bool:
        """Take tokens if enough are available."""
        self._refill()
        if self.tokens < count:
            return False
        self.tokens -= count
        return True

    def time_until_ready(self) -> float:
        """Seconds until one token is available."""
        if self.tokens >= 1:
            return 0.0
        return (1.0 - self.tokens) / self.refill_rate


class RateLimitMiddleware(MCPMiddleware):
    """Limit requests per client (by IP for HTTP, shared for STDIO)."""

    def __init__(self, per_minute: int = 60, burst: int = 10):
        """Initialize rate limiter.

        Args:
            per_minute: Sustained requests per minute per client
            burst: Bucket capacity
        """
        self.per_minute = per_minute
        self.burst = burst
        self.refill_rate = per_minute / 60.0
        self._buckets: dict[str, TokenBucket] = {}

    def bucket_for(self, client_id: str) -> TokenBucket:
        bucket = self._buckets.get(client_id)
        if bucket is None:
            bucket = TokenBucket(capacity=self.burst, refill_rate=self.refill_rate)
            self._buckets[client_id] = bucket
        return bucket

    async def process_request(
        self,
        method: str,
        params: dict[str, Any],
        context: dict[str, Any],
    ) -> dict[str, Any]:
        client_id = context.get("client_ip") or context.get("client_id") or "stdio"
        bucket = self.bucket_for(client_id)

        if not bucket.consume():
            retry_after = bucket.time_until_ready()
            logger.warning("Rate limit hit for %s (retry in %.1fs)", client_id, retry_after)
            raise RateLimitError(retry_after)

        return context
