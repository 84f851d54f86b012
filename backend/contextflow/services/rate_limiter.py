"""
Redis fixed-window rate limiter for inbound webhook traffic.

Redis Keys:
    ratelimit:{scope}:{identifier}:{window}  - request counter, expires with the window
"""

from __future__ import annotations

import hashlib
import logging
import time
from dataclasses import dataclass
from typing import Mapping, Optional

import redis

from contextflow.config import settings
from contextflow.core.redis import get_redis

logger = logging.getLogger(__name__)

KEY_PREFIX = "ratelimit"


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_at: int

    def headers(self) -> dict:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset_at),
        }


def get_client_identifier(headers: Mapping[str, str], peer_host: Optional[str]) -> str:
    """Network identity of the caller, preferring proxy-provided addresses."""
    forwarded_for = headers.get("x-forwarded-for")
    if forwarded_for:
        first_hop = forwarded_for.split(",")[0].strip()
        if first_hop:
            return first_hop

    real_ip = headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    if peer_host:
        return peer_host

    user_agent = headers.get("user-agent", "unknown")
    return "ua:" + hashlib.sha256(user_agent.encode()).hexdigest()[:16]


class RedisRateLimiter:
    """Counts requests per identifier in fixed windows of ``window_seconds``."""

    def __init__(
        self,
        scope: str,
        limit: Optional[int] = None,
        window_seconds: Optional[int] = None,
        client: Optional[redis.Redis] = None,
    ):
        self.scope = scope
        self.limit = limit or settings.WEBHOOK_RATE_LIMIT
        self.window_seconds = window_seconds or settings.WEBHOOK_RATE_LIMIT_WINDOW_SECONDS
        self._redis = client

    @property
    def redis(self) -> redis.Redis:
        if self._redis is None:
            self._redis = get_redis()
        return self._redis

    def hit(self, identifier: str, now: Optional[float] = None) -> RateLimitResult:
        """Record one request and report whether it is within the limit."""
        now = time.time() if now is None else now
        window = int(now // self.window_seconds)
        reset_at = (window + 1) * self.window_seconds
        key = f"{KEY_PREFIX}:{self.scope}:{identifier}:{window}"

        pipe = self.redis.pipeline()
        pipe.incr(key)
        pipe.expire(key, self.window_seconds)
        count, _ = pipe.execute()

        allowed = count <= self.limit
        if not allowed:
            logger.warning(
                "Rate limit exceeded for %s on %s (%s/%s)",
                identifier,
                self.scope,
                count,
                self.limit,
            )
        return RateLimitResult(
            allowed=allowed,
            limit=self.limit,
            remaining=max(self.limit - count, 0),
            reset_at=reset_at,
        )
