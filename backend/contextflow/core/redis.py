"""Shared Redis connection."""

from __future__ import annotations

import redis

_redis: redis.Redis | None = None


def get_redis() -> redis.Redis:
    global _redis
    if _redis is None:
        from contextflow.config import settings

        _redis = redis.from_url(settings.REDIS_URL, decode_responses=True)
    return _redis
