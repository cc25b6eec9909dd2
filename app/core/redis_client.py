"""
Redis connection for the request rate limiter
"""

from typing import Optional

import redis.asyncio as redis

from app.core.config import settings

_rate_limit_client: Optional[redis.Redis] = None


def get_rate_limit_redis() -> Optional[redis.Redis]:
    """
    Shared client holding rate-limit counters, or None when limiting is off.

    No connection is opened until the first command runs.
    """
    global _rate_limit_client
    if not settings.rate_limit_enabled:
        return None
    if _rate_limit_client is None:
        _rate_limit_client = redis.from_url(settings.redis_url, decode_responses=True)
    return _rate_limit_client
