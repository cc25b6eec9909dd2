"""
Rate limiting middleware using Redis fixed-window counters
"""

import logging
import re
from typing import Optional, Dict, Tuple
from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.config import settings

# Configure logging
logger = logging.getLogger(__name__)

BET_PATH = re.compile(r"^/api/v1/leagues/[^/]+/(bets|challenges/[^/]+/bets)$")
CONTRIBUTE_PATH = re.compile(r"^/api/v1/leagues/[^/]+/wallet/contribute$")


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Rate limiting middleware using Redis counters"""

    def __init__(self, app, redis_client=None):
        super().__init__(app)
        self.redis_client = redis_client

    async def dispatch(self, request: Request, call_next):
        """Process request with rate limiting"""

        # Skip rate limiting if Redis is not available
        if not self.redis_client:
            return await call_next(request)

        endpoint = self._get_endpoint_type(request)
        if not endpoint:
            return await call_next(request)

        limits = RateLimitConfig.get_limits_for_endpoint(endpoint)
        client_ip = request.client.host if request.client else "unknown"
        rate_limit_key = f"rate_limit:{endpoint}:{client_ip}"

        is_allowed, retry_after = await self._check_rate_limit(rate_limit_key, limits)

        if not is_allowed:
            logger.warning(f"Rate limit exceeded for key: {rate_limit_key}")
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={
                    "detail": "Rate limit exceeded",
                    "retry_after": retry_after
                },
                headers={"Retry-After": str(retry_after)}
            )

        response = await call_next(request)

        await self._record_request(rate_limit_key, limits)

        return response

    def _get_endpoint_type(self, request: Request) -> Optional[str]:
        """Classify the request; None means not rate limited"""
        path = request.url.path

        if path.startswith("/api/v1/auth/"):
            return "auth"

        if request.method == "POST" and BET_PATH.match(path):
            return "bet"

        if request.method == "POST" and CONTRIBUTE_PATH.match(path):
            return "contribution"

        return None

    async def _check_rate_limit(self, key: str, limits: Dict[str, int]) -> Tuple[bool, int]:
        """Check if request is within rate limit"""
        try:
            request_count = await self.redis_client.get(key)
            request_count = int(request_count) if request_count else 0

            if request_count >= limits["requests"]:
                ttl = await self.redis_client.ttl(key)
                retry_after = max(1, ttl) if ttl > 0 else limits["window"]
                return False, retry_after

            return True, 0

        except Exception as e:
            logger.error(f"Error checking rate limit for key {key}: {e}")
            # Allow request if rate limiting fails
            return True, 0

    async def _record_request(self, key: str, limits: Dict[str, int]):
        """Record a request for rate limiting"""
        try:
            pipe = self.redis_client.pipeline()
            pipe.incr(key)
            pipe.expire(key, limits["window"])
            await pipe.execute()

        except Exception as e:
            logger.error(f"Error recording request for key {key}: {e}")


class RateLimitConfig:
    """Rate limiting configuration for different endpoints"""

    AUTH_LIMITS = {
        "requests": 10,  # 10 auth attempts per window
        "window": 300,   # 5 minutes
    }

    BET_LIMITS = {
        "requests": 20,
        "window": 60,
    }

    CONTRIBUTION_LIMITS = {
        "requests": 5,
        "window": 300,
    }

    @classmethod
    def get_limits_for_endpoint(cls, endpoint_type: str) -> Dict[str, int]:
        """Get rate limits for specific endpoint type"""
        limits_map = {
            "auth": cls.AUTH_LIMITS,
            "bet": cls.BET_LIMITS,
            "contribution": cls.CONTRIBUTION_LIMITS,
        }
        return limits_map.get(
            endpoint_type,
            {"requests": settings.rate_limit_requests, "window": settings.rate_limit_window_seconds}
        )
