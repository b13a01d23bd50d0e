"""
Rate Limiting
=============

Redis-based fixed window rate limiting for API endpoints.
"""

import logging
from typing import Optional

from fastapi import HTTPException, Request, status

from app.core.errors import ErrorCodes
from app.services.cache import get_redis

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Fixed window rate limiter using Redis.

    Rate limits are applied per client IP.

    Default limits:
        - Authentication endpoints: 10 requests/minute
        - Email-sending endpoints: 3 requests/minute
        - Admin endpoints: 30 requests/minute
    """

    # Limit configurations
    LIMITS = {
        "auth": {"max_requests": 10, "window_seconds": 60},
        "email": {"max_requests": 3, "window_seconds": 60},
        "admin": {"max_requests": 30, "window_seconds": 60},
    }

    @staticmethod
    def _get_key(identifier: str, action: str) -> str:
        """Generate rate limit key."""
        return f"ratelimit:{action}:{identifier}"

    @staticmethod
    async def check_rate_limit(
        identifier: str,
        action: str,
        max_requests: Optional[int] = None,
        window_seconds: Optional[int] = None,
    ) -> dict:
        """
        Check if request is within rate limit.

        Args:
            identifier: Client IP address
            action: Action type (auth, email, admin)
            max_requests: Override max requests (optional)
            window_seconds: Override window size (optional)

        Returns:
            Dict with 'allowed', 'remaining', 'reset_in' keys
        """
        limits = RateLimiter.LIMITS.get(action, RateLimiter.LIMITS["auth"])
        max_req = max_requests or limits["max_requests"]
        window = window_seconds or limits["window_seconds"]

        key = RateLimiter._get_key(identifier, action)

        try:
            client = await get_redis()

            current = await client.incr(key)
            if current == 1:
                await client.expire(key, window)

            ttl = await client.ttl(key)
            reset_in = ttl if ttl > 0 else window

            if current > max_req:
                return {
                    "allowed": False,
                    "remaining": 0,
                    "reset_in": reset_in,
                }

            return {
                "allowed": True,
                "remaining": max_req - current,
                "reset_in": reset_in,
            }

        except Exception as e:
            logger.warning("Rate limit check error: %s", e)
            # Allow request on error (fail open)
            return {
                "allowed": True,
                "remaining": max_req,
                "reset_in": window,
            }


async def rate_limit_dependency(
    request: Request,
    action: str = "auth",
) -> None:
    """Reject the request with 429 once the caller's window is exhausted."""
    identifier = request.client.host if request.client else "unknown"

    result = await RateLimiter.check_rate_limit(identifier, action)

    if not result["allowed"]:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "code": ErrorCodes.RATE_LIMIT_EXCEEDED,
                "message": f"Rate limit exceeded. Try again in {result['reset_in']} seconds.",
            },
            headers={
                "X-RateLimit-Limit": str(RateLimiter.LIMITS.get(action, {}).get("max_requests", 10)),
                "X-RateLimit-Remaining": str(result["remaining"]),
                "X-RateLimit-Reset": str(result["reset_in"]),
                "Retry-After": str(result["reset_in"]),
            },
        )


def create_rate_limit_dependency(action: str = "auth"):
    """
    Factory for rate limit dependencies.

    Usage:
        @router.post("/login", dependencies=[Depends(create_rate_limit_dependency("auth"))])
        async def login():
            ...
    """
    async def dependency(request: Request) -> None:
        await rate_limit_dependency(request, action)

    return dependency
