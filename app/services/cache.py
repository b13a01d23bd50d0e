"""
Redis Cache Service
===================

Redis caching layer for read-heavy views (profile, stats, leaderboard)
with connection management, cache operations, and invalidation helpers.

Every operation fails soft: a Redis outage turns into a cache miss and the
caller falls back to the database.
"""

import json
import logging
from typing import Any, Optional

import redis.asyncio as redis
from redis.asyncio import Redis

from app.config import settings

logger = logging.getLogger(__name__)

# Global Redis client instance
_redis_client: Optional[Redis] = None


async def init_redis() -> Redis:
    """
    Initialize the Redis connection pool and verify connectivity.

    Returns:
        Redis client instance
    """
    global _redis_client

    if _redis_client is None:
        client = redis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
            max_connections=20,
            socket_keepalive=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True,
            health_check_interval=30,
        )
        await client.ping()
        _redis_client = client
        logger.info("Redis connection established")

    return _redis_client


async def get_redis() -> Redis:
    """Get Redis client, initializing if necessary."""
    if _redis_client is None:
        return await init_redis()

    return _redis_client


async def close_redis() -> None:
    """Close Redis connection."""
    global _redis_client

    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None
        logger.info("Redis connection closed")


class CacheManager:
    """
    Redis cache manager with common operations.

    Key naming convention:
        cache:{module}:{resource}:{identifier}

    TTL Guidelines:
        - Profile Data: 5 minutes (300s)
        - Stats Dashboard: 5 minutes (300s)
        - Leaderboard: 15 minutes (900s)
    """

    # Default TTLs in seconds
    TTL_SHORT = 300  # 5 minutes
    TTL_MEDIUM = 900  # 15 minutes
    TTL_HOUR = 3600  # 1 hour

    @staticmethod
    async def get(key: str) -> Optional[Any]:
        """
        Get value from cache.

        Args:
            key: Cache key

        Returns:
            Cached value if exists and valid, None otherwise
        """
        try:
            client = await get_redis()
            value = await client.get(key)

            if value is None:
                return None

            return json.loads(value)
        except Exception as e:
            logger.warning("Cache get error for key %s: %s", key, e)
            return None

    @staticmethod
    async def set(
        key: str,
        value: Any,
        ttl: int = TTL_SHORT,
    ) -> bool:
        """
        Set value in cache with TTL.

        Args:
            key: Cache key
            value: Value to cache (will be JSON serialized)
            ttl: Time to live in seconds (default 5 minutes)

        Returns:
            True if successful, False otherwise
        """
        try:
            client = await get_redis()
            serialized = json.dumps(value, default=str)
            await client.setex(key, ttl, serialized)
            return True
        except Exception as e:
            logger.warning("Cache set error for key %s: %s", key, e)
            return False

    @staticmethod
    async def delete(key: str) -> bool:
        """
        Delete key from cache.

        Args:
            key: Cache key to delete

        Returns:
            True if key was deleted, False otherwise
        """
        try:
            client = await get_redis()
            result = await client.delete(key)
            return result > 0
        except Exception as e:
            logger.warning("Cache delete error for key %s: %s", key, e)
            return False


# =============================================================================
# Cache Key Builders
# =============================================================================

class CacheKeys:
    """Cache key builders for consistent naming."""

    @staticmethod
    def profile(user_id: str) -> str:
        """Own profile (GET /profile/me) cache key."""
        return f"cache:profile:{user_id}"

    @staticmethod
    def stats(user_id: str) -> str:
        """Stats dashboard cache key."""
        return f"cache:stats:{user_id}"

    @staticmethod
    def leaderboard() -> str:
        """Global leaderboard cache key."""
        return "cache:achievements:leaderboard"


# =============================================================================
# Cache Invalidation Helpers
# =============================================================================

class CacheInvalidator:
    """Helpers for invalidating related cache entries."""

    @staticmethod
    async def on_habit_change(user_id: str) -> None:
        """Invalidate caches when a habit is created, checked or removed."""
        await CacheManager.delete(CacheKeys.stats(user_id))
        await CacheManager.delete(CacheKeys.profile(user_id))

    @staticmethod
    async def on_goal_change(user_id: str) -> None:
        """Invalidate caches when a goal changes."""
        await CacheManager.delete(CacheKeys.stats(user_id))
        await CacheManager.delete(CacheKeys.profile(user_id))

    @staticmethod
    async def on_journal_change(user_id: str) -> None:
        """Invalidate caches when a journal entry changes."""
        await CacheManager.delete(CacheKeys.stats(user_id))

    @staticmethod
    async def on_profile_update(user_id: str) -> None:
        """Invalidate caches when profile, preferences or social edges change."""
        await CacheManager.delete(CacheKeys.profile(user_id))
