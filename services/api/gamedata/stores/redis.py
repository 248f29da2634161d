"""Redis store for cached records.

Handles:
- Connection lifecycle (init on startup, close on shutdown)
- Generic get/set-with-TTL/delete on string payloads
- ``RedisKeyValueStore``: the ``KeyValueStore`` implementation services use

TTL policies:
- Dataset pages and aggregates: dataset TTL (1 hour by default)
- Platform directory: 6 hours by default
"""

import logging

import redis.asyncio as redis

from gamedata.settings import get_settings

# Redis client (initialized on startup)
_redis: redis.Redis | None = None
logger = logging.getLogger("uvicorn.error")


async def init_redis() -> None:
    """Initialize Redis connection."""
    global _redis
    settings = get_settings()
    _redis = redis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        socket_connect_timeout=5,
        socket_timeout=5,
    )
    # Validate connectivity early (especially for `rediss://` in production).
    await _redis.ping()
    logger.info("Redis connected")


async def close_redis() -> None:
    """Close Redis connection."""
    global _redis
    if _redis:
        await _redis.aclose()
        _redis = None


def _get_redis() -> redis.Redis:
    """Get Redis client instance."""
    if _redis is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis


# ============================================================
# Generic cache operations
# ============================================================


async def cache_get(key: str) -> str | None:
    """Get value from cache.

    Args:
        key: Cache key.

    Returns:
        Cached value or None if not found.
    """
    return await _get_redis().get(key)


async def cache_set(key: str, value: str, ttl: int) -> None:
    """Set value in cache with TTL.

    Args:
        key: Cache key.
        value: Value to cache.
        ttl: Time-to-live in seconds.
    """
    await _get_redis().setex(key, ttl, value)


async def cache_delete(key: str) -> None:
    """Delete value from cache.

    Args:
        key: Cache key.
    """
    await _get_redis().delete(key)


class RedisKeyValueStore:
    """``KeyValueStore`` backed by the module-level Redis connection."""

    async def get(self, key: str) -> str | None:
        return await cache_get(key)

    async def put(self, key: str, value: str, ttl_seconds: int) -> None:
        await cache_set(key, value, ttl_seconds)

    async def delete(self, key: str) -> None:
        await cache_delete(key)


_store = RedisKeyValueStore()


def get_kv_store() -> RedisKeyValueStore:
    """FastAPI dependency returning the shared Redis-backed store."""
    return _store
