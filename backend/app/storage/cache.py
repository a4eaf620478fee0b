"""Redis cache layer for agent checkpoints.

Uses orjson for fast serialization/deserialization. When Redis is not
reachable the cache is disabled and every operation is a no-op.
"""

from __future__ import annotations

import logging
from typing import Any

import orjson
import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool

from app.config import get_settings

logger = logging.getLogger(__name__)

# Global connection pool
_pool: ConnectionPool | None = None
_client: redis.Redis | None = None


# =============================================================================
# Key prefixes for different data types
# =============================================================================

KEY_PREFIX_AGENT_STATE = "agent_state:"  # Agent checkpoint: agent_state:{agent}


# =============================================================================
# Connection management
# =============================================================================

async def init_cache(url: str | None = None) -> None:
    """Initialize Redis connection pool."""
    global _pool, _client

    if _client is not None:
        return

    redis_url = url or get_settings().redis_url
    _pool = ConnectionPool.from_url(
        redis_url,
        max_connections=10,
        decode_responses=False,  # We handle encoding ourselves with orjson
    )
    _client = redis.Redis(connection_pool=_pool)

    try:
        await _client.ping()
        logger.info(f"Redis connected: {redis_url}")
    except redis.ConnectionError as e:
        logger.warning(f"Redis connection failed: {e}. Checkpoints will be disabled.")
        _client = None
        _pool = None


async def close_cache() -> None:
    """Close Redis connection pool."""
    global _pool, _client

    if _client is not None:
        await _client.aclose()
        _client = None

    if _pool is not None:
        await _pool.disconnect()
        _pool = None

    logger.info("Redis connection closed")


def is_cache_available() -> bool:
    """Check if cache is available."""
    return _client is not None


# =============================================================================
# Basic operations
# =============================================================================

async def get(key: str) -> bytes | None:
    """Get a raw value from cache (None if not found/cache unavailable)."""
    if _client is None:
        return None

    try:
        return await _client.get(key)
    except redis.RedisError as e:
        logger.warning(f"Redis GET error: {e}")
        return None


async def set(
    key: str,
    value: bytes,
    ttl: int | None = None,
) -> bool:
    """Set a raw value in cache.

    Args:
        key: Cache key
        value: Raw bytes to store
        ttl: Time-to-live in seconds (None for no expiry)

    Returns:
        True if successful, False otherwise
    """
    if _client is None:
        return False

    try:
        if ttl:
            await _client.setex(key, ttl, value)
        else:
            await _client.set(key, value)
        return True
    except redis.RedisError as e:
        logger.warning(f"Redis SET error: {e}")
        return False


async def delete(key: str) -> bool:
    """Delete a key from cache."""
    if _client is None:
        return False

    try:
        await _client.delete(key)
        return True
    except redis.RedisError as e:
        logger.warning(f"Redis DELETE error: {e}")
        return False


# =============================================================================
# JSON operations (using orjson)
# =============================================================================

async def set_json(
    key: str,
    value: Any,
    ttl: int | None = None,
) -> bool:
    """Serialize a value with orjson and store it.

    Returns:
        True if successful, False otherwise
    """
    try:
        data = orjson.dumps(value)
    except (TypeError, orjson.JSONEncodeError) as e:
        logger.warning(f"JSON encode error for key {key}: {e}")
        return False
    return await set(key, data, ttl)


# =============================================================================
# Health check
# =============================================================================

async def ping() -> bool:
    """Check if Redis is responsive."""
    if _client is None:
        return False

    try:
        return await _client.ping()
    except redis.RedisError:
        return False
