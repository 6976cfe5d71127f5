"""
Storage Module - Upstash Redis Client

Provides the singleton async Upstash Redis client that backs the
persistent local cart cache, plus the key layout and TTLs it uses.
"""

import os
from typing import Optional

from upstash_redis.asyncio import Redis as AsyncRedis


# Upstash uses REST_URL and REST_TOKEN
UPSTASH_REDIS_REST_URL = os.environ.get("UPSTASH_REDIS_REST_URL", "")
UPSTASH_REDIS_REST_TOKEN = os.environ.get("UPSTASH_REDIS_REST_TOKEN", "")


_redis_client: Optional[AsyncRedis] = None


def get_redis() -> AsyncRedis:
    """
    Get async Upstash Redis client (singleton).

    Uses standard Upstash env var names:
    - UPSTASH_REDIS_REST_URL
    - UPSTASH_REDIS_REST_TOKEN
    """
    global _redis_client

    if _redis_client is None:
        if not UPSTASH_REDIS_REST_URL or not UPSTASH_REDIS_REST_TOKEN:
            raise ValueError("UPSTASH_REDIS_REST_URL and UPSTASH_REDIS_REST_TOKEN must be set")
        _redis_client = AsyncRedis(url=UPSTASH_REDIS_REST_URL, token=UPSTASH_REDIS_REST_TOKEN)

    return _redis_client


class RedisKeys:
    """Redis key prefixes for cart data."""

    # Versioned so an incompatible snapshot layout can move to cart_v2
    CART = "cart_v1:"  # cart_v1:{owner}

    ANONYMOUS_OWNER = "anonymous"

    @staticmethod
    def cart_key(owner: Optional[str] = None) -> str:
        return f"{RedisKeys.CART}{owner or RedisKeys.ANONYMOUS_OWNER}"


class TTL:
    """Time-to-live constants for Redis keys (seconds)."""

    CART = int(os.environ.get("CART_CACHE_TTL", 604800))  # 7 days
