"""Persistent local cart cache on Redis."""
import json
from typing import Optional

from pydantic import ValidationError

from cartsync.db import get_redis, RedisKeys, TTL
from cartsync.errors import CorruptLocalState
from cartsync.logging import get_logger
from .models import Cart

logger = get_logger(__name__)


class LocalCartCache:
    """
    Last-known cart snapshot under one versioned key.

    Never raises: a missing, unreadable or unparsable snapshot is a cache
    miss and loads as an empty cart. A corrupted entry is simply overwritten
    by the next save.
    """

    def __init__(self, redis=None, owner: Optional[str] = None, ttl: Optional[int] = TTL.CART):
        self._redis = redis  # Lazy initialization when not injected
        self.key = RedisKeys.cart_key(owner)
        self.ttl = ttl

    @property
    def redis(self):
        """Get Redis client (lazy initialization)."""
        if self._redis is None:
            self._redis = get_redis()
        return self._redis

    async def load(self) -> Cart:
        """Return the stored cart, or an empty cart on any failure."""
        try:
            data = await self.redis.get(self.key)
        except Exception as e:
            logger.error("Failed to read cart cache %s: %s", self.key, e)
            return Cart()

        if not data:
            return Cart()

        try:
            return self._parse(data)
        except CorruptLocalState as e:
            logger.warning("Ignoring cart cache %s: %s", self.key, e)
            return Cart()

    async def save(self, cart: Cart) -> bool:
        """Overwrite the stored snapshot. Returns False if the write failed."""
        try:
            # Attributes with no JSON form are kept as their str()
            payload = json.dumps(cart.to_dict(), default=str)
            if self.ttl:
                await self.redis.set(self.key, payload, ex=self.ttl)
            else:
                await self.redis.set(self.key, payload)
            return True
        except Exception as e:
            logger.error("Failed to write cart cache %s: %s", self.key, e)
            return False

    @staticmethod
    def _parse(data) -> Cart:
        if isinstance(data, bytes):
            data = data.decode("utf-8", errors="replace")
        try:
            return Cart.from_dict(json.loads(data))
        except (ValueError, ValidationError, TypeError, RecursionError) as e:
            # json.JSONDecodeError is a ValueError; deep nesting exhausts the decoder
            raise CorruptLocalState(f"Stored cart could not be parsed: {e.__class__.__name__}") from e
