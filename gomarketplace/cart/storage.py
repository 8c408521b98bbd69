"""Persistence backends for the cart."""
from typing import Optional, Protocol

from gomarketplace.db import TTL, get_redis
from gomarketplace.logging import get_logger

logger = get_logger(__name__)


class CartStorage(Protocol):
    """Key-value slot holding the serialized cart."""

    async def load(self, key: str) -> Optional[str]: ...

    async def save(self, key: str, payload: str) -> None: ...


class RedisCartStorage:
    """
    Cart storage on Upstash Redis.

    Usage:
        storage = RedisCartStorage()
        async with CartStore(storage) as store:
            store.add_to_cart(product)
    """

    def __init__(self, redis=None, ttl: Optional[int] = TTL.CART):
        self._redis = redis  # Lazy initialization
        self._ttl = ttl

    @property
    def redis(self):
        """Get Redis client (lazy initialization)."""
        if self._redis is None:
            try:
                self._redis = get_redis()
            except ValueError as e:
                raise ValueError(
                    f"Redis not available: {e}. Check UPSTASH_REDIS_REST_URL and "
                    "UPSTASH_REDIS_REST_TOKEN environment variables."
                ) from e
        return self._redis

    async def load(self, key: str) -> Optional[str]:
        data = await self.redis.get(key)
        if isinstance(data, bytes):
            data = data.decode("utf-8")
        return data

    async def save(self, key: str, payload: str) -> None:
        if self._ttl:
            await self.redis.set(key, payload, ex=self._ttl)
        else:
            await self.redis.set(key, payload)
        logger.debug(f"Saved cart payload to Redis ({len(payload)} bytes)")


class InMemoryCartStorage:
    """Dict-backed storage for tests and local runs; lost when the process exits."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self.data: dict[str, str] = dict(initial or {})

    async def load(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def save(self, key: str, payload: str) -> None:
        self.data[key] = payload
