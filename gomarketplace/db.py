"""
Storage Module - Redis client and cart storage settings

Provides:
- Upstash async Redis client (singleton) backing the persisted cart
- Storage key and TTL settings read from the environment
"""

import os
from typing import Optional

from upstash_redis.asyncio import Redis as AsyncRedis


# Upstash Redis - standard env var names per docs
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


class StorageKeys:
    """Storage keys for persisted data."""

    # Single cart slot per process, no multi-cart support
    CART_ITEMS = os.environ.get("CART_STORAGE_KEY", "@GoMarketplace:cartItems")


def _get_cart_ttl() -> Optional[int]:
    """Cart TTL in seconds from CART_TTL_SECONDS; 0 or unset means no expiry."""
    raw = os.environ.get("CART_TTL_SECONDS", "0")
    try:
        seconds = int(raw)
    except ValueError:
        raise ValueError(f"CART_TTL_SECONDS must be an integer, got {raw!r}") from None
    return seconds if seconds > 0 else None


class TTL:
    """Time-to-live settings for persisted keys (in seconds)."""

    CART = _get_cart_ttl()
