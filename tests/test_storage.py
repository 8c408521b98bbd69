"""
Tests for cart storage backends
"""

from unittest.mock import patch

import pytest

from gomarketplace.cart import CartStore, InMemoryCartStorage, RedisCartStorage
from gomarketplace.db import StorageKeys, _get_cart_ttl


class TestRedisCartStorage:
    """Tests for the Upstash Redis backend."""

    @pytest.mark.asyncio
    async def test_load_missing_key(self, mock_redis):
        """Test a missing key loads as None."""
        storage = RedisCartStorage(redis=mock_redis)

        assert await storage.load("cart") is None
        mock_redis.get.assert_awaited_once_with("cart")

    @pytest.mark.asyncio
    async def test_load_decodes_bytes(self, mock_redis):
        """Test byte responses are decoded."""
        mock_redis.get.return_value = b"[]"
        storage = RedisCartStorage(redis=mock_redis)

        assert await storage.load("cart") == "[]"

    @pytest.mark.asyncio
    async def test_save_without_ttl(self, mock_redis):
        """Test saving without expiry."""
        storage = RedisCartStorage(redis=mock_redis, ttl=None)

        await storage.save("cart", "[]")

        mock_redis.set.assert_awaited_once_with("cart", "[]")

    @pytest.mark.asyncio
    async def test_save_with_ttl(self, mock_redis):
        """Test saving with expiry."""
        storage = RedisCartStorage(redis=mock_redis, ttl=3600)

        await storage.save("cart", "[]")

        mock_redis.set.assert_awaited_once_with("cart", "[]", ex=3600)

    def test_missing_credentials(self):
        """Test a clear error when Redis is not configured."""
        storage = RedisCartStorage()

        with patch("gomarketplace.cart.storage.get_redis", side_effect=ValueError("not set")):
            with pytest.raises(ValueError, match="Redis not available"):
                storage.redis

    @pytest.mark.asyncio
    async def test_store_round_trip_through_redis(self, mock_redis, widget):
        """Test the store loads what it saved through Redis."""
        stored = {}

        async def fake_set(key, value, **kwargs):
            stored[key] = value
            return True

        async def fake_get(key):
            return stored.get(key)

        mock_redis.set.side_effect = fake_set
        mock_redis.get.side_effect = fake_get
        storage = RedisCartStorage(redis=mock_redis, ttl=None)

        async with CartStore(storage) as store:
            store.add_to_cart(widget)
            store.add_to_cart(widget)
            saved = store.cart

        async with CartStore(storage) as reopened:
            assert reopened.cart == saved
        assert StorageKeys.CART_ITEMS in stored


class TestInMemoryCartStorage:
    """Tests for the in-memory backend."""

    @pytest.mark.asyncio
    async def test_save_then_load(self):
        """Test payloads are kept per key."""
        storage = InMemoryCartStorage()

        await storage.save("a", "[]")

        assert await storage.load("a") == "[]"
        assert await storage.load("b") is None

    @pytest.mark.asyncio
    async def test_initial_data_is_copied(self):
        """Test the initial mapping is not shared."""
        initial = {"a": "[]"}
        storage = InMemoryCartStorage(initial)

        await storage.save("a", "[1]")

        assert initial == {"a": "[]"}


class TestCartTTL:
    """Tests for CART_TTL_SECONDS parsing."""

    def test_unset_means_no_expiry(self, monkeypatch):
        """Test zero/unset TTL disables expiry."""
        monkeypatch.setenv("CART_TTL_SECONDS", "0")

        assert _get_cart_ttl() is None

    def test_positive_ttl(self, monkeypatch):
        """Test a positive TTL is used as seconds."""
        monkeypatch.setenv("CART_TTL_SECONDS", "3600")

        assert _get_cart_ttl() == 3600

    def test_invalid_ttl(self, monkeypatch):
        """Test a non-integer TTL fails with a clean error."""
        monkeypatch.setenv("CART_TTL_SECONDS", "one day")

        with pytest.raises(ValueError, match="CART_TTL_SECONDS") as exc_info:
            _get_cart_ttl()

        assert exc_info.value.__cause__ is None
        assert exc_info.value.__suppress_context__
