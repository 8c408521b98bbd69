"""Pytest configuration and fixtures"""
import os
import pytest
from unittest.mock import AsyncMock, MagicMock

# Set test environment variables
os.environ.setdefault("UPSTASH_REDIS_REST_URL", "https://test.upstash.io")
os.environ.setdefault("UPSTASH_REDIS_REST_TOKEN", "test_token")

from gomarketplace.cart import InMemoryCartStorage, Product


class RecordingStorage(InMemoryCartStorage):
    """In-memory storage that records every payload it is asked to save."""

    def __init__(self, initial=None):
        super().__init__(initial)
        self.saved: list[str] = []

    async def save(self, key: str, payload: str) -> None:
        self.saved.append(payload)
        await super().save(key, payload)


@pytest.fixture
def storage():
    """Empty recording storage"""
    return RecordingStorage()


@pytest.fixture
def mock_redis():
    """Mock Upstash async Redis client"""
    redis = MagicMock()
    redis.get = AsyncMock(return_value=None)
    redis.set = AsyncMock(return_value=True)
    return redis


@pytest.fixture
def widget():
    """Sample catalog product"""
    return Product(
        id="A",
        title="Widget",
        image_url="https://cdn.example.com/widget.png",
        price=9.99,
    )


@pytest.fixture
def gadget():
    """Second sample catalog product"""
    return Product(
        id="B",
        title="Gadget",
        image_url="https://cdn.example.com/gadget.png",
        price=4.5,
    )


@pytest.fixture
def sample_payload():
    """Persisted cart as stored by a previous session"""
    return (
        '[{"id": "A", "title": "Widget", "image_url": "https://cdn.example.com/widget.png", '
        '"price": 9.99, "quantity": 2}, '
        '{"id": "B", "title": "Gadget", "image_url": "https://cdn.example.com/gadget.png", '
        '"price": 4.5, "quantity": 1}]'
    )


@pytest.fixture
def make_storage():
    """Factory for recording storage pre-filled with {key: payload}"""
    return RecordingStorage
