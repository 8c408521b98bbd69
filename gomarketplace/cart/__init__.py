"""Cart package: models, storage backends, and the cart store."""
from .models import Cart, CartItem, Product
from .service import CartStore
from .storage import CartStorage, InMemoryCartStorage, RedisCartStorage

__all__ = [
    "Cart",
    "CartItem",
    "Product",
    "CartStore",
    "CartStorage",
    "InMemoryCartStorage",
    "RedisCartStorage",
]
