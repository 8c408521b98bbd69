"""
Cart Errors

Message constants shared by the store and its storage backends, plus the
exception hierarchy:

- CartError (base)
  - CartUsageError: store used outside an open scope
  - CartLoadError: persisted payload is malformed or unreadable
  - CartSaveError: backend failed to write the payload
"""

from typing import Optional

# Usage errors
ERROR_STORE_NOT_OPEN = "Cart store must be opened before use (use 'async with CartStore(...)')"
ERROR_STORE_ALREADY_OPENED = "Cart store was already opened; loading again would discard newer changes"

# Persistence errors
ERROR_PAYLOAD_MALFORMED = "Persisted cart payload is malformed"
ERROR_PAYLOAD_DUPLICATE_IDS = "Persisted cart payload contains duplicate product ids"
ERROR_LOAD_FAILED = "Failed to load cart from storage"
ERROR_SAVE_FAILED = "Failed to save cart to storage"


class CartError(Exception):
    """Base exception for all cart errors."""

    def __init__(self, message: str, *, key: Optional[str] = None) -> None:
        self.key = key
        super().__init__(message)

    def __str__(self) -> str:
        message = super().__str__()
        if self.key:
            return f"{message} [key={self.key}]"
        return message


class CartUsageError(CartError):
    """Raised when the store is consumed without an open scope."""


class CartLoadError(CartError):
    """Raised when the persisted cart cannot be read or parsed."""


class CartSaveError(CartError):
    """Raised when the backend fails to persist the cart."""
