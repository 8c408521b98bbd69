"""Cart models: catalog product, cart line, and the immutable cart snapshot."""
import json
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterator, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from gomarketplace.errors import (
    ERROR_PAYLOAD_DUPLICATE_IDS,
    ERROR_PAYLOAD_MALFORMED,
    CartLoadError,
)
from gomarketplace.services.money import multiply, round_money, to_decimal, to_float


class Product(BaseModel):
    """Catalog product offered to the cart (no quantity yet)."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    title: str
    image_url: str
    price: Decimal

    @field_validator("price", mode="before")
    @classmethod
    def convert_price_to_decimal(cls, v):
        # Only floats are converted here; other input is validated by pydantic
        if isinstance(v, float):
            return to_decimal(v)
        return v


class CartItem(Product):
    """Single product line in the cart."""

    quantity: int = Field(ge=1)

    @property
    def total_price(self) -> Decimal:
        """Total price for all units."""
        return round_money(multiply(self.price, self.quantity))

    def to_dict(self) -> dict:
        """Convert to the persisted representation."""
        return {
            "id": self.id,
            "title": self.title,
            "image_url": self.image_url,
            "price": to_float(self.price),
            "quantity": self.quantity,
        }

    @classmethod
    def from_product(cls, product: Product, quantity: int = 1) -> "CartItem":
        """Create a cart line from a catalog product."""
        return cls(
            id=product.id,
            title=product.title,
            image_url=product.image_url,
            price=product.price,
            quantity=quantity,
        )


_ITEMS_ADAPTER = TypeAdapter(list[CartItem])


@dataclass(frozen=True)
class Cart:
    """
    Immutable cart snapshot.

    Items are unique by id and keep insertion order. Every mutation returns
    a new Cart; the receiver is never modified, so a snapshot handed to a
    listener or the storage writer stays valid.
    """
    items: tuple[CartItem, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[CartItem]:
        return iter(self.items)

    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def total_items(self) -> int:
        """Total number of units in cart."""
        return sum(item.quantity for item in self.items)

    @property
    def subtotal(self) -> Decimal:
        """Sum of line totals."""
        return round_money(sum((item.total_price for item in self.items), Decimal("0")))

    def find(self, product_id: str) -> Optional[CartItem]:
        """Return the line for product_id, or None."""
        return next((item for item in self.items if item.id == product_id), None)

    def add(self, product: Product) -> "Cart":
        """
        Add one unit of product.

        An existing line is incremented and keeps its own title, image and
        price; the candidate's descriptive fields are discarded.
        """
        if self.find(product.id) is not None:
            return self.increment(product.id)
        return Cart(items=self.items + (CartItem.from_product(product),))

    def increment(self, product_id: str) -> "Cart":
        """Bump quantity of product_id by one; unknown ids leave the cart as is."""
        return Cart(
            items=tuple(
                item.model_copy(update={"quantity": item.quantity + 1})
                if item.id == product_id
                else item
                for item in self.items
            )
        )

    def decrement(self, product_id: str) -> "Cart":
        """Drop quantity of product_id by one, removing the line when it reaches zero."""
        existing = self.find(product_id)
        if existing is None:
            return self

        if existing.quantity == 1:
            return Cart(items=tuple(item for item in self.items if item.id != product_id))

        return Cart(
            items=tuple(
                item.model_copy(update={"quantity": item.quantity - 1})
                if item.id == product_id
                else item
                for item in self.items
            )
        )

    def to_dict(self) -> list[dict]:
        return [item.to_dict() for item in self.items]

    def to_payload(self) -> str:
        """Serialize to the JSON array stored by the backend."""
        return json.dumps(self.to_dict())

    @classmethod
    def from_payload(cls, payload: str | bytes) -> "Cart":
        """
        Parse a persisted payload.

        Raises:
            CartLoadError: If the payload is not a JSON array of valid cart
                lines, or repeats a product id
        """
        if not isinstance(payload, (str, bytes, bytearray)):
            raise CartLoadError(f"{ERROR_PAYLOAD_MALFORMED}: expected a JSON string, got {type(payload).__name__}")

        try:
            items = _ITEMS_ADAPTER.validate_json(payload)
        except ValidationError as e:
            raise CartLoadError(f"{ERROR_PAYLOAD_MALFORMED}: {e.error_count()} validation error(s)") from e

        seen: set[str] = set()
        for item in items:
            if item.id in seen:
                raise CartLoadError(ERROR_PAYLOAD_DUPLICATE_IDS)
            seen.add(item.id)

        return cls(items=tuple(items))
