"""Cart store: in-memory cart state with ordered background persistence."""
import asyncio
from collections import deque
from typing import Any, Callable, Mapping, Optional, Union

from gomarketplace.db import StorageKeys
from gomarketplace.errors import (
    ERROR_LOAD_FAILED,
    ERROR_SAVE_FAILED,
    ERROR_STORE_ALREADY_OPENED,
    ERROR_STORE_NOT_OPEN,
    CartError,
    CartLoadError,
    CartSaveError,
    CartUsageError,
)
from gomarketplace.logging import get_logger, sanitize_id_for_logging
from gomarketplace.services.money import to_float
from .models import Cart, Product
from .storage import CartStorage

logger = get_logger(__name__)

CartListener = Callable[[Cart], Any]


class CartStore:
    """
    In-memory authority for one cart, persisted through a CartStorage.

    Mutations are synchronous: each one computes the next Cart from the
    current one, makes it current, queues that exact snapshot for saving and
    then notifies listeners. A single writer task drains the queue in order, so
    the backend always ends up with the latest state and saves never
    interleave.

    Usage:
        async with CartStore(RedisCartStorage()) as store:
            unsubscribe = store.subscribe(render)
            store.add_to_cart(product)
            store.decrement(product.id)
    """

    def __init__(
        self,
        storage: CartStorage,
        key: str = StorageKeys.CART_ITEMS,
        name: str = "cart",
    ) -> None:
        """
        Args:
            storage: Backend holding the serialized cart
            key: Storage slot for this cart
            name: Name for logging purposes
        """
        self._storage = storage
        self._key = key
        self._name = name

        self._cart = Cart()
        self._opened = False
        self._closed = False

        self._listeners: list[CartListener] = []
        self._pending_notifications: deque[Cart] = deque()
        self._notifying = False
        self._save_queue: Optional[asyncio.Queue[Cart]] = None
        self._writer: Optional[asyncio.Task] = None

        # Most recent load/save failure, kept so an empty cart after a bad
        # load can be told apart from one that was saved empty. A save error
        # is cleared by the next successful save.
        self.last_error: Optional[CartError] = None

    async def __aenter__(self) -> "CartStore":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @property
    def key(self) -> str:
        return self._key

    @property
    def is_open(self) -> bool:
        return self._opened and not self._closed

    @property
    def cart(self) -> Cart:
        """Current cart snapshot. Stays readable after close()."""
        if not self._opened:
            raise CartUsageError(ERROR_STORE_NOT_OPEN, key=self._key)
        return self._cart

    @property
    def items(self):
        return self.cart.items

    # --- Lifecycle ---

    async def open(self) -> "CartStore":
        """
        Load the persisted cart and start the storage writer.

        A missing or malformed payload leaves the cart empty; the failure is
        logged and kept on last_error.

        Raises:
            CartUsageError: If the store was already opened
        """
        if self._opened:
            raise CartUsageError(ERROR_STORE_ALREADY_OPENED, key=self._key)
        self._opened = True

        self._cart = await self._load()
        self._save_queue = asyncio.Queue()
        self._writer = asyncio.create_task(self._run_writer(), name=f"{self._name}-writer")

        logger.info(f"[{self._name}] Cart opened with {len(self._cart)} item(s)")
        return self

    async def flush(self) -> None:
        """Wait until every queued save has been handed to the backend."""
        self._ensure_open()
        await self._save_queue.join()

    async def close(self) -> None:
        """Flush pending saves and stop the writer. Further mutations raise CartUsageError."""
        if not self.is_open:
            return
        self._closed = True

        await self._save_queue.join()

        if self._writer is not None:
            self._writer.cancel()
            try:
                await self._writer
            except asyncio.CancelledError:
                pass
            self._writer = None

        self._listeners.clear()
        logger.info(f"[{self._name}] Cart closed with {len(self._cart)} item(s)")

    async def _load(self) -> Cart:
        try:
            payload = await self._storage.load(self._key)
        except Exception as e:
            self.last_error = CartLoadError(f"{ERROR_LOAD_FAILED}: {e}", key=self._key)
            logger.error(f"[{self._name}] {self.last_error}; starting with an empty cart", exc_info=True)
            return Cart()

        if not payload:
            return Cart()

        try:
            return Cart.from_payload(payload)
        except CartLoadError as e:
            e.key = self._key
            self.last_error = e
            logger.error(f"[{self._name}] {e}; starting with an empty cart", exc_info=True)
            return Cart()

    # --- Mutations ---

    def add_to_cart(self, product: Union[Product, Mapping[str, Any]]) -> None:
        """
        Add one unit of product; an existing line is incremented instead.

        A mapping only needs "id" when that id is already in the cart, since
        its other fields are discarded on that path.
        """
        self._ensure_open()
        if not isinstance(product, Product):
            product_id = product.get("id")
            if isinstance(product_id, str) and self._cart.find(product_id) is not None:
                self._commit(self._cart.increment(product_id), "add_to_cart", product_id)
                return
            product = Product.model_validate(product)
        self._commit(self._cart.add(product), "add_to_cart", product.id)

    def increment(self, product_id: str) -> None:
        """Add one unit to an existing line. Unknown ids change nothing but are still persisted."""
        self._ensure_open()
        self._commit(self._cart.increment(product_id), "increment", product_id)

    def decrement(self, product_id: str) -> None:
        """Remove one unit; a line at quantity 1 is dropped."""
        self._ensure_open()
        self._commit(self._cart.decrement(product_id), "decrement", product_id)

    def _commit(self, cart: Cart, action: str, product_id: str) -> None:
        self._cart = cart
        logger.debug(
            f"[{self._name}] {action}({sanitize_id_for_logging(product_id)}) -> "
            f"{len(cart)} line(s), {cart.total_items} unit(s)"
        )
        # The snapshot produced by this mutation, never a reference captured earlier
        self._save_queue.put_nowait(cart)

        # A listener may mutate again; its snapshot waits until this one has
        # reached every listener, so listeners see carts in commit order
        self._pending_notifications.append(cart)
        if self._notifying:
            return
        self._notifying = True
        try:
            while self._pending_notifications:
                self._notify(self._pending_notifications.popleft())
        finally:
            self._notifying = False

    # --- Subscriptions ---

    def subscribe(self, listener: CartListener) -> Callable[[], None]:
        """
        Register a listener called with the new Cart after every mutation.

        The listener is called once right away with the current cart.

        Returns:
            Callable that removes the listener
        """
        self._ensure_open()
        self._listeners.append(listener)
        self._call_listener(listener, self._cart)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, cart: Cart) -> None:
        for listener in list(self._listeners):
            self._call_listener(listener, cart)

    def _call_listener(self, listener: CartListener, cart: Cart) -> None:
        try:
            listener(cart)
        except Exception:
            logger.warning(f"[{self._name}] Cart listener {listener!r} failed", exc_info=True)

    # --- Persistence ---

    async def _run_writer(self) -> None:
        """Save queued snapshots one at a time, in mutation order."""
        while True:
            cart = await self._save_queue.get()
            try:
                await self._storage.save(self._key, cart.to_payload())
                logger.debug(f"[{self._name}] Saved cart with {len(cart)} line(s)")
                if isinstance(self.last_error, CartSaveError):
                    logger.info(f"[{self._name}] Cart saves recovered")
                    self.last_error = None
            except Exception as e:
                # In-memory state stays authoritative; the next save carries it again
                self.last_error = CartSaveError(f"{ERROR_SAVE_FAILED}: {e}", key=self._key)
                logger.error(f"[{self._name}] {self.last_error}", exc_info=True)
            finally:
                self._save_queue.task_done()

    # --- Read helpers ---

    def summary(self) -> dict:
        """Get cart summary for display."""
        cart = self.cart

        if cart.is_empty:
            return {
                "is_empty": True,
                "total_items": 0,
                "subtotal": 0,
            }

        return {
            "is_empty": False,
            "total_items": cart.total_items,
            "items": [
                {
                    "id": item.id,
                    "title": item.title,
                    "quantity": item.quantity,
                    "unit_price": to_float(item.price),
                    "total": to_float(item.total_price),
                }
                for item in cart.items
            ],
            "subtotal": to_float(cart.subtotal),
        }

    def _ensure_open(self) -> None:
        if not self.is_open:
            raise CartUsageError(ERROR_STORE_NOT_OPEN, key=self._key)
