"""Shopping cart with durable persistence.

Line items are keyed by product id (at most one per product) and always
hold a quantity >= 1. Every mutation writes the full cart snapshot to the
storage collaborator before returning, so a restarted process rehydrates
the same cart.

Line item transitions:
    ABSENT  --add_to_cart(n)-->           PRESENT(n)
    PRESENT(n) --add_to_cart(m)-->        PRESENT(n + m)
    PRESENT(n) --update_quantity(m > 0)-> PRESENT(m)
    PRESENT(n) --update_quantity(m <= 0) / remove_from_cart--> ABSENT
"""

import json
import logging
from decimal import Decimal
from typing import Dict, List, Optional

from partshop.config import CART_STORAGE_KEY
from partshop.logging_config import get_logger, log_shop_event
from partshop.models import CartLineItem, Product
from partshop.notifications import Notifier
from partshop.storage import KeyValueStorage

__all__ = ["CartStore", "OutOfStockError"]

logger = get_logger("cart")


class OutOfStockError(ValueError):
    """Raised when adding a product whose stock quantity is 0."""
    pass


class CartStore:
    """Cart owned by the application root and injected into consumers.

    Initialization rehydrates from ``storage``; a snapshot that cannot be
    parsed is discarded and the cart starts empty.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        notifier: Optional[Notifier] = None,
        storage_key: str = CART_STORAGE_KEY,
    ):
        self.storage = storage
        self.notifier = notifier
        self.storage_key = storage_key
        # Insertion-ordered: dicts keep the order line items were first added
        self._items: Dict[str, CartLineItem] = {}
        self._load()

    # ---------- persistence ----------

    def _load(self) -> None:
        raw = self.storage.read(self.storage_key)
        if raw is None:
            return
        try:
            entries = json.loads(raw)
            if not isinstance(entries, list):
                raise ValueError(f"Expected a list, got {type(entries).__name__}")
            items: Dict[str, CartLineItem] = {}
            for entry in entries:
                item = CartLineItem.from_dict(entry)
                if item.product_id in items:
                    items[item.product_id].quantity += item.quantity
                else:
                    items[item.product_id] = item
        except (ValueError, TypeError, KeyError, AttributeError, ArithmeticError) as e:
            logger.warning(f"Discarding unreadable cart snapshot: {e}")
            self.storage.delete(self.storage_key)
            return
        self._items = items

    def _persist(self) -> None:
        snapshot = [item.to_dict() for item in self._items.values()]
        self.storage.write(self.storage_key, json.dumps(snapshot))

    def _notify(self, title: str, message: str, severity: str = "info") -> None:
        if self.notifier:
            self.notifier.notify(title, message, severity)

    # ---------- mutations ----------

    def add_to_cart(self, product: Product, quantity: int = 1) -> CartLineItem:
        """Add ``quantity`` of ``product``, merging with an existing line item.

        Raises:
            ValueError: If quantity < 1.
            OutOfStockError: If the product has no stock.
        """
        if quantity < 1:
            raise ValueError(f"Quantity to add must be >= 1, got {quantity}")
        if not product.in_stock:
            self._notify("Out of Stock", f"{product.name} is currently unavailable", "error")
            raise OutOfStockError(f"Product {product.id} is out of stock")

        item = self._items.get(product.id)
        if item is None:
            item = CartLineItem(product=product, quantity=quantity)
            self._items[product.id] = item
        else:
            item.quantity += quantity
        self._persist()

        log_shop_event("cart_add", {"product_id": product.id, "quantity": quantity, "line_quantity": item.quantity})
        self._notify("Added to Cart", f"{product.name} has been added to your cart", "success")
        return item

    def remove_from_cart(self, product_id: str) -> bool:
        """Remove a line item. Absent ids are a no-op; returns whether one was removed."""
        item = self._items.pop(product_id, None)
        self._persist()
        if item is None:
            return False

        log_shop_event("cart_remove", {"product_id": product_id})
        self._notify("Item Removed", f"{item.product.name} has been removed from your cart")
        return True

    def update_quantity(self, product_id: str, quantity: int) -> Optional[CartLineItem]:
        """Set a line item's quantity; ``quantity <= 0`` removes it.

        Unknown ids are a no-op. Returns the updated line item, or None if
        the item is absent afterwards.
        """
        if quantity <= 0:
            self.remove_from_cart(product_id)
            return None

        item = self._items.get(product_id)
        if item is None:
            self._persist()
            return None

        item.quantity = quantity
        self._persist()
        log_shop_event("cart_update", {"product_id": product_id, "quantity": quantity}, level=logging.DEBUG)
        return item

    def clear(self) -> None:
        self._items.clear()
        self._persist()
        log_shop_event("cart_clear", {})
        self._notify("Cart Cleared", "All items have been removed from your cart")

    # ---------- queries ----------

    @property
    def items(self) -> List[CartLineItem]:
        return list(self._items.values())

    def get(self, product_id: str) -> Optional[CartLineItem]:
        return self._items.get(product_id)

    def get_total(self) -> Decimal:
        """Sum of price * quantity using the base price; unrounded."""
        return sum((item.line_total for item in self._items.values()), Decimal("0"))

    def get_item_count(self) -> int:
        """Sum of quantities, not the number of line items."""
        return sum(item.quantity for item in self._items.values())

    def __len__(self) -> int:
        return len(self._items)

    def to_dict(self) -> Dict[str, object]:
        return {
            "items": [item.to_dict() for item in self._items.values()],
            "total": str(self.get_total()),
            "item_count": self.get_item_count(),
        }
