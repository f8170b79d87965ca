"""Session product list with category and text queries.

The store is populated once from the product collaborator and is
read-only afterwards; admin mutations go to the collaborator and are
followed by a full ``refresh()``.
"""

import logging
from typing import Callable, Iterable, List, Optional, Sequence

from partshop.logging_config import get_logger, log_shop_event
from partshop.models import Product
from partshop.notifications import Notifier

__all__ = ["ProductStore", "matches_query", "SEARCH_FIELDS"]

logger = get_logger("product_store")

# Text attributes a search query is matched against
SEARCH_FIELDS = ("name", "description", "part_number", "compatible_vehicles", "brand")

FetchAll = Callable[[], Sequence[Product]]


def matches_query(product: Product, query: str) -> bool:
    """True if the lowercased query is a substring of any searchable field.

    A blank query matches everything.
    """
    if not query.strip():
        return True
    needle = query.lower()
    return any(needle in (getattr(product, name) or "").lower() for name in SEARCH_FIELDS)


class ProductStore:
    """Holds the authoritative product snapshot for the session."""

    def __init__(
        self,
        fetch_all: Optional[FetchAll] = None,
        products: Optional[Iterable[Product]] = None,
        notifier: Optional[Notifier] = None,
    ):
        self._fetch_all = fetch_all
        self._notifier = notifier
        self._products: List[Product] = []
        self.error: Optional[str] = None
        self.loaded = False
        if products is not None:
            self._set_products(products)
            self.loaded = True

    def _set_products(self, products: Iterable[Product]) -> None:
        snapshot = list(products)
        seen = set()
        for product in snapshot:
            if product.id in seen:
                raise ValueError(f"Duplicate product id in snapshot: {product.id}")
            seen.add(product.id)
        self._products = snapshot

    def refresh(self) -> bool:
        """Reload the full product list from the collaborator.

        On failure the store is left empty with ``error`` set, so the caller
        can show an error state with a retry action.

        Returns:
            True if products were loaded.
        """
        if self._fetch_all is None:
            raise RuntimeError("ProductStore has no fetch_all collaborator")

        try:
            self._set_products(self._fetch_all())
        except Exception as e:
            logger.exception("Failed to load products")
            self._products = []
            self.error = "Failed to load products. Please try again."
            self.loaded = False
            log_shop_event("catalog_fetch_failed", {"error": str(e)}, level=logging.ERROR)
            if self._notifier:
                self._notifier.notify("Error", self.error, "error")
            return False

        self.error = None
        self.loaded = True
        log_shop_event("catalog_loaded", {"count": len(self._products)})
        return True

    def get_all(self) -> List[Product]:
        """Order-preserving copy of the snapshot."""
        return list(self._products)

    def get(self, product_id: str) -> Optional[Product]:
        for product in self._products:
            if product.id == product_id:
                return product
        return None

    def get_by_category(self, category: str) -> List[Product]:
        return [p for p in self._products if p.category == category]

    def search_local(self, query: str) -> List[Product]:
        """Case-insensitive substring search. A blank query returns everything."""
        if not query.strip():
            return self.get_all()
        return [p for p in self._products if matches_query(p, query)]

    def categories(self) -> List[str]:
        """Distinct non-empty categories in first-seen order."""
        seen: List[str] = []
        for product in self._products:
            if product.category and product.category not in seen:
                seen.append(product.category)
        return seen

    def __len__(self) -> int:
        return len(self._products)
