"""Catalog view: filtering, sorting and pagination over the product list.

``filter_sort_paginate`` is a pure projection from products + state to the
page to render. State changes go through ``apply_action``, which resets
the page to 1 whenever the shape of the result set changes (search,
category, sort). ``CatalogBrowser`` ties both to a ``ProductStore`` and a
``SearchDebouncer``.
"""

import logging
import math
import threading
import unicodedata
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from partshop.config import PAGE_SIZE, SEARCH_DEBOUNCE_SECONDS
from partshop.debounce import SearchDebouncer, TimerFactory
from partshop.logging_config import get_logger, log_shop_event
from partshop.models import FilterSortState, Product, SortKey
from partshop.notifications import Notifier
from partshop.product_store import ProductStore, matches_query

__all__ = [
    "PageResult",
    "filter_sort_paginate",
    "sort_products",
    "apply_action",
    "ACTIONS",
    "CatalogBrowser",
]

logger = get_logger("catalog")

ACTIONS = ("set_search", "set_category", "set_sort", "set_page", "clear_filters")

RemoteSearch = Callable[[str], Sequence[Product]]


@dataclass
class PageResult:
    """One rendered page of the catalog.

    ``total_pages`` is 0 when nothing matches; ``page`` is the page that was
    actually sliced after clamping (1 for an empty result).
    """

    items: List[Product]
    total_pages: int
    total_count: int
    page: int
    page_size: int

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 1


def _name_key(product: Product) -> str:
    # Case- and accent-insensitive ordering, close to a locale collation
    return unicodedata.normalize("NFKD", product.name).casefold()


_SORTS: Dict[SortKey, Tuple[Callable[[Product], Any], bool]] = {
    SortKey.NAME: (_name_key, False),
    SortKey.PRICE_LOW: (lambda p: p.price, False),
    SortKey.PRICE_HIGH: (lambda p: p.price, True),
    SortKey.STOCK: (lambda p: p.stock_quantity, True),
}


def sort_products(products: Sequence[Product], sort_key: SortKey) -> List[Product]:
    """Stable sort; products with equal keys keep their relative order."""
    key, reverse = _SORTS[SortKey(sort_key)]
    # sorted() is stable for reverse=True as well
    return sorted(products, key=key, reverse=reverse)


def filter_sort_paginate(
    products: Sequence[Product],
    state: FilterSortState,
    page_size: int = PAGE_SIZE,
) -> PageResult:
    """Project the product list onto the page described by ``state``.

    Order of operations: search, category, sort, page count, clamp, slice.
    """
    if page_size < 1:
        raise ValueError(f"page_size must be >= 1, got {page_size}")

    matched: List[Product] = list(products)
    if state.search_query.strip():
        matched = [p for p in matched if matches_query(p, state.search_query)]
    if state.selected_category != "all":
        matched = [p for p in matched if p.category == state.selected_category]

    matched = sort_products(matched, state.sort_key)

    total_count = len(matched)
    total_pages = math.ceil(total_count / page_size)
    page = min(max(state.current_page, 1), max(total_pages, 1))

    start = (page - 1) * page_size
    return PageResult(
        items=matched[start:start + page_size],
        total_pages=total_pages,
        total_count=total_count,
        page=page,
        page_size=page_size,
    )


def apply_action(state: FilterSortState, action: str, value: Any = None) -> FilterSortState:
    """Return the state after ``action``.

    ``set_search``, ``set_category``, ``set_sort`` and ``clear_filters`` go
    back to page 1. ``set_page`` only moves the page.

    Raises:
        ValueError: For unknown actions, unknown sort keys or pages < 1.
    """
    if action == "set_search":
        return replace(state, search_query=str(value or ""), current_page=1)
    if action == "set_category":
        return replace(state, selected_category=str(value or "all"), current_page=1)
    if action == "set_sort":
        return replace(state, sort_key=SortKey(value), current_page=1)
    if action == "set_page":
        page = int(value)
        if page < 1:
            raise ValueError(f"Page must be >= 1, got {page}")
        return replace(state, current_page=page)
    if action == "clear_filters":
        return replace(state, search_query="", selected_category="all", current_page=1)
    raise ValueError(f"Unknown catalog action: {action!r}. Expected one of {ACTIONS}")


@dataclass
class _SearchResults:
    query: str
    products: List[Product] = field(default_factory=list)


class CatalogBrowser:
    """Browsing session over a ``ProductStore``.

    Search text is applied through a debouncer: ``set_search_query``
    updates the state right away and sets ``is_searching``; the settle
    callback clears it and, when a remote search collaborator is given,
    fetches the results the page is then built from.
    """

    def __init__(
        self,
        store: ProductStore,
        remote_search: Optional[RemoteSearch] = None,
        notifier: Optional[Notifier] = None,
        page_size: int = PAGE_SIZE,
        debounce_delay: float = SEARCH_DEBOUNCE_SECONDS,
        timer_factory: Optional[TimerFactory] = None,
    ):
        self.store = store
        self.remote_search = remote_search
        self.notifier = notifier
        self.page_size = page_size
        self.state = FilterSortState()
        self.is_searching = False
        self._lock = threading.RLock()
        self._search_results: Optional[_SearchResults] = None
        self.debouncer: SearchDebouncer[str] = SearchDebouncer(
            self._on_search_settled, delay=debounce_delay, timer_factory=timer_factory
        )

    def dispatch(self, action: str, value: Any = None) -> FilterSortState:
        with self._lock:
            self.state = apply_action(self.state, action, value)
            return self.state

    def set_search_query(self, query: str) -> None:
        with self._lock:
            self.dispatch("set_search", query)
            self.is_searching = bool(query.strip())
            if not query.strip():
                self._search_results = None
        if query.strip():
            self.debouncer.submit(query)
        else:
            self.debouncer.cancel()

    def set_category(self, category: str) -> None:
        self.dispatch("set_category", category)

    def set_sort(self, sort_key: str) -> None:
        self.dispatch("set_sort", sort_key)

    def go_to_page(self, page: int) -> None:
        self.dispatch("set_page", page)

    def clear_filters(self) -> None:
        self.debouncer.cancel()
        with self._lock:
            self.dispatch("clear_filters")
            self.is_searching = False
            self._search_results = None

    def _on_search_settled(self, query: str) -> None:
        results: Optional[_SearchResults] = None
        if self.remote_search is not None:
            try:
                results = _SearchResults(query, list(self.remote_search(query)))
            except Exception as e:
                logger.exception("Remote search failed for %r", query)
                results = _SearchResults(query, [])
                if self.notifier:
                    self.notifier.notify("Search Failed", "Could not search products. Please try again.", "error")
                log_shop_event("search_failed", {"query": query, "error": str(e)}, level=logging.ERROR)

        with self._lock:
            # A newer edit may have landed while the remote call ran
            if query != self.state.search_query:
                return
            self._search_results = results
            self.is_searching = False
        log_shop_event("search_settled", {"query": query}, level=logging.DEBUG)

    def current_page(self) -> PageResult:
        """Recompute the visible page from the store and current state."""
        with self._lock:
            state = self.state
            results = self._search_results
        products: Sequence[Product] = self.store.get_all()
        if self.remote_search is not None and state.search_query.strip():
            if results is None or results.query != state.search_query:
                # Remote results not in yet
                products = []
            else:
                products = results.products
                # Remote matching is authoritative; skip the local text filter
                state = replace(state, search_query="")
        return filter_sort_paginate(products, state, self.page_size)
