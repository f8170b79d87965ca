"""Automotive parts storefront: catalog, cart, VIN lookup and admin tools."""

__version__ = "0.1.0"

# Re-export main components for convenient imports
from partshop.cart import CartStore, OutOfStockError
from partshop.catalog import CatalogBrowser, PageResult, apply_action, filter_sort_paginate
from partshop.config import DB_PATH, PAGE_SIZE, SEARCH_DEBOUNCE_SECONDS
from partshop.debounce import SearchDebouncer
from partshop.models import CartLineItem, FilterSortState, Product, SortKey, VehicleInfo
from partshop.product_store import ProductStore
from partshop.storage import KeyValueStorage, MemoryStorage, SqliteStorage

__all__ = [
    # Version
    "__version__",
    # Config
    "DB_PATH",
    "PAGE_SIZE",
    "SEARCH_DEBOUNCE_SECONDS",
    # Models
    "Product",
    "CartLineItem",
    "FilterSortState",
    "SortKey",
    "VehicleInfo",
    # Core
    "ProductStore",
    "filter_sort_paginate",
    "apply_action",
    "PageResult",
    "CatalogBrowser",
    "SearchDebouncer",
    "CartStore",
    "OutOfStockError",
    # Storage
    "KeyValueStorage",
    "MemoryStorage",
    "SqliteStorage",
]
