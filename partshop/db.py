"""SQLite database schema and helpers for products and diagnose requests.

This is the shop's "remote" data store: the catalog and the admin panel
talk to it through these functions, and the rest of the package only sees
``Product`` / ``DiagnoseRequest`` values.
"""

import json
import random
import sqlite3
import string
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Generator, List, Optional

from partshop.config import DB_PATH, LOW_STOCK_THRESHOLD
from partshop.models import DashboardStats, DiagnoseRequest, Product
from partshop.product_store import matches_query

__all__ = [
    "DEFAULT_DB_PATH",
    "RecordNotFoundError",
    "ProductNotFoundError",
    "DiagnoseRequestNotFoundError",
    "get_connection",
    "init_db",
    "fetch_all_products",
    "search_products",
    "get_products_by_category",
    "get_product",
    "create_product",
    "update_product",
    "delete_product",
    "create_diagnose_request",
    "get_diagnose_requests",
    "get_diagnose_request",
    "update_diagnose_request",
    "get_dashboard_stats",
]

DEFAULT_DB_PATH = DB_PATH

PRODUCT_COLUMNS = (
    "id", "name", "price", "sale_price", "description", "category", "brand",
    "stock_quantity", "image_url", "part_number", "compatible_vehicles",
    "created_at", "updated_at",
)

# Columns an update may touch (id and created_at are fixed at insert)
_PRODUCT_UPDATABLE = frozenset(PRODUCT_COLUMNS) - {"id", "created_at", "updated_at"}
_REQUEST_UPDATABLE = frozenset({
    "customer_name", "email", "phone", "address", "car_make", "car_model",
    "car_year", "vin", "problem_description", "service_type", "urgency_level",
    "images", "status", "admin_response", "recommended_products",
})


class RecordNotFoundError(LookupError):
    """Raised when a stored record id does not exist."""
    pass


class ProductNotFoundError(RecordNotFoundError):
    pass


class DiagnoseRequestNotFoundError(RecordNotFoundError):
    pass


@contextmanager
def get_connection(db_path: str = DEFAULT_DB_PATH) -> Generator[sqlite3.Connection, None, None]:
    """Context manager for database connections."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _generate_id(prefix: str) -> str:
    """Ids look like ``product_1712345678901_k3j9x2a1b``."""
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"{prefix}_{int(time.time() * 1000)}_{suffix}"


def init_db(db_path: str = DEFAULT_DB_PATH) -> None:
    """Initialize the database schema."""
    with get_connection(db_path) as conn:
        cursor = conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS products (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                price TEXT NOT NULL,
                sale_price TEXT,
                description TEXT DEFAULT '',
                category TEXT DEFAULT '',
                brand TEXT DEFAULT '',
                stock_quantity INTEGER NOT NULL DEFAULT 0,
                image_url TEXT DEFAULT '',
                part_number TEXT DEFAULT '',
                compatible_vehicles TEXT DEFAULT '',
                created_at TEXT,
                updated_at TEXT
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS diagnose_requests (
                id TEXT PRIMARY KEY,
                customer_name TEXT NOT NULL,
                email TEXT NOT NULL,
                phone TEXT NOT NULL,
                address TEXT DEFAULT '',
                car_make TEXT NOT NULL,
                car_model TEXT NOT NULL,
                car_year INTEGER NOT NULL,
                vin TEXT,
                problem_description TEXT NOT NULL,
                service_type TEXT NOT NULL,
                urgency_level TEXT NOT NULL DEFAULT 'medium',
                images_json TEXT,
                status TEXT NOT NULL DEFAULT 'pending',
                admin_response TEXT,
                recommended_products_json TEXT,
                created_at TEXT,
                updated_at TEXT
            )
        """)

        # Durable key-value entries (cart snapshot, admin session)
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS kv_store (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TEXT
            )
        """)

        cursor.execute("CREATE INDEX IF NOT EXISTS idx_products_category ON products(category)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_products_name ON products(name)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_requests_status ON diagnose_requests(status)")

        conn.commit()


# =============================================================================
# Products
# =============================================================================


def _row_to_product(row: sqlite3.Row) -> Product:
    return Product.from_dict(dict(row))


def _product_params(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Serialize amounts as strings so Decimal precision survives storage."""
    params = dict(fields)
    for key in ("price", "sale_price"):
        if key in params and params[key] is not None:
            params[key] = str(params[key])
    return params


def fetch_all_products(db_path: str = DEFAULT_DB_PATH) -> List[Product]:
    """Get all products ordered by name."""
    with get_connection(db_path) as conn:
        rows = conn.execute("SELECT * FROM products ORDER BY name").fetchall()
    return [_row_to_product(row) for row in rows]


def search_products(query: str, db_path: str = DEFAULT_DB_PATH) -> List[Product]:
    """Case-insensitive substring search over name, description, part number,
    compatible vehicles and brand.

    Matching is done in Python with the same rule as the in-memory search;
    SQLite's lower() only folds ASCII and LIKE treats % and _ as wildcards.
    """
    return [p for p in fetch_all_products(db_path) if matches_query(p, query)]


def get_products_by_category(category: str, db_path: str = DEFAULT_DB_PATH) -> List[Product]:
    with get_connection(db_path) as conn:
        rows = conn.execute(
            "SELECT * FROM products WHERE category = ? ORDER BY name", (category,)
        ).fetchall()
    return [_row_to_product(row) for row in rows]


def get_product(product_id: str, db_path: str = DEFAULT_DB_PATH) -> Optional[Product]:
    with get_connection(db_path) as conn:
        row = conn.execute("SELECT * FROM products WHERE id = ?", (product_id,)).fetchone()
    return _row_to_product(row) if row else None


def create_product(
    fields: Dict[str, Any],
    db_path: str = DEFAULT_DB_PATH,
    product_id: Optional[str] = None,
) -> Product:
    """Insert a product and return it.

    ``fields`` holds the product attributes except id and timestamps. A
    ``product_id`` may be given to keep ids stable (seeding); otherwise one
    is generated.
    """
    now = _now()
    record = {name: fields.get(name) for name in _PRODUCT_UPDATABLE}
    record.update(
        id=product_id or _generate_id("product"),
        created_at=fields.get("created_at") or now,
        updated_at=fields.get("updated_at") or now,
    )
    # Validates price and stock before anything is written
    product = Product.from_dict(record)
    params = _product_params(product.to_dict())

    columns = ", ".join(PRODUCT_COLUMNS)
    placeholders = ", ".join(f":{name}" for name in PRODUCT_COLUMNS)
    with get_connection(db_path) as conn:
        conn.execute(f"INSERT INTO products ({columns}) VALUES ({placeholders})", params)
        conn.commit()
    return product


def update_product(
    product_id: str,
    updates: Dict[str, Any],
    db_path: str = DEFAULT_DB_PATH,
) -> Product:
    """Apply a partial update and return the updated product.

    Raises:
        ProductNotFoundError: If the product does not exist.
        ValueError: If the update would make the product invalid.
    """
    current = get_product(product_id, db_path)
    if current is None:
        raise ProductNotFoundError(f"Product not found: {product_id}")

    valid_updates = {k: v for k, v in updates.items() if k in _PRODUCT_UPDATABLE}
    merged = current.to_dict()
    merged.update(valid_updates)
    merged["updated_at"] = _now()
    product = Product.from_dict(merged)

    params = _product_params(product.to_dict())
    set_clause = ", ".join(f"{name} = :{name}" for name in sorted(valid_updates) + ["updated_at"])
    with get_connection(db_path) as conn:
        conn.execute(f"UPDATE products SET {set_clause} WHERE id = :id", params)
        conn.commit()
    return product


def delete_product(product_id: str, db_path: str = DEFAULT_DB_PATH) -> bool:
    """Delete a product. Returns False if it did not exist."""
    with get_connection(db_path) as conn:
        cursor = conn.execute("DELETE FROM products WHERE id = ?", (product_id,))
        conn.commit()
        return cursor.rowcount > 0


# =============================================================================
# Diagnose requests
# =============================================================================


def _row_to_request(row: sqlite3.Row) -> DiagnoseRequest:
    data = dict(row)
    images = json.loads(data.pop("images_json") or "[]")
    recommended = json.loads(data.pop("recommended_products_json") or "[]")
    return DiagnoseRequest(images=images, recommended_products=recommended, **data)


def create_diagnose_request(
    request: DiagnoseRequest,
    db_path: str = DEFAULT_DB_PATH,
) -> DiagnoseRequest:
    """Store a new request with status 'pending' and return the stored copy."""
    now = _now()
    data = request.to_dict()
    data.update(id=_generate_id("req"), status="pending", created_at=now, updated_at=now)
    images = data.pop("images")
    recommended = data.pop("recommended_products")

    with get_connection(db_path) as conn:
        conn.execute(
            """
            INSERT INTO diagnose_requests (
                id, customer_name, email, phone, address, car_make, car_model,
                car_year, vin, problem_description, service_type, urgency_level,
                images_json, status, admin_response, recommended_products_json,
                created_at, updated_at
            ) VALUES (
                :id, :customer_name, :email, :phone, :address, :car_make, :car_model,
                :car_year, :vin, :problem_description, :service_type, :urgency_level,
                :images_json, :status, :admin_response, :recommended_products_json,
                :created_at, :updated_at
            )
            """,
            {
                **data,
                "images_json": json.dumps(images),
                "recommended_products_json": json.dumps(recommended),
            },
        )
        conn.commit()

    return DiagnoseRequest(images=images, recommended_products=recommended, **data)


def get_diagnose_requests(
    db_path: str = DEFAULT_DB_PATH,
    status: Optional[str] = None,
) -> List[DiagnoseRequest]:
    """Get requests, newest first, optionally filtered by status."""
    query = "SELECT * FROM diagnose_requests"
    params: List[Any] = []
    if status:
        query += " WHERE status = ?"
        params.append(status)
    query += " ORDER BY created_at DESC"

    with get_connection(db_path) as conn:
        rows = conn.execute(query, params).fetchall()
    return [_row_to_request(row) for row in rows]


def get_diagnose_request(request_id: str, db_path: str = DEFAULT_DB_PATH) -> Optional[DiagnoseRequest]:
    with get_connection(db_path) as conn:
        row = conn.execute("SELECT * FROM diagnose_requests WHERE id = ?", (request_id,)).fetchone()
    return _row_to_request(row) if row else None


def update_diagnose_request(
    request_id: str,
    updates: Dict[str, Any],
    db_path: str = DEFAULT_DB_PATH,
) -> DiagnoseRequest:
    """Apply a partial update to a request.

    Raises:
        DiagnoseRequestNotFoundError: If the request does not exist.
    """
    valid = {k: v for k, v in updates.items() if k in _REQUEST_UPDATABLE}
    if "images" in valid:
        valid["images_json"] = json.dumps(valid.pop("images"))
    if "recommended_products" in valid:
        valid["recommended_products_json"] = json.dumps(valid.pop("recommended_products"))
    valid["updated_at"] = _now()

    set_clause = ", ".join(f"{name} = ?" for name in valid)
    with get_connection(db_path) as conn:
        cursor = conn.execute(
            f"UPDATE diagnose_requests SET {set_clause} WHERE id = ?",
            list(valid.values()) + [request_id],
        )
        conn.commit()
        if cursor.rowcount == 0:
            raise DiagnoseRequestNotFoundError(f"Diagnose request not found: {request_id}")

    updated = get_diagnose_request(request_id, db_path)
    if updated is None:
        raise DiagnoseRequestNotFoundError(f"Diagnose request not found: {request_id}")
    return updated


# =============================================================================
# Dashboard
# =============================================================================


def get_dashboard_stats(
    db_path: str = DEFAULT_DB_PATH,
    low_stock_threshold: int = LOW_STOCK_THRESHOLD,
) -> DashboardStats:
    """Aggregate product and request counts for the admin dashboard."""
    with get_connection(db_path) as conn:
        total_products = conn.execute("SELECT COUNT(*) FROM products").fetchone()[0]
        low_stock = conn.execute(
            "SELECT COUNT(*) FROM products WHERE stock_quantity < ?", (low_stock_threshold,)
        ).fetchone()[0]
        total_requests = conn.execute("SELECT COUNT(*) FROM diagnose_requests").fetchone()[0]
        pending = conn.execute(
            "SELECT COUNT(*) FROM diagnose_requests WHERE status = 'pending'"
        ).fetchone()[0]
        category_rows = conn.execute(
            "SELECT category, COUNT(*) AS count FROM products GROUP BY category ORDER BY category"
        ).fetchall()

    return DashboardStats(
        total_products=total_products,
        low_stock_count=low_stock,
        total_requests=total_requests,
        pending_requests=pending,
        categories={row["category"]: row["count"] for row in category_rows},
    )
