"""Sample catalog data and CSV import/export.

The sample products are what a fresh database is seeded with. CSV files
use the same column names as the ``products`` table.
"""

import os
from typing import Any, Dict, Iterable, List

import pandas as pd

from partshop.db import DEFAULT_DB_PATH, PRODUCT_COLUMNS, create_product, get_connection, init_db
from partshop.logging_config import get_logger
from partshop.models import Product

__all__ = [
    "SAMPLE_PRODUCTS",
    "load_products_csv",
    "export_products_csv",
    "seed_database",
]

logger = get_logger("seed")

_SEED_TIMESTAMP = "2024-01-01T00:00:00Z"

SAMPLE_PRODUCTS: List[Product] = [
    Product(
        id="1",
        name="Premium Brake Pads - Front",
        description="High-performance ceramic brake pads for superior stopping power",
        price="89.99",
        category="braking",
        brand="Bosch",
        stock_quantity=25,
        part_number="BP-FRONT-001",
        compatible_vehicles="Toyota Camry 2018-2023, Honda Accord 2016-2022",
        image_url="/placeholder.svg",
        created_at=_SEED_TIMESTAMP,
        updated_at=_SEED_TIMESTAMP,
    ),
    Product(
        id="2",
        name="Air Filter - High Flow",
        description="Performance air filter for improved engine airflow",
        price="34.99",
        category="engine",
        brand="K&N",
        stock_quantity=15,
        part_number="AF-HF-002",
        compatible_vehicles="Ford F-150 2015-2023, Chevrolet Silverado 2014-2022",
        image_url="/placeholder.svg",
        created_at=_SEED_TIMESTAMP,
        updated_at=_SEED_TIMESTAMP,
    ),
    Product(
        id="3",
        name="Shock Absorber - Rear",
        description="Heavy-duty shock absorber for smooth ride comfort",
        price="129.99",
        category="suspension",
        brand="Monroe",
        stock_quantity=8,
        part_number="SA-REAR-003",
        compatible_vehicles="Nissan Altima 2019-2023, Hyundai Elantra 2017-2022",
        image_url="/placeholder.svg",
        created_at=_SEED_TIMESTAMP,
        updated_at=_SEED_TIMESTAMP,
    ),
    Product(
        id="4",
        name="LED Headlight Bulbs",
        description="Ultra-bright LED headlight conversion kit",
        price="79.99",
        category="electrical",
        brand="Philips",
        stock_quantity=20,
        part_number="LED-HL-004",
        compatible_vehicles="BMW 3 Series 2016-2023, Audi A4 2017-2023",
        image_url="/placeholder.svg",
        created_at=_SEED_TIMESTAMP,
        updated_at=_SEED_TIMESTAMP,
    ),
    Product(
        id="5",
        name="Front Bumper Cover",
        description="OEM-quality replacement front bumper cover",
        price="299.99",
        category="body",
        brand="OEM",
        stock_quantity=5,
        part_number="BC-FRONT-005",
        compatible_vehicles="Honda Civic 2016-2021, Toyota Corolla 2017-2022",
        image_url="/placeholder.svg",
        created_at=_SEED_TIMESTAMP,
        updated_at=_SEED_TIMESTAMP,
    ),
    Product(
        id="6",
        name="Clutch Kit Complete",
        description="Complete clutch replacement kit with pressure plate",
        price="249.99",
        category="transmission",
        brand="LUK",
        stock_quantity=12,
        part_number="CK-COMP-006",
        compatible_vehicles="Mazda 6 2014-2020, Subaru Impreza 2015-2022",
        image_url="/placeholder.svg",
        created_at=_SEED_TIMESTAMP,
        updated_at=_SEED_TIMESTAMP,
    ),
]


def _clean_row(row: Dict[str, Any]) -> Dict[str, Any]:
    """Turn pandas NaN cells into None."""
    return {k: (None if pd.isna(v) else v) for k, v in row.items()}


def load_products_csv(path: str) -> List[Product]:
    """Load products from a CSV file.

    All columns are read as strings so prices keep their exact decimal
    text; ``id``, ``name`` and ``price`` columns are required.

    Raises:
        ValueError: If required columns are missing or a row is invalid.
    """
    df = pd.read_csv(path, dtype=str, keep_default_na=True)

    missing = {"id", "name", "price"} - set(df.columns)
    if missing:
        raise ValueError(f"CSV {path} is missing columns: {', '.join(sorted(missing))}")

    products: List[Product] = []
    for index, row in enumerate(df.to_dict(orient="records"), start=2):
        try:
            products.append(Product.from_dict(_clean_row(row)))
        except (ValueError, KeyError) as e:
            raise ValueError(f"{path}, line {index}: {e}") from e
    return products


def export_products_csv(products: Iterable[Product], path: str) -> int:
    """Write products to CSV. Returns the number of rows written."""
    rows = [p.to_dict() for p in products]
    df = pd.DataFrame(rows, columns=list(PRODUCT_COLUMNS))
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    df.to_csv(path, index=False)
    return len(rows)


def seed_database(
    db_path: str = DEFAULT_DB_PATH,
    products: Iterable[Product] = SAMPLE_PRODUCTS,
) -> int:
    """Insert products whose id is not yet in the database.

    Returns:
        Number of products inserted.
    """
    init_db(db_path)
    with get_connection(db_path) as conn:
        existing = {row["id"] for row in conn.execute("SELECT id FROM products")}

    inserted = 0
    for product in products:
        if product.id in existing:
            continue
        create_product(product.to_dict(), db_path=db_path, product_id=product.id)
        inserted += 1

    logger.info(f"Seeded {inserted} products into {db_path}")
    return inserted
