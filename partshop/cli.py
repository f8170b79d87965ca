"""Command-line interface for the parts shop database."""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from partshop.catalog import filter_sort_paginate
from partshop.config import CATEGORIES, DB_PATH, LOW_STOCK_THRESHOLD, PAGE_SIZE
from partshop.db import fetch_all_products, get_dashboard_stats, init_db
from partshop.logging_config import setup_logging
from partshop.models import FilterSortState, SortKey
from partshop.presentation import format_price
from partshop.seed import SAMPLE_PRODUCTS, export_products_csv, load_products_csv, seed_database
from partshop.vin import VinDecodeError, VinValidationError, decode_vin, find_compatible_parts

__all__ = ["main", "parse_args", "show_stats"]

env_path = Path(__file__).parent.parent / ".env"


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Manage the parts shop catalog database",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Create the database and load the sample catalog
  python -m partshop.cli seed

  # Load a catalog from CSV instead
  python -m partshop.cli seed --csv data/catalog.csv

  # Browse: cheapest braking parts matching "pad"
  python -m partshop.cli list --search pad --category braking --sort price-low

  # Decode a VIN and show compatible parts
  python -m partshop.cli vin 1HGCM82633A004352
        """,
    )
    parser.add_argument(
        "--db",
        default=DB_PATH,
        help=f"SQLite database path (default: {DB_PATH})",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log to the console as well",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init-db", help="Create the database tables")

    seed = subparsers.add_parser("seed", help="Insert products whose id is not yet present")
    seed.add_argument("--csv", metavar="PATH", help="Load products from a CSV file instead of the samples")

    list_cmd = subparsers.add_parser("list", help="Show one page of the catalog")
    list_cmd.add_argument("--search", default="", help="Case-insensitive search text")
    list_cmd.add_argument(
        "--category",
        default="all",
        choices=["all"] + list(CATEGORIES.keys()),
        help="Category filter (default: all)",
    )
    list_cmd.add_argument(
        "--sort",
        default=SortKey.NAME.value,
        choices=[key.value for key in SortKey],
        help="Sort order (default: name)",
    )
    list_cmd.add_argument("--page", type=int, default=1, help="Page number (default: 1)")
    list_cmd.add_argument("--page-size", type=int, default=PAGE_SIZE, help=f"Products per page (default: {PAGE_SIZE})")

    vin = subparsers.add_parser("vin", help="Decode a VIN and list compatible parts")
    vin.add_argument("vin", help="17-character VIN")

    subparsers.add_parser("stats", help="Show dashboard statistics")

    export = subparsers.add_parser("export-csv", help="Export all products to CSV")
    export.add_argument("path", help="Output CSV path")

    return parser.parse_args(argv)


def show_stats(db_path: str) -> None:
    """Display database statistics."""
    init_db(db_path)
    stats = get_dashboard_stats(db_path)

    print(f"\n{'='*50}")
    print(f"Database: {db_path}")
    print(f"{'='*50}")
    print(f"\nTotal products: {stats.total_products}")
    print(f"Low stock (< {LOW_STOCK_THRESHOLD}): {stats.low_stock_count}")
    print(f"Diagnose requests: {stats.total_requests} ({stats.pending_requests} pending)")

    print("\nProducts by category:")
    if stats.categories:
        for category, count in stats.categories.items():
            print(f"  {CATEGORIES.get(category, category)}: {count}")
    else:
        print("  No products yet")
    print()


def _list_products(args: argparse.Namespace) -> int:
    init_db(args.db)
    state = FilterSortState(
        search_query=args.search,
        selected_category=args.category,
        sort_key=args.sort,
        current_page=max(args.page, 1),
    )
    result = filter_sort_paginate(fetch_all_products(args.db), state, page_size=args.page_size)

    if not result.items:
        print("No products found.")
        return 0
    for product in result.items:
        stock = f"{product.stock_quantity} in stock" if product.in_stock else "out of stock"
        print(f"  [{product.id}] {product.name} ({product.brand}) {format_price(product.price)} - {stock}")
    print(f"\nPage {result.page} of {result.total_pages} ({result.total_count} products)")
    return 0


def _decode_vin(args: argparse.Namespace) -> int:
    try:
        vehicle = decode_vin(args.vin)
    except (VinValidationError, VinDecodeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Vehicle: {vehicle.year} {vehicle.make} {vehicle.model}")
    for label, value in (
        ("Engine", vehicle.engine),
        ("Body", vehicle.body_class),
        ("Fuel", vehicle.fuel_type),
        ("Drive", vehicle.drive_type),
    ):
        if value:
            print(f"  {label}: {value}")

    init_db(args.db)
    parts = find_compatible_parts(fetch_all_products(args.db), vehicle)
    print(f"\nCompatible parts: {len(parts)}")
    for product in parts:
        print(f"  [{product.id}] {product.name} - {product.compatible_vehicles}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for CLI. Returns the process exit code."""
    load_dotenv(dotenv_path=env_path)
    args = parse_args(argv)
    setup_logging(log_to_console=args.verbose)

    if args.command == "init-db":
        init_db(args.db)
        print(f"Database ready: {args.db}")
    elif args.command == "seed":
        try:
            products = load_products_csv(args.csv) if args.csv else SAMPLE_PRODUCTS
        except (OSError, ValueError) as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        inserted = seed_database(args.db, products)
        print(f"Inserted {inserted} products into {args.db}")
    elif args.command == "list":
        return _list_products(args)
    elif args.command == "vin":
        return _decode_vin(args)
    elif args.command == "stats":
        show_stats(args.db)
    elif args.command == "export-csv":
        init_db(args.db)
        count = export_products_csv(fetch_all_products(args.db), args.path)
        print(f"Exported {count} products to {args.path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
