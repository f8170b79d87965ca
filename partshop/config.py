"""Centralized configuration for the parts shop."""

import os
from pathlib import Path
from typing import Dict, List

__all__ = [
    "DB_PATH",
    "PAGE_SIZE",
    "SEARCH_DEBOUNCE_SECONDS",
    "CART_STORAGE_KEY",
    "ADMIN_SESSION_KEY",
    "LOW_STOCK_THRESHOLD",
    "VIN_DECODE_URL",
    "REQUEST_TIMEOUT",
    "MAX_IMAGE_SIZE",
    "MAX_IMAGES",
    "PLACEHOLDER_IMAGE_URL",
    "CATEGORIES",
    "SERVICE_TYPES",
    "ADMIN_USERNAME",
    "ADMIN_PASSWORD",
    "SESSION_TTL_SECONDS",
    "REMEMBER_ME_TTL_SECONDS",
    "FLASK_HOST",
    "FLASK_PORT",
    "FLASK_DEBUG",
]

# Determine project root (parent of the package directory)
_THIS_DIR = Path(__file__).parent
_PROJECT_ROOT = _THIS_DIR.parent

# Storage
DB_PATH = os.getenv("PARTSHOP_DB_PATH", str(_PROJECT_ROOT / "data" / "partshop.db"))
CART_STORAGE_KEY = "tm_auto_cart"
ADMIN_SESSION_KEY = "tm_auto_admin_token"

# Catalog browsing
PAGE_SIZE = int(os.getenv("PAGE_SIZE", "12"))
SEARCH_DEBOUNCE_SECONDS = float(os.getenv("SEARCH_DEBOUNCE_SECONDS", "0.5"))

# Dashboard: products below this stock level count as low stock
LOW_STOCK_THRESHOLD = 10

# VIN decoding (NHTSA vPIC, free service)
VIN_DECODE_URL = "https://vpic.nhtsa.dot.gov/api/vehicles/decodevinvalues/{vin}?format=json"
REQUEST_TIMEOUT = int(os.getenv("REQUEST_TIMEOUT", "15"))

# Image uploads (diagnose requests and product images)
MAX_IMAGE_SIZE = 5 * 1024 * 1024
MAX_IMAGES = 5
PLACEHOLDER_IMAGE_URL = "/placeholder.svg"

# Category keys used by the catalog filter ("all" disables the filter)
CATEGORIES: Dict[str, str] = {
    "engine": "Engine Parts",
    "suspension": "Suspension",
    "braking": "Braking System",
    "electrical": "Electrical",
    "body": "Body Parts",
    "transmission": "Transmission",
}

SERVICE_TYPES: List[str] = [
    "Engine Diagnostics",
    "Brake System Check",
    "Electrical Issues",
    "Transmission Problems",
    "Suspension & Steering",
    "Air Conditioning",
    "General Inspection",
    "Other",
]

# Admin login (override in .env for anything but local use)
ADMIN_USERNAME = os.getenv("ADMIN_USERNAME", "admin")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "admin123")
SESSION_TTL_SECONDS = 24 * 60 * 60
REMEMBER_ME_TTL_SECONDS = 7 * 24 * 60 * 60

# Flask app settings (allow env overrides; default debug off for safety)
FLASK_HOST = os.getenv("FLASK_HOST", "127.0.0.1")
FLASK_PORT = int(os.getenv("FLASK_PORT", os.getenv("PORT", "5000")))
FLASK_DEBUG = os.getenv("FLASK_DEBUG", "False").lower() == "true"
