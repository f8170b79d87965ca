"""Display helpers applied at the rendering boundary.

Category labels/colors, price formatting and the image placeholder policy
live here so the stores only ever deal with raw product data.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Optional

from partshop.config import CATEGORIES, PLACEHOLDER_IMAGE_URL
from partshop.models import Product

__all__ = [
    "CATEGORY_LABELS",
    "CATEGORY_COLORS",
    "category_label",
    "category_color",
    "format_price",
    "image_or_placeholder",
    "product_card",
]

CATEGORY_LABELS: Dict[str, str] = {"all": "All Categories", **CATEGORIES}

CATEGORY_COLORS: Dict[str, str] = {
    "engine": "bg-red-100 text-red-800",
    "suspension": "bg-blue-100 text-blue-800",
    "braking": "bg-orange-100 text-orange-800",
    "electrical": "bg-yellow-100 text-yellow-800",
    "body": "bg-green-100 text-green-800",
    "transmission": "bg-purple-100 text-purple-800",
}
DEFAULT_CATEGORY_COLOR = "bg-gray-100 text-gray-800"

_CENTS = Decimal("0.01")


def category_label(category: str) -> str:
    return CATEGORY_LABELS.get(category, category.title())


def category_color(category: str) -> str:
    return CATEGORY_COLORS.get(category, DEFAULT_CATEGORY_COLOR)


def format_price(amount: Decimal, currency: str = "R") -> str:
    """Two decimals, half-up, e.g. ``R89.99``."""
    return f"{currency}{Decimal(amount).quantize(_CENTS, rounding=ROUND_HALF_UP)}"


def image_or_placeholder(url: Optional[str]) -> str:
    """Use the placeholder for missing or unusable image references."""
    if not url or not url.strip():
        return PLACEHOLDER_IMAGE_URL
    url = url.strip()
    if url.startswith(("http://", "https://", "/", "data:image/")):
        return url
    return PLACEHOLDER_IMAGE_URL


def product_card(product: Product) -> Dict[str, Any]:
    """Product data plus display fields for a catalog card."""
    card = product.to_dict()
    card.update(
        image_url=image_or_placeholder(product.image_url),
        display_price=format_price(product.price),
        display_sale_price=format_price(product.sale_price) if product.is_on_sale else None,
        category_label=category_label(product.category),
        category_color=category_color(product.category),
        in_stock=product.in_stock,
    )
    return card
