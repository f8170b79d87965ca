"""Data models for products, cart line items, catalog state and requests."""

from dataclasses import asdict, dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, List, Optional, Union

__all__ = [
    "Product",
    "CartLineItem",
    "SortKey",
    "FilterSortState",
    "VehicleInfo",
    "DiagnoseRequest",
    "DashboardStats",
    "URGENCY_LEVELS",
    "REQUEST_STATUSES",
    "to_decimal",
]

URGENCY_LEVELS = ("low", "medium", "high", "urgent")
REQUEST_STATUSES = ("pending", "in-progress", "completed")


def to_decimal(value: Union[Decimal, int, float, str, None]) -> Optional[Decimal]:
    """Convert a price-like value to Decimal, going through str for floats.

    Raises:
        ValueError: If the value is not a number.
    """
    if value is None or value == "":
        return None
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"Invalid amount: {value!r}") from e
    if not amount.is_finite():
        raise ValueError(f"Invalid amount: {value!r}")
    return amount


@dataclass(frozen=True)
class Product:
    """A catalog product. Immutable from the catalog's point of view.

    Prices are Decimal. ``sale_price`` is display-only; sorting and totals
    always use ``price``.
    """

    id: str
    name: str
    price: Decimal
    description: str = ""
    category: str = ""
    brand: str = ""
    stock_quantity: int = 0
    image_url: str = ""
    part_number: str = ""
    compatible_vehicles: str = ""
    sale_price: Optional[Decimal] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "price", to_decimal(self.price))
        object.__setattr__(self, "sale_price", to_decimal(self.sale_price))
        object.__setattr__(self, "stock_quantity", int(self.stock_quantity))

        if not self.id:
            raise ValueError("Product id is required")
        if self.price is None or self.price < 0:
            raise ValueError(f"Product {self.id}: price must be >= 0, got {self.price}")
        if self.sale_price is not None and self.sale_price < 0:
            raise ValueError(f"Product {self.id}: sale_price must be >= 0, got {self.sale_price}")
        if self.stock_quantity < 0:
            raise ValueError(f"Product {self.id}: stock_quantity must be >= 0, got {self.stock_quantity}")

    @property
    def in_stock(self) -> bool:
        return self.stock_quantity > 0

    @property
    def is_on_sale(self) -> bool:
        return self.sale_price is not None and self.sale_price < self.price

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-friendly dict (amounts as strings)."""
        data = asdict(self)
        data["price"] = str(self.price)
        data["sale_price"] = str(self.sale_price) if self.sale_price is not None else None
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Product":
        """Build a Product from a dict, ignoring unknown keys.

        Missing text attributes default to empty strings; None values for
        them are treated the same way.
        """
        text_fields = (
            "description", "category", "brand", "image_url",
            "part_number", "compatible_vehicles",
        )
        kwargs: Dict[str, Any] = {
            "id": str(data["id"]),
            "name": data.get("name") or "",
            "price": data.get("price", 0),
            "stock_quantity": data.get("stock_quantity") or 0,
            "sale_price": data.get("sale_price"),
            "created_at": data.get("created_at"),
            "updated_at": data.get("updated_at"),
        }
        for name in text_fields:
            kwargs[name] = data.get(name) or ""
        return cls(**kwargs)


@dataclass
class CartLineItem:
    """One cart entry: a product snapshot taken at add-time plus a quantity."""

    product: Product
    quantity: int

    @property
    def product_id(self) -> str:
        return self.product.id

    @property
    def line_total(self) -> Decimal:
        return self.product.price * self.quantity

    def to_dict(self) -> Dict[str, Any]:
        return {"product": self.product.to_dict(), "quantity": self.quantity}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CartLineItem":
        quantity = int(data["quantity"])
        if quantity < 1:
            raise ValueError(f"Line item quantity must be >= 1, got {quantity}")
        return cls(product=Product.from_dict(data["product"]), quantity=quantity)


class SortKey(str, Enum):
    NAME = "name"
    PRICE_LOW = "price-low"
    PRICE_HIGH = "price-high"
    STOCK = "stock"


@dataclass(frozen=True)
class FilterSortState:
    """Search/filter/sort/page state for the catalog view."""

    search_query: str = ""
    selected_category: str = "all"
    sort_key: SortKey = SortKey.NAME
    current_page: int = 1

    def __post_init__(self) -> None:
        object.__setattr__(self, "sort_key", SortKey(self.sort_key))
        if self.current_page < 1:
            raise ValueError(f"current_page must be >= 1, got {self.current_page}")


@dataclass
class VehicleInfo:
    """Decoded (or manually entered) vehicle details."""

    make: str
    model: str
    year: str
    engine: Optional[str] = None
    body_class: Optional[str] = None
    fuel_type: Optional[str] = None
    drive_type: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class DiagnoseRequest:
    """A customer diagnostic request as stored by the request collaborator."""

    customer_name: str
    email: str
    phone: str
    car_make: str
    car_model: str
    car_year: int
    problem_description: str
    service_type: str
    address: str = ""
    vin: Optional[str] = None
    urgency_level: str = "medium"
    images: List[str] = field(default_factory=list)
    status: str = "pending"
    admin_response: Optional[str] = None
    recommended_products: List[str] = field(default_factory=list)

    # Set by the store on insert/update
    id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class DashboardStats:
    total_products: int
    low_stock_count: int
    total_requests: int
    pending_requests: int
    categories: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
