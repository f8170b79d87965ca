"""Typed form records for the diagnose request and admin product forms.

Each form is a dataclass with named fields. ``validate()`` returns every
problem at once so the UI can show them inline; submitters raise
``FormValidationError`` and leave all stores untouched.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from partshop.config import MAX_IMAGES, SERVICE_TYPES
from partshop.models import URGENCY_LEVELS, DiagnoseRequest, to_decimal
from partshop.vin import clean_vin, vin_problem

__all__ = [
    "FieldError",
    "FormValidationError",
    "DiagnoseForm",
    "ProductForm",
]

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PHONE_PATTERN = re.compile(r"^\+?[\d\s\-()]{7,20}$")


@dataclass
class FieldError:
    field: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"field": self.field, "message": self.message}


class FormValidationError(ValueError):
    """Raised when a submitted form has field errors."""

    def __init__(self, errors: List[FieldError]):
        self.errors = errors
        super().__init__("; ".join(f"{e.field}: {e.message}" for e in errors))


def _required(errors: List[FieldError], name: str, value: Any, label: str) -> None:
    if value is None or (isinstance(value, str) and not value.strip()):
        errors.append(FieldError(name, f"{label} is required"))


@dataclass
class DiagnoseForm:
    customer_name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    car_make: str = ""
    car_model: str = ""
    car_year: Optional[int] = None
    vin: str = ""
    problem_description: str = ""
    service_type: str = ""
    urgency_level: str = "medium"
    images: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DiagnoseForm":
        year = data.get("car_year")
        try:
            car_year = int(year) if year not in (None, "") else None
        except (TypeError, ValueError):
            car_year = None
        return cls(
            customer_name=str(data.get("customer_name") or ""),
            email=str(data.get("email") or ""),
            phone=str(data.get("phone") or ""),
            address=str(data.get("address") or ""),
            car_make=str(data.get("car_make") or ""),
            car_model=str(data.get("car_model") or ""),
            car_year=car_year,
            vin=str(data.get("vin") or ""),
            problem_description=str(data.get("problem_description") or ""),
            service_type=str(data.get("service_type") or ""),
            urgency_level=str(data.get("urgency_level") or "medium"),
            images=list(data.get("images") or []),
        )

    def validate(self) -> List[FieldError]:
        errors: List[FieldError] = []
        _required(errors, "customer_name", self.customer_name, "Full name")
        _required(errors, "email", self.email, "Email")
        _required(errors, "phone", self.phone, "Phone")
        _required(errors, "car_make", self.car_make, "Car make")
        _required(errors, "car_model", self.car_model, "Car model")
        _required(errors, "car_year", self.car_year, "Car year")
        _required(errors, "service_type", self.service_type, "Service type")
        _required(errors, "problem_description", self.problem_description, "Problem description")

        if self.email.strip() and not EMAIL_PATTERN.match(self.email.strip()):
            errors.append(FieldError("email", "Email address is not valid"))
        if self.phone.strip() and not PHONE_PATTERN.match(self.phone.strip()):
            errors.append(FieldError("phone", "Phone number is not valid"))

        max_year = datetime.now().year + 1
        if self.car_year is not None and not 1900 <= self.car_year <= max_year:
            errors.append(FieldError("car_year", f"Car year must be between 1900 and {max_year}"))

        if self.service_type.strip() and self.service_type not in SERVICE_TYPES:
            errors.append(FieldError("service_type", "Unknown service type"))
        if self.urgency_level not in URGENCY_LEVELS:
            errors.append(FieldError("urgency_level", f"Urgency must be one of {', '.join(URGENCY_LEVELS)}"))

        if self.vin.strip():
            problem = vin_problem(clean_vin(self.vin))
            if problem:
                errors.append(FieldError("vin", problem))

        if len(self.images) > MAX_IMAGES:
            errors.append(FieldError("images", f"At most {MAX_IMAGES} images can be attached"))

        return errors

    def to_request(self) -> DiagnoseRequest:
        """Build the request record. Call only after ``validate()`` passed.

        Raises:
            FormValidationError: If the car year is missing.
        """
        if self.car_year is None:
            raise FormValidationError([FieldError("car_year", "Car year is required")])
        return DiagnoseRequest(
            customer_name=self.customer_name.strip(),
            email=self.email.strip(),
            phone=self.phone.strip(),
            address=self.address.strip(),
            car_make=self.car_make.strip(),
            car_model=self.car_model.strip(),
            car_year=self.car_year,
            vin=clean_vin(self.vin) or None,
            problem_description=self.problem_description.strip(),
            service_type=self.service_type,
            urgency_level=self.urgency_level,
            images=list(self.images),
        )


@dataclass
class ProductForm:
    """Admin add/edit product form."""

    name: str = ""
    price: Any = None
    sale_price: Any = None
    description: str = ""
    category: str = ""
    brand: str = ""
    stock_quantity: Any = 0
    image_url: str = ""
    part_number: str = ""
    compatible_vehicles: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProductForm":
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)

    def _amount(self, errors: List[FieldError], name: str, value: Any) -> Optional[Decimal]:
        try:
            amount = to_decimal(value)
        except ValueError:
            errors.append(FieldError(name, "Must be a number"))
            return None
        if amount is not None and amount < 0:
            errors.append(FieldError(name, "Must not be negative"))
        return amount

    def validate(self) -> List[FieldError]:
        errors: List[FieldError] = []
        _required(errors, "name", self.name, "Product name")
        _required(errors, "category", self.category, "Category")
        _required(errors, "brand", self.brand, "Brand")
        _required(errors, "part_number", self.part_number, "Part number")

        price = self._amount(errors, "price", self.price)
        if price is None and not any(e.field == "price" for e in errors):
            errors.append(FieldError("price", "Price is required"))
        sale_price = self._amount(errors, "sale_price", self.sale_price)
        if price is not None and sale_price and sale_price >= price:
            errors.append(FieldError("sale_price", "Sale price must be lower than the price"))

        try:
            stock = int(self.stock_quantity if self.stock_quantity not in (None, "") else 0)
        except (TypeError, ValueError):
            errors.append(FieldError("stock_quantity", "Must be a whole number"))
        else:
            if stock < 0:
                errors.append(FieldError("stock_quantity", "Must not be negative"))
        return errors

    def to_fields(self) -> Dict[str, Any]:
        """Product attributes for the database helpers. Call after ``validate()``."""
        sale_price = to_decimal(self.sale_price)
        return {
            "name": (self.name or "").strip(),
            "price": to_decimal(self.price),
            # A zero sale price means "no sale", as the admin form submits 0 by default
            "sale_price": sale_price if sale_price else None,
            "description": (self.description or "").strip(),
            "category": (self.category or "").strip(),
            "brand": (self.brand or "").strip(),
            "stock_quantity": int(self.stock_quantity or 0),
            "image_url": (self.image_url or "").strip(),
            "part_number": (self.part_number or "").strip(),
            "compatible_vehicles": (self.compatible_vehicles or "").strip(),
        }
