"""JSON API for the shop.

Every response body carries a ``notifications`` list: the toasts raised
while handling the request (e.g. "Added to Cart"), drained from the shared
notifier.

Errors use ``{"error": "..."}``; form validation failures additionally
carry ``{"errors": [{"field": ..., "message": ...}]}`` with status 400.
"""

from functools import wraps
from typing import Any, Callable, Dict, List, Optional, Tuple

from flask import Blueprint, Response, jsonify, request

from partshop import auth
from partshop.admin import submit_diagnose_request
from partshop.app import get_context
from partshop.cart import OutOfStockError
from partshop.catalog import ACTIONS, PageResult, filter_sort_paginate
from partshop.db import DiagnoseRequestNotFoundError, ProductNotFoundError
from partshop.forms import DiagnoseForm, FieldError, FormValidationError
from partshop.images import ImageUploadError, image_to_data_url, normalize_data_url
from partshop.logging_config import get_logger
from partshop.models import FilterSortState, VehicleInfo
from partshop.presentation import CATEGORY_LABELS, product_card
from partshop.vin import VinDecodeError, VinValidationError, decode_vin, find_compatible_parts

__all__ = ["api"]

logger = get_logger("api")

api = Blueprint("api", __name__, url_prefix="/api")

ApiResponse = Tuple[Response, int]


# ---------- helpers ----------


def _respond(payload: Dict[str, Any], status: int = 200) -> ApiResponse:
    payload["notifications"] = [n.to_dict() for n in get_context().notifier.drain()]
    return jsonify(payload), status


def _error(message: str, status: int, errors: Optional[List[FieldError]] = None) -> ApiResponse:
    payload: Dict[str, Any] = {"error": message}
    if errors is not None:
        payload["errors"] = [e.to_dict() for e in errors]
    return _respond(payload, status)


def _json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _page_payload(result: PageResult) -> Dict[str, Any]:
    return {
        "products": [product_card(p) for p in result.items],
        "page": result.page,
        "page_size": result.page_size,
        "total_pages": result.total_pages,
        "total_count": result.total_count,
        "has_next": result.has_next,
        "has_previous": result.has_previous,
    }


def _store_unavailable() -> Optional[ApiResponse]:
    """Retry a failed catalog load; 503 if it still fails."""
    store = get_context().store
    if store.loaded or store.refresh():
        return None
    return _error(store.error or "Products are unavailable.", 503)


def admin_required(view: Callable[..., ApiResponse]) -> Callable[..., ApiResponse]:
    """Require ``Authorization: Bearer <token>`` matching the admin session."""

    @wraps(view)
    def wrapper(*args: Any, **kwargs: Any) -> ApiResponse:
        header = request.headers.get("Authorization", "")
        token = header[len("Bearer "):].strip() if header.startswith("Bearer ") else None
        if not token or not auth.is_authenticated(get_context().storage, token):
            return _error("Authentication required", 401)
        return view(*args, **kwargs)

    return wrapper


# ---------- catalog ----------


@api.route("/products", methods=["GET"])
def list_products() -> ApiResponse:
    """One page of the catalog.

    Query params: ``q``, ``category`` (default ``all``), ``sort``
    (``name|price-low|price-high|stock``), ``page`` (default 1).
    """
    unavailable = _store_unavailable()
    if unavailable:
        return unavailable

    try:
        state = FilterSortState(
            search_query=request.args.get("q", ""),
            selected_category=request.args.get("category", "all"),
            sort_key=request.args.get("sort", "name"),
            current_page=int(request.args.get("page", "1")),
        )
    except ValueError as e:
        return _error(f"Invalid query: {e}", 400)

    ctx = get_context()
    result = filter_sort_paginate(ctx.store.get_all(), state, page_size=ctx.browser.page_size)
    return _respond(_page_payload(result))


@api.route("/products/<product_id>", methods=["GET"])
def product_detail(product_id: str) -> ApiResponse:
    unavailable = _store_unavailable()
    if unavailable:
        return unavailable
    product = get_context().store.get(product_id)
    if product is None:
        return _error("Product not found", 404)
    return _respond({"product": product_card(product)})


@api.route("/categories", methods=["GET"])
def list_categories() -> ApiResponse:
    """Categories present in the catalog, in first-seen order."""
    unavailable = _store_unavailable()
    if unavailable:
        return unavailable
    categories = [
        {"key": key, "label": CATEGORY_LABELS.get(key, key.title())}
        for key in get_context().store.categories()
    ]
    return _respond({"categories": categories})


@api.route("/catalog/refresh", methods=["POST"])
def refresh_catalog() -> ApiResponse:
    store = get_context().store
    if not store.refresh():
        return _error(store.error or "Products are unavailable.", 503)
    return _respond({"count": len(store)})


@api.route("/browse", methods=["GET"])
def browse_page() -> ApiResponse:
    """The shared browsing session's current page and state."""
    browser = get_context().browser
    payload = _page_payload(browser.current_page())
    payload.update(
        state={
            "search_query": browser.state.search_query,
            "selected_category": browser.state.selected_category,
            "sort_key": browser.state.sort_key.value,
            "current_page": browser.state.current_page,
        },
        is_searching=browser.is_searching,
    )
    return _respond(payload)


@api.route("/browse", methods=["POST"])
def browse_action() -> ApiResponse:
    """Apply one browsing action: ``{"action": "set_category", "value": "engine"}``."""
    data = _json_body()
    action = data.get("action")
    value = data.get("value")
    if action not in ACTIONS:
        return _error(f"action must be one of {', '.join(ACTIONS)}", 400)

    browser = get_context().browser
    try:
        if action == "set_search":
            browser.set_search_query(str(value or ""))
        elif action == "set_page":
            browser.go_to_page(int(value))
        elif action == "clear_filters":
            browser.clear_filters()
        else:
            browser.dispatch(action, value)
    except (TypeError, ValueError) as e:
        return _error(str(e), 400)
    return browse_page()


# ---------- cart ----------


def _cart_payload() -> Dict[str, Any]:
    return {"cart": get_context().cart.to_dict()}


@api.route("/cart", methods=["GET"])
def get_cart() -> ApiResponse:
    return _respond(_cart_payload())


@api.route("/cart/items", methods=["POST"])
def add_cart_item() -> ApiResponse:
    """Add a product: ``{"product_id": "1", "quantity": 2}`` (quantity defaults to 1)."""
    unavailable = _store_unavailable()
    if unavailable:
        return unavailable

    data = _json_body()
    ctx = get_context()
    product = ctx.store.get(str(data.get("product_id", "")))
    if product is None:
        return _error("Product not found", 404)

    try:
        quantity = int(data.get("quantity", 1))
        ctx.cart.add_to_cart(product, quantity)
    except OutOfStockError as e:
        return _error(str(e), 409)
    except (TypeError, ValueError) as e:
        return _error(str(e), 400)
    return _respond(_cart_payload(), 201)


@api.route("/cart/items/<product_id>", methods=["PATCH"])
def update_cart_item(product_id: str) -> ApiResponse:
    """Set a quantity; zero or less removes the line item."""
    try:
        quantity = int(_json_body().get("quantity"))
    except (TypeError, ValueError):
        return _error("quantity must be an integer", 400)
    get_context().cart.update_quantity(product_id, quantity)
    return _respond(_cart_payload())


@api.route("/cart/items/<product_id>", methods=["DELETE"])
def remove_cart_item(product_id: str) -> ApiResponse:
    get_context().cart.remove_from_cart(product_id)
    return _respond(_cart_payload())


@api.route("/cart", methods=["DELETE"])
def clear_cart() -> ApiResponse:
    get_context().cart.clear()
    return _respond(_cart_payload())


# ---------- vehicles ----------


def _compatible_payload(vehicle: VehicleInfo) -> Dict[str, Any]:
    parts = find_compatible_parts(get_context().store.get_all(), vehicle)
    return {"vehicle": vehicle.to_dict(), "compatible_parts": [product_card(p) for p in parts]}


@api.route("/vin/decode", methods=["POST"])
def decode_vin_route() -> ApiResponse:
    """Decode ``{"vin": "..."}`` and list compatible parts."""
    ctx = get_context()
    try:
        vehicle = decode_vin(str(_json_body().get("vin") or ""))
    except VinValidationError as e:
        return _error(str(e), 400, [FieldError("vin", str(e))])
    except VinDecodeError as e:
        ctx.notifier.notify("Error", "Failed to decode VIN. Please check and try again.", "error")
        return _error(str(e), 502)

    ctx.notifier.notify("VIN Decoded", f"Found: {vehicle.year} {vehicle.make} {vehicle.model}", "success")
    return _respond(_compatible_payload(vehicle))


@api.route("/vehicles/lookup", methods=["POST"])
def lookup_vehicle() -> ApiResponse:
    """Manual lookup from ``{"make", "model", "year"}``."""
    data = _json_body()
    errors = [
        FieldError(name, f"{name.title()} is required")
        for name in ("make", "model", "year")
        if not str(data.get(name) or "").strip()
    ]
    if errors:
        return _error("Vehicle details are incomplete", 400, errors)

    vehicle = VehicleInfo(
        make=str(data["make"]).strip(),
        model=str(data["model"]).strip(),
        year=str(data["year"]).strip(),
    )
    return _respond(_compatible_payload(vehicle))


# ---------- diagnose requests ----------


@api.route("/images", methods=["POST"])
def upload_images() -> ApiResponse:
    """Convert uploaded files (multipart field ``images``) to data URLs."""
    files = request.files.getlist("images")
    if not files:
        return _error("No images uploaded", 400)
    try:
        urls = [image_to_data_url(f.read(), filename=f.filename) for f in files]
    except ImageUploadError as e:
        return _error(str(e), 400, [FieldError("images", str(e))])
    return _respond({"images": urls})


@api.route("/diagnose", methods=["POST"])
def submit_diagnose() -> ApiResponse:
    """Store a diagnose request. Images are sent as data URLs."""
    data = _json_body()
    ctx = get_context()
    try:
        data["images"] = [normalize_data_url(str(value)) for value in data.get("images") or []]
    except ImageUploadError as e:
        return _error(str(e), 400, [FieldError("images", str(e))])

    try:
        stored = submit_diagnose_request(DiagnoseForm.from_dict(data), db_path=ctx.db_path, notifier=ctx.notifier)
    except FormValidationError as e:
        return _error("Please correct the highlighted fields", 400, e.errors)
    return _respond({"request": {"id": stored.id, "status": stored.status}}, 201)


# ---------- admin ----------


@api.route("/admin/login", methods=["POST"])
def admin_login() -> ApiResponse:
    data = _json_body()
    user = auth.login(
        str(data.get("username") or ""),
        str(data.get("password") or ""),
        get_context().storage,
        remember_me=bool(data.get("remember_me")),
    )
    if user is None:
        return _error("Invalid username or password", 401)
    return _respond({"token": user.token, "username": user.username, "expires_at": user.expires_at})


@api.route("/admin/logout", methods=["POST"])
@admin_required
def admin_logout() -> ApiResponse:
    auth.logout(get_context().storage)
    return _respond({"logged_out": True})


@api.route("/admin/stats", methods=["GET"])
@admin_required
def admin_stats() -> ApiResponse:
    return _respond({"stats": get_context().admin.dashboard_stats().to_dict()})


@api.route("/admin/requests", methods=["GET"])
@admin_required
def admin_list_requests() -> ApiResponse:
    try:
        requests_ = get_context().admin.list_requests(request.args.get("status") or None)
    except FormValidationError as e:
        return _error("Invalid filter", 400, e.errors)
    return _respond({"requests": [r.to_dict() for r in requests_]})


@api.route("/admin/requests/<request_id>", methods=["PATCH"])
@admin_required
def admin_update_request(request_id: str) -> ApiResponse:
    """Update ``status`` and optionally ``admin_response`` / ``recommended_products``."""
    data = _json_body()
    try:
        updated = get_context().admin.update_request_status(
            request_id,
            str(data.get("status") or ""),
            admin_response=data.get("admin_response"),
            recommended_products=data.get("recommended_products"),
        )
    except FormValidationError as e:
        return _error("Invalid update", 400, e.errors)
    except DiagnoseRequestNotFoundError:
        return _error("Request not found", 404)
    return _respond({"request": updated.to_dict()})


@api.route("/admin/products", methods=["POST"])
@admin_required
def admin_create_product() -> ApiResponse:
    try:
        product = get_context().admin.create_product(_json_body())
    except FormValidationError as e:
        return _error("Please correct the highlighted fields", 400, e.errors)
    return _respond({"product": product.to_dict()}, 201)


@api.route("/admin/products/<product_id>", methods=["PUT"])
@admin_required
def admin_update_product(product_id: str) -> ApiResponse:
    try:
        product = get_context().admin.update_product(product_id, _json_body())
    except FormValidationError as e:
        return _error("Please correct the highlighted fields", 400, e.errors)
    except ProductNotFoundError:
        return _error("Product not found", 404)
    return _respond({"product": product.to_dict()})


@api.route("/admin/products/<product_id>", methods=["DELETE"])
@admin_required
def admin_delete_product(product_id: str) -> ApiResponse:
    if not get_context().admin.delete_product(product_id):
        return _error("Product not found", 404)
    return _respond({"deleted": product_id})
