"""Admin operations: product CRUD and diagnose request management.

Every product mutation goes to the database first and then triggers a full
``ProductStore.refresh()``; the store is never patched incrementally.
"""

from typing import Any, Dict, List, Optional, Sequence

from partshop import db
from partshop.db import DEFAULT_DB_PATH, DiagnoseRequestNotFoundError, ProductNotFoundError
from partshop.forms import DiagnoseForm, FieldError, FormValidationError, ProductForm
from partshop.logging_config import get_logger, log_shop_event
from partshop.models import REQUEST_STATUSES, DashboardStats, DiagnoseRequest, Product
from partshop.notifications import Notifier
from partshop.product_store import ProductStore

__all__ = ["ShopAdmin", "submit_diagnose_request"]

logger = get_logger("admin")


def submit_diagnose_request(
    form: DiagnoseForm,
    db_path: str = DEFAULT_DB_PATH,
    notifier: Optional[Notifier] = None,
) -> DiagnoseRequest:
    """Validate and store a customer diagnose request.

    Raises:
        FormValidationError: If any field is invalid. Nothing is stored.
    """
    errors = form.validate()
    if errors:
        raise FormValidationError(errors)

    stored = db.create_diagnose_request(form.to_request(), db_path=db_path)
    log_shop_event("diagnose_submitted", {
        "request_id": stored.id,
        "service_type": stored.service_type,
        "urgency_level": stored.urgency_level,
        "image_count": len(stored.images),
    })
    if notifier:
        notifier.notify(
            "Request Submitted",
            "Your diagnostic request has been submitted. We'll contact you soon.",
            "success",
        )
    return stored


class ShopAdmin:
    """Admin panel actions against the database and the shared product store."""

    def __init__(
        self,
        db_path: str = DEFAULT_DB_PATH,
        store: Optional[ProductStore] = None,
        notifier: Optional[Notifier] = None,
    ):
        self.db_path = db_path
        self.store = store
        self.notifier = notifier

    def _notify(self, title: str, message: str, severity: str = "info") -> None:
        if self.notifier:
            self.notifier.notify(title, message, severity)

    def _refresh_store(self) -> None:
        if self.store is not None:
            self.store.refresh()

    def _validated_fields(self, data: Dict[str, Any]) -> Dict[str, Any]:
        form = ProductForm.from_dict(data)
        errors = form.validate()
        if errors:
            raise FormValidationError(errors)
        return form.to_fields()

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    def create_product(self, data: Dict[str, Any]) -> Product:
        fields = self._validated_fields(data)
        product = db.create_product(fields, db_path=self.db_path)
        logger.info(f"Created product {product.id} ({product.name})")
        self._notify("Product Created", f"{product.name} has been added to the catalog.", "success")
        self._refresh_store()
        return product

    def update_product(self, product_id: str, data: Dict[str, Any]) -> Product:
        """Replace a product's editable fields with the submitted form.

        Raises:
            FormValidationError: If the form is invalid.
            ProductNotFoundError: If the product does not exist.
        """
        fields = self._validated_fields(data)
        product = db.update_product(product_id, fields, db_path=self.db_path)
        logger.info(f"Updated product {product_id}")
        self._notify("Product Updated", f"{product.name} has been updated.", "success")
        self._refresh_store()
        return product

    def delete_product(self, product_id: str) -> bool:
        deleted = db.delete_product(product_id, db_path=self.db_path)
        if not deleted:
            logger.warning(f"Delete requested for unknown product {product_id}")
            return False
        logger.info(f"Deleted product {product_id}")
        self._notify("Product Deleted", "The product has been removed from the catalog.", "success")
        self._refresh_store()
        return True

    # ------------------------------------------------------------------
    # Diagnose requests
    # ------------------------------------------------------------------

    def list_requests(self, status: Optional[str] = None) -> List[DiagnoseRequest]:
        if status is not None and status not in REQUEST_STATUSES:
            raise FormValidationError([FieldError("status", f"Unknown status: {status}")])
        return db.get_diagnose_requests(db_path=self.db_path, status=status)

    def get_request(self, request_id: str) -> DiagnoseRequest:
        request = db.get_diagnose_request(request_id, db_path=self.db_path)
        if request is None:
            raise DiagnoseRequestNotFoundError(f"Diagnose request not found: {request_id}")
        return request

    def update_request_status(
        self,
        request_id: str,
        status: str,
        admin_response: Optional[str] = None,
        recommended_products: Optional[Sequence[str]] = None,
    ) -> DiagnoseRequest:
        """Move a request to a new status, optionally answering it.

        Recommended product ids must exist in the catalog.

        Raises:
            FormValidationError: On an unknown status or product id.
            DiagnoseRequestNotFoundError: If the request does not exist.
        """
        errors: List[FieldError] = []
        if status not in REQUEST_STATUSES:
            errors.append(FieldError("status", f"Status must be one of {', '.join(REQUEST_STATUSES)}"))

        updates: Dict[str, Any] = {"status": status}
        if admin_response is not None:
            if isinstance(admin_response, str):
                updates["admin_response"] = admin_response.strip() or None
            else:
                errors.append(FieldError("admin_response", "Response must be text"))
        if recommended_products is not None:
            if not isinstance(recommended_products, (list, tuple)) or not all(
                isinstance(pid, str) for pid in recommended_products
            ):
                errors.append(FieldError("recommended_products", "Must be a list of product ids"))
            else:
                product_ids = list(dict.fromkeys(recommended_products))
                unknown = [pid for pid in product_ids if db.get_product(pid, self.db_path) is None]
                if unknown:
                    errors.append(FieldError("recommended_products", f"Unknown products: {', '.join(unknown)}"))
                updates["recommended_products"] = product_ids

        if errors:
            raise FormValidationError(errors)

        request = db.update_diagnose_request(request_id, updates, db_path=self.db_path)
        log_shop_event("diagnose_status_changed", {"request_id": request_id, "status": status})
        self._notify("Request Updated", f"Request from {request.customer_name} is now {status}.", "success")
        return request

    def dashboard_stats(self) -> DashboardStats:
        return db.get_dashboard_stats(db_path=self.db_path)
