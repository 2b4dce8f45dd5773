# Overview: Domain error taxonomy shared by services and routes.

"""
Billing errors.

Every error carries a machine-checkable ``reason`` and the HTTP status the
routes answer with, so a route only needs ``except BillingError``.
"""

from __future__ import annotations


class BillingError(Exception):
    """Base class for expected, user-visible failures."""

    status_code = 400
    reason = "BILLING_ERROR"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}

    def to_dict(self) -> dict:
        payload = {"success": False, "error": str(self), "reason": self.reason}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(BillingError):
    """400-level input problem."""

    reason = "VALIDATION_ERROR"


class ConflictError(BillingError):
    """409-level business rule conflict (e.g., duplicate SKU)."""

    status_code = 409
    reason = "CONFLICT"


class AuthError(BillingError):
    status_code = 401
    reason = "UNAUTHORIZED"


class ForbiddenError(BillingError):
    status_code = 403
    reason = "FORBIDDEN"


class StoreNotFound(BillingError):
    status_code = 404
    reason = "STORE_NOT_FOUND"


class ProductNotFound(BillingError):
    status_code = 404
    reason = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id, message: str | None = None):
        super().__init__(
            message or f"Product with ID {product_id} not found",
            details={"product_id": product_id},
        )
        self.product_id = product_id


class InsufficientStock(BillingError):
    reason = "INSUFFICIENT_STOCK"

    def __init__(self, product_id, requested: int, available: int | None = None):
        details = {"product_id": product_id, "requested_quantity": requested}
        if available is not None:
            details["available_quantity"] = available
        super().__init__(f"Insufficient stock for product {product_id}", details=details)
        self.product_id = product_id


class InvoiceNotFound(BillingError):
    status_code = 404
    reason = "INVOICE_NOT_FOUND"


class CustomerNotFound(BillingError):
    status_code = 404
    reason = "CUSTOMER_NOT_FOUND"


class PersistenceFailure(BillingError):
    """Unexpected storage-layer error; the transaction has been rolled back."""

    status_code = 500
    reason = "PERSISTENCE_FAILURE"

    def __init__(self, message: str = "Internal server error", details: dict | None = None):
        super().__init__(message, details)


def error_response(exc: BillingError):
    """(JSON body, status) for a BillingError raised inside a route."""
    from flask import current_app, jsonify

    if exc.status_code >= 500:
        current_app.logger.error("%s: %s", exc.reason, exc.details or exc)
    return jsonify(exc.to_dict()), exc.status_code
