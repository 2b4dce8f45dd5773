# Overview: Flask API routes for catalog operations; parses input and returns JSON responses.

# backend/smartbill/routes/products.py
"""
Product catalog routes.

MULTI-TENANT: The calling store is resolved from the Authorization header
(API key or session token) by @require_store_credential and stored on g.store.
A product id belonging to another store answers 404.
"""
from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_store_credential
from ..errors import BillingError, ForbiddenError, error_response
from ..models import Product
from ..services import catalog_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "sku", "price", "quantity", "category", "unit"},
    required_on_create={"name", "sku", "price", "quantity"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.post("")
@require_store_credential
def create_product_route():
    """
    Add a product to the caller's catalog.

    Body: {storeId?, name, sku, price, quantity, category?, unit?}
    A storeId, when sent, must be the caller's own store.
    """
    payload = dict(request.get_json(silent=True) or {})

    try:
        claimed = payload.pop("storeId", None)
        if claimed is not None and str(claimed) != str(g.store.id):
            raise ForbiddenError("Forbidden: storeId does not match credentials")

        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
        product = catalog_service.add_product(store_id=g.store.id, patch=patch)
    except BillingError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to add product")
        return jsonify({"success": False, "error": "Internal server error"}), 500

    return jsonify({"success": True, "message": "Product added successfully", "product": product.to_dict()}), 201


@products_bp.get("/<int:store_id>")
@require_store_credential
def list_products_route(store_id: int):
    """List a store's catalog; only the store itself may read it."""
    if store_id != g.store.id:
        return error_response(ForbiddenError("Forbidden: storeId does not match credentials"))

    products = catalog_service.list_products(store_id)
    return jsonify({
        "success": True,
        "count": len(products),
        "products": [p.to_dict() for p in products],
    }), 200


@products_bp.get("/item/<int:product_id>")
@require_store_credential
def get_product_route(product_id: int):
    try:
        product = catalog_service.get_product(g.store.id, product_id)
    except BillingError as e:
        return error_response(e)
    return jsonify({"success": True, "product": product.to_dict()}), 200


@products_bp.put("/<int:product_id>")
@require_store_credential
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
        product = catalog_service.update_product(store_id=g.store.id, product_id=product_id, patch=patch)
    except BillingError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"success": False, "error": "Internal server error"}), 500

    return jsonify({"success": True, "message": "Product updated successfully", "product": product.to_dict()}), 200


@products_bp.delete("/<int:product_id>")
@require_store_credential
def delete_product_route(product_id: int):
    try:
        catalog_service.delete_product(store_id=g.store.id, product_id=product_id)
    except BillingError as e:
        return error_response(e)

    return jsonify({"success": True, "message": "Product deleted successfully"}), 200


@products_bp.patch("/stock/<int:product_id>")
@require_store_credential
def adjust_stock_route(product_id: int):
    """
    Signed stock correction.

    Body: {"quantityChange": int}  (negative to remove stock)
    """
    data = request.get_json(silent=True) or {}

    try:
        new_quantity = catalog_service.adjust_stock(
            store_id=g.store.id,
            product_id=product_id,
            quantity_change=data.get("quantityChange"),
        )
    except BillingError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to adjust stock")
        return jsonify({"success": False, "error": "Internal server error"}), 500

    return jsonify({
        "success": True,
        "message": "Stock updated successfully",
        "productId": product_id,
        "newQuantity": new_quantity,
    }), 200
