# Overview: Flask API routes for the store directory; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify, request

from ..decorators import require_admin
from ..errors import BillingError, error_response
from ..models import Store
from ..services import store_service
from ..validation import ModelValidationPolicy, enforce_rules_store, validate_payload


stores_bp = Blueprint("stores", __name__, url_prefix="/api/stores")

STORE_POLICY = ModelValidationPolicy(
    writable_fields=set(store_service.STORE_MUTABLE_FIELDS),
    required_on_create={"store_name", "phone"},
    aliases={
        "storeName": "store_name",
        "ownerName": "owner_name",
        "typeOfBusiness": "type_of_business",
        "gstNumber": "gst_number",
        "logoUrl": "logo_url",
    },
)


@stores_bp.post("/register")
def register_store_route():
    """
    Idempotent registration.

    A store already holding the given email, phone or GST number is returned
    as-is (200) instead of being created again.
    """
    try:
        payload = request.get_json(silent=True) or {}
        patch = validate_payload(model=Store, payload=payload, policy=STORE_POLICY, partial=False)
        enforce_rules_store(patch)

        existing = store_service.find_existing_store(
            email=patch.get("email"),
            phone=patch.get("phone"),
            gst_number=patch.get("gst_number"),
        )
        if existing:
            return jsonify({
                "status": "Store already existed",
                "storeId": existing.id,
                "apiKey": existing.api_key,
            }), 200

        store = store_service.register_store(patch=patch)
        return jsonify({
            "storeId": store.id,
            "apiKey": store.api_key,
            "message": "Store registered successfully",
        }), 201

    except BillingError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to register store")
        return jsonify({"success": False, "error": "Internal server error"}), 500


@stores_bp.get("/getall")
@require_admin
def list_stores_route():
    stores = store_service.list_stores()
    return jsonify([store.to_dict() for store in stores]), 200


@stores_bp.get("/<int:store_id>")
@require_admin
def get_store_route(store_id: int):
    store = store_service.get_store(store_id)
    if not store:
        return jsonify({"success": False, "error": "Store not found", "reason": "STORE_NOT_FOUND"}), 404
    return jsonify(store.to_dict()), 200


@stores_bp.put("/<int:store_id>")
@require_admin
def update_store_route(store_id: int):
    try:
        payload = request.get_json(silent=True) or {}
        patch = validate_payload(model=Store, payload=payload, policy=STORE_POLICY, partial=True)
        store = store_service.update_store(store_id, patch=patch)
        return jsonify({"status": "updated", "store": store.to_dict()}), 200

    except BillingError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update store")
        return jsonify({"success": False, "error": "Internal server error"}), 500


@stores_bp.post("/<int:store_id>/rotate-key")
@require_admin
def rotate_key_route(store_id: int):
    try:
        store = store_service.rotate_api_key(store_id)
    except BillingError as e:
        return error_response(e)
    return jsonify({"storeId": store.id, "apiKey": store.api_key}), 200


@stores_bp.delete("/<int:store_id>")
@require_admin
def delete_store_route(store_id: int):
    try:
        store_service.delete_store(store_id)
    except BillingError as e:
        return error_response(e)
    return jsonify({"status": "deleted"}), 200
