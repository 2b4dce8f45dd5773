# Overview: Flask API routes for store registration and phone/OTP login.

from flask import Blueprint, current_app, jsonify, request

from ..errors import BillingError, error_response
from ..models import Store
from ..services import auth_service, store_service
from ..validation import ModelValidationPolicy, validate_payload


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")

REGISTER_POLICY = ModelValidationPolicy(
    writable_fields={"store_name", "phone", "email", "address", "logo_url"},
    required_on_create={"store_name", "phone"},
    aliases={"storeName": "store_name", "logoUrl": "logo_url"},
)


@auth_bp.post("/register")
def register_route():
    """
    Register a store.

    Body: {store_name, phone, email?, address?, logoUrl?}
    Returns the store and its API key.
    """
    try:
        payload = request.get_json(silent=True) or {}
        patch = validate_payload(model=Store, payload=payload, policy=REGISTER_POLICY, partial=False)
        store = store_service.register_store(patch=patch)

        return jsonify({
            "success": True,
            "message": "Store registered successfully",
            "store": {"id": store.id, "store_name": store.store_name, "phone": store.phone},
            "apiKey": store.api_key,
        }), 201

    except BillingError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to register store")
        return jsonify({"success": False, "error": "Internal server error"}), 500


@auth_bp.post("/verify-phone")
def verify_phone_route():
    try:
        data = request.get_json(silent=True) or {}
        otp = auth_service.verify_phone(data.get("phone"))
        # OTP delivery is stubbed, so the code is returned to the caller
        return jsonify({"success": True, "message": "OTP sent successfully", "otp": otp}), 200

    except BillingError as e:
        return error_response(e)


@auth_bp.post("/login")
def login_route():
    try:
        data = request.get_json(silent=True) or {}
        store, token = auth_service.login(data.get("phone"), data.get("otp"))

        return jsonify({
            "success": True,
            "message": "Login successful",
            "token": token,
            "storeId": store.id,
            "storeName": store.store_name,
        }), 200

    except BillingError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to login store")
        return jsonify({"success": False, "error": "Internal server error"}), 500


@auth_bp.post("/logout")
def logout_route():
    auth_header = request.headers.get("Authorization") or ""
    token = auth_header.split(" ", 1)[1] if auth_header.startswith("Bearer ") else None
    try:
        auth_service.logout(token)
        return jsonify({"success": True, "message": "Logged out"}), 200
    except BillingError as e:
        return error_response(e)
