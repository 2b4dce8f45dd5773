# Overview: Request credential decorators for API routes.

import secrets
from functools import wraps

from flask import current_app, g, jsonify, request

from .services import session_service
from .services.store_service import store_for_api_key


def _unauthorized(message: str):
    return jsonify({"success": False, "error": message, "reason": "UNAUTHORIZED"}), 401


def require_admin(f):
    """
    Require `Authorization: Bearer <ADMIN_TOKEN>`.

    Guards the store administration routes.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization") or ""
        expected = f"Bearer {current_app.config.get('ADMIN_TOKEN', '')}"

        if not auth_header or not secrets.compare_digest(auth_header.encode("utf-8"), expected.encode("utf-8")):
            return _unauthorized("Unauthorized access")

        return f(*args, **kwargs)

    return decorated_function


def require_store_credential(f):
    """
    Resolve the calling store from the Authorization header.

    Accepted forms:
    - `Authorization: <api key>`
    - `Authorization: Bearer <session token>` (issued by /api/auth/login)

    Sets g.store to the authenticated Store. Returns 401 when the header is
    missing or resolves to nothing.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = (request.headers.get("Authorization") or "").strip()

        if not auth_header:
            return _unauthorized("Unauthorized: API key missing")

        if auth_header.startswith("Bearer "):
            context = session_service.validate_session(auth_header.split(" ", 1)[1])
            store = context.store if context else None
        else:
            store = store_for_api_key(auth_header)

        if store is None:
            return _unauthorized("Unauthorized: Invalid API key")

        g.store = store
        return f(*args, **kwargs)

    return decorated_function
