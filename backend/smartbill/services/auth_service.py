# Overview: Service-layer operations for store login (phone + OTP).

"""
Store Authentication Service

Login is phone based. OTP delivery is stubbed: verify_phone "sends" the code
configured as OTP_STUB_CODE and returns it so a client can complete the flow.
A successful login issues a session token (see session_service.py).
"""

import secrets

from flask import current_app

from ..errors import AuthError, StoreNotFound, ValidationError
from ..models import Store
from ..validation import validate_phone
from . import session_service
from .store_service import get_store_by_phone


def _stub_otp() -> str:
    return str(current_app.config.get("OTP_STUB_CODE", "123456"))


def verify_phone(phone) -> str:
    """
    Start a phone login and return the OTP that was "sent".

    Raises:
        ValidationError: phone is not exactly 10 digits
        StoreNotFound: no store registered with that phone
    """
    validate_phone(phone)
    store = get_store_by_phone(phone)
    if not store:
        raise StoreNotFound("Store not found. Please register first.")

    otp = _stub_otp()
    current_app.logger.info("OTP issued for store %s", store.id)
    return otp


def login(phone, otp) -> tuple[Store, str]:
    """
    Exchange phone + OTP for a session token.

    Returns (store, plaintext_token).
    """
    validate_phone(phone)
    if not otp or not isinstance(otp, str):
        raise AuthError("Invalid OTP")
    if not secrets.compare_digest(otp.encode("utf-8"), _stub_otp().encode("utf-8")):
        raise AuthError("Invalid OTP")

    store = get_store_by_phone(phone)
    if not store:
        raise StoreNotFound("Store not registered")

    _, token = session_service.create_session(store.id)
    return store, token


def logout(token: str | None) -> None:
    if not token:
        raise ValidationError("token is required")
    if not session_service.revoke_session(token):
        raise AuthError("Invalid or expired token")
