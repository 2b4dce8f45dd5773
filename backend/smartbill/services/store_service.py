from __future__ import annotations

import uuid

from sqlalchemy import or_

from smartbill.errors import ConflictError, StoreNotFound, ValidationError
from smartbill.extensions import db
from smartbill.models import Store
from smartbill.services.concurrency import atomic, lock_for_update
from smartbill.validation import enforce_rules_store, validate_phone

STORE_MUTABLE_FIELDS = {
    "store_name", "owner_name", "type_of_business", "phone", "email",
    "gst_number", "address", "pincode", "logo_url",
}


def generate_api_key() -> str:
    return str(uuid.uuid4())


def apply_store_patch(store: Store, patch: dict) -> None:
    for k, v in patch.items():
        if k not in STORE_MUTABLE_FIELDS:
            continue
        setattr(store, k, v)


def _ensure_phone_free(phone: str, *, exclude_id: int | None = None) -> None:
    query = db.session.query(Store.id).filter(Store.phone == phone)
    if exclude_id is not None:
        query = query.filter(Store.id != exclude_id)
    if query.first():
        raise ConflictError("Store already registered with this phone number", details={"phone": phone})


def register_store(*, patch: dict) -> Store:
    """
    Register a new store and issue its API key.

    Raises:
        ValidationError: store_name/phone missing or malformed
        ConflictError: phone already registered
    """
    if not patch.get("store_name") or not patch.get("phone"):
        raise ValidationError("Store name and phone are required")
    enforce_rules_store(patch)

    with atomic():
        _ensure_phone_free(patch["phone"])
        store = Store(api_key=generate_api_key())
        apply_store_patch(store, patch)
        db.session.add(store)
    return store


def find_existing_store(
    *,
    email: str | None = None,
    phone: str | None = None,
    gst_number: str | None = None,
) -> Store | None:
    """First store matching any of the given non-empty identifiers."""
    clauses = []
    if email:
        clauses.append(Store.email == email)
    if phone:
        clauses.append(Store.phone == phone)
    if gst_number:
        clauses.append(Store.gst_number == gst_number)
    if not clauses:
        return None
    return db.session.query(Store).filter(or_(*clauses)).order_by(Store.id.asc()).first()


def get_store(store_id: int) -> Store | None:
    return db.session.get(Store, store_id)


def require_store(store_id) -> Store:
    """Resolve a store id or raise StoreNotFound (the Store Directory lookup)."""
    if store_id is None or store_id == "":
        raise ValidationError("storeId is required")
    if isinstance(store_id, bool):
        raise ValidationError("storeId must be an integer")
    try:
        store_id = int(store_id)
    except (TypeError, ValueError):
        raise ValidationError("Invalid or missing store ID")
    store = get_store(store_id)
    if not store:
        raise StoreNotFound(f"Store ID {store_id} not found", details={"store_id": store_id})
    return store


def get_store_by_phone(phone: str) -> Store | None:
    return db.session.query(Store).filter_by(phone=validate_phone(phone)).first()


def store_for_api_key(api_key: str | None) -> Store | None:
    if not api_key:
        return None
    return db.session.query(Store).filter_by(api_key=api_key).first()


def list_stores() -> list[Store]:
    return db.session.query(Store).order_by(Store.id.asc()).all()


def update_store(store_id: int, *, patch: dict) -> Store:
    enforce_rules_store(patch)
    with atomic():
        store = lock_for_update(db.session.query(Store).filter_by(id=store_id)).first()
        if not store:
            raise StoreNotFound("Store not found", details={"store_id": store_id})
        if "phone" in patch and patch["phone"] != store.phone:
            _ensure_phone_free(patch["phone"], exclude_id=store.id)
        apply_store_patch(store, patch)
    return store


def rotate_api_key(store_id: int) -> Store:
    with atomic():
        store = lock_for_update(db.session.query(Store).filter_by(id=store_id)).first()
        if not store:
            raise StoreNotFound("Store not found", details={"store_id": store_id})
        store.api_key = generate_api_key()
    return store


def delete_store(store_id: int) -> None:
    """Delete a store together with its catalog, customers, invoices and sessions."""
    with atomic():
        store = db.session.get(Store, store_id)
        if not store:
            raise StoreNotFound("Store not found", details={"store_id": store_id})
        db.session.delete(store)
