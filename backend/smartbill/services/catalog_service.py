# backend/smartbill/services/catalog_service.py
"""
Product Catalog Service

MULTI-TENANT: Every lookup is keyed by (product_id, store_id); a product id
belonging to another store behaves exactly like a missing product.

Two surfaces live here:
- the collaborator interface used inside the invoice transaction
  (find_price, find_quantity, decrement_quantity). These never commit.
- catalog management (add/list/get/update/delete/adjust_stock), each of which
  runs in its own transaction.
"""
from __future__ import annotations

from decimal import Decimal

from ..errors import ConflictError, ProductNotFound, ValidationError
from ..extensions import db
from ..models import InvoiceItem, Product
from ..validation import coerce_int
from .concurrency import atomic, lock_for_update

PRODUCT_MUTABLE_FIELDS = {"name", "sku", "price", "quantity", "category", "unit"}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _product_query(product_id: int, store_id: int):
    return db.session.query(Product).filter(
        Product.id == product_id,
        Product.store_id == store_id,
    )


# ---------------------------------------------------------------------------
# Collaborator interface (runs inside the caller's transaction)
# ---------------------------------------------------------------------------

def find_price(product_id: int, store_id: int) -> Decimal | None:
    """Current unit price, or None when the product does not resolve for the store."""
    row = (
        db.session.query(Product.price)
        .filter(Product.id == product_id, Product.store_id == store_id)
        .first()
    )
    return row.price if row else None


def find_quantity(product_id: int, store_id: int, *, lock: bool = True) -> int | None:
    """Current on-hand quantity, row-locked by default, or None when absent."""
    query = db.session.query(Product.quantity).filter(
        Product.id == product_id,
        Product.store_id == store_id,
    )
    if lock:
        query = lock_for_update(query)
    row = query.first()
    return row.quantity if row else None


def decrement_quantity(product_id: int, store_id: int, amount: int) -> bool:
    """
    Conditionally subtract `amount` from stock.

    The WHERE clause carries the sufficiency check, so two transactions racing
    on the same row cannot both succeed when only one fits. Returns False when
    no row matched (missing product or not enough stock).
    """
    matched = (
        db.session.query(Product)
        .filter(
            Product.id == product_id,
            Product.store_id == store_id,
            Product.quantity >= amount,
        )
        .update(
            {
                Product.quantity: Product.quantity - amount,
                Product.version_id: Product.version_id + 1,
            },
            synchronize_session="fetch",
        )
    )
    return matched == 1


# ---------------------------------------------------------------------------
# Catalog management
# ---------------------------------------------------------------------------

def _ensure_sku_free(store_id: int, sku: str, *, exclude_id: int | None = None) -> None:
    query = db.session.query(Product.id).filter(Product.store_id == store_id, Product.sku == sku)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    if query.first():
        raise ConflictError("Product with this SKU already exists", details={"sku": sku})


def add_product(*, store_id: int, patch: dict) -> Product:
    """
    Create a product from a validated patch dict.

    Raises:
        ConflictError: If the SKU already exists in the store
    """
    with atomic():
        _ensure_sku_free(store_id, patch["sku"])
        product = Product(store_id=store_id)
        apply_product_patch(product, patch)
        db.session.add(product)
    return product


def list_products(store_id: int) -> list[Product]:
    return (
        db.session.query(Product)
        .filter(Product.store_id == store_id)
        .order_by(Product.id.asc())
        .all()
    )


def get_product(store_id: int, product_id: int) -> Product:
    product = _product_query(product_id, store_id).first()
    if not product:
        raise ProductNotFound(product_id, "Product not found for this store")
    return product


def update_product(*, store_id: int, product_id: int, patch: dict) -> Product:
    with atomic():
        product = lock_for_update(_product_query(product_id, store_id)).first()
        if not product:
            raise ProductNotFound(product_id, "Product not found for this store")
        if "sku" in patch and patch["sku"] != product.sku:
            _ensure_sku_free(store_id, patch["sku"], exclude_id=product.id)
        apply_product_patch(product, patch)
    return product


def delete_product(*, store_id: int, product_id: int) -> None:
    """
    Delete a product.

    Products referenced by invoice lines stay: line items are the historical
    record and keep pointing at their product.
    """
    with atomic():
        product = lock_for_update(_product_query(product_id, store_id)).first()
        if not product:
            raise ProductNotFound(product_id, "Product not found for this store")
        referenced = db.session.query(InvoiceItem.id).filter(InvoiceItem.product_id == product.id).first()
        if referenced:
            raise ConflictError(
                "Product is referenced by existing invoices",
                details={"product_id": product.id},
            )
        db.session.delete(product)


def adjust_stock(*, store_id: int, product_id: int, quantity_change) -> int:
    """
    Apply a signed stock correction and return the new quantity.

    The non-negative check is part of the UPDATE, as for invoice deductions.
    """
    if quantity_change is None:
        raise ValidationError("quantityChange must be a number")
    change = coerce_int(quantity_change, "quantityChange")

    with atomic():
        current = find_quantity(product_id, store_id)
        if current is None:
            raise ProductNotFound(product_id, "Product not found for this store")
        matched = (
            _product_query(product_id, store_id)
            .filter(Product.quantity + change >= 0)
            .update(
                {
                    Product.quantity: Product.quantity + change,
                    Product.version_id: Product.version_id + 1,
                },
                synchronize_session="fetch",
            )
        )
        if matched != 1:
            raise ValidationError(
                "Stock cannot be negative",
                details={"product_id": product_id, "quantity": current, "quantity_change": change},
            )
        new_quantity = find_quantity(product_id, store_id, lock=False)
    return new_quantity
