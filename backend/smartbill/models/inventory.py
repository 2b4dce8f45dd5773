from __future__ import annotations

from ..extensions import db
from smartbill.time_utils import to_utc_z
from smartbill.validation import money_json


class Product(db.Model):
    """
    Product master data and stock on hand.

    MULTI-TENANT: Products are scoped to stores via store_id.

    SKU: unique within a store, UniqueConstraint("store_id", "sku").

    STOCK: quantity is the live on-hand count. It is mutated only by catalog
    maintenance and by invoice stock deduction, always through a conditional
    UPDATE so it can never be written below zero.

    LOOKUP PATTERN:
    - Always by (id, store_id): a product id from another store never resolves
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("store_id", "sku", name="uq_products_store_sku"),
        db.CheckConstraint("quantity >= 0", name="ck_products_quantity_nonnegative"),
        db.CheckConstraint("price >= 0", name="ck_products_price_nonnegative"),
        db.Index("ix_products_store_name", "store_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    sku = db.Column(db.String(64), nullable=False)

    price = db.Column(db.Numeric(12, 2), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=0)

    category = db.Column(db.String(128), nullable=True)
    unit = db.Column(db.String(32), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    store = db.relationship("Store", back_populates="products")
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} name={self.name!r} store_id={self.store_id}>"

    def to_dict(self) -> dict:
        return {
            "productId": self.id,
            "storeId": self.store_id,
            "name": self.name,
            "sku": self.sku,
            "price": money_json(self.price),
            "quantity": self.quantity,
            "category": self.category,
            "unit": self.unit,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
