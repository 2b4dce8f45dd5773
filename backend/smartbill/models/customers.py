from __future__ import annotations

from ..extensions import db
from smartbill.time_utils import to_utc_z


class Customer(db.Model):
    """
    Customer of a store, derived from invoices.

    MULTI-TENANT: Customers are scoped to stores via store_id.

    IDENTITY: within a store a customer is the phone number when one is
    given, otherwise the exact name among phone-less customers. Rows are
    created by the invoice engine inside the invoice transaction.

    customer_code is the public identifier used by the details endpoint.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.UniqueConstraint("customer_code", name="uq_customers_code"),
        db.UniqueConstraint("store_id", "phone", name="uq_customers_store_phone"),
        db.Index("ix_customers_store_created", "store_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)

    customer_code = db.Column(db.String(16), nullable=False)
    customer_name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    store = db.relationship("Store", back_populates="customers")
    invoices = db.relationship("Invoice", back_populates="customer", lazy=True)

    def __repr__(self) -> str:
        return f"<Customer id={self.id} code={self.customer_code!r} store_id={self.store_id}>"

    def to_dict(self) -> dict:
        return {
            "customerId": self.id,
            "customerCode": self.customer_code,
            "customerName": self.customer_name,
            "phone": self.phone,
            "createdAt": to_utc_z(self.created_at),
        }
