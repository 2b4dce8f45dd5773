from __future__ import annotations

from ..extensions import db
from smartbill.time_utils import to_utc_z
from smartbill.validation import money_json


INVOICE_STATUS_COMPLETED = "completed"
INVOICE_STATUS_PAID = "paid"
INVOICE_STATUS_UNPAID = "unpaid"

# Statuses a caller may set after creation; "completed" is only ever the initial state
SETTABLE_INVOICE_STATUSES = (INVOICE_STATUS_PAID, INVOICE_STATUS_UNPAID)


class Invoice(db.Model):
    """
    Invoice header.

    total is server-computed (sum of line price * qty, minus the overall
    discount percent) and never changes after creation; only status moves:
    completed -> paid | unpaid.
    """
    __tablename__ = "invoices"
    __table_args__ = (
        db.Index("ix_invoices_store_created", "store_id", "created_at"),
        db.Index("ix_invoices_store_customer", "store_id", "customer_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True)

    customer_name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=True)

    # After discount
    total = db.Column(db.Numeric(12, 2), nullable=False)
    # Overall discount in percent (0-100)
    discount = db.Column(db.Numeric(5, 2), nullable=False, default=0)

    payment_method = db.Column(db.String(32), nullable=False)
    status = db.Column(db.String(16), nullable=False, default=INVOICE_STATUS_COMPLETED, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    store = db.relationship("Store", back_populates="invoices")
    customer = db.relationship("Customer", back_populates="invoices")
    items = db.relationship(
        "InvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        lazy=True,
        order_by="InvoiceItem.id",
    )

    def __repr__(self) -> str:
        return f"<Invoice id={self.id} store_id={self.store_id} total={self.total} status={self.status!r}>"

    def to_dict(self) -> dict:
        return {
            "invoiceId": self.id,
            "storeId": self.store_id,
            "customerId": self.customer_id,
            "customerName": self.customer_name,
            "phone": self.phone,
            "total": money_json(self.total),
            "discountPercent": money_json(self.discount),
            "paymentMethod": self.payment_method,
            "status": self.status,
            "createdAt": to_utc_z(self.created_at),
        }

    def to_summary_dict(self) -> dict:
        return {
            "invoiceId": self.id,
            "customerName": self.customer_name,
            "total": money_json(self.total),
            "status": self.status,
            "date": to_utc_z(self.created_at),
        }


class InvoiceItem(db.Model):
    """
    Priced line of an invoice.

    price is the unit price captured at sale time; later catalog price
    changes never touch it.
    """
    __tablename__ = "invoice_items"
    __table_args__ = (
        db.CheckConstraint("qty > 0", name="ck_invoice_items_qty_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    invoice_id = db.Column(db.Integer, db.ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    qty = db.Column(db.Integer, nullable=False)
    price = db.Column(db.Numeric(12, 2), nullable=False)

    invoice = db.relationship("Invoice", back_populates="items")
    product = db.relationship("Product")

    @property
    def subtotal(self):
        return self.price * self.qty

    def to_dict(self) -> dict:
        return {
            "productId": self.product_id,
            "productName": self.product.name if self.product else None,
            "qty": self.qty,
            "price": money_json(self.price),
            "subtotal": money_json(self.subtotal),
        }
