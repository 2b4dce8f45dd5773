"""
Invoice Service - atomic invoice creation with stock deduction

WHY: An invoice is priced from the live catalog (client prices are never
trusted), checked against stock, written with its line items and its stock
deductions as a single transaction. Either everything persists or nothing
does.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from decimal import Decimal

from flask import current_app
from sqlalchemy.orm import joinedload, selectinload

from ..errors import InsufficientStock, InvoiceNotFound, ProductNotFound, ValidationError
from ..extensions import db
from ..models import Customer, Invoice, InvoiceItem
from ..models.sales import INVOICE_STATUS_COMPLETED, SETTABLE_INVOICE_STATUSES
from ..validation import money_json, parse_discount_percent, parse_positive_int, to_money
from . import catalog_service
from .concurrency import atomic
from .store_service import require_store


@dataclass
class CartLine:
    """A requested (product, quantity) pair; price is attached server-side."""
    product_id: int
    quantity: int
    price: Decimal | None = None


@dataclass(frozen=True)
class InvoiceResult:
    invoice_id: int
    total_before_discount: Decimal
    discount_percent: Decimal
    discount_amount: Decimal
    final_total: Decimal

    def to_dict(self) -> dict:
        return {
            "invoiceId": self.invoice_id,
            "totalBeforeDiscount": money_json(self.total_before_discount),
            "discountPercent": float(self.discount_percent),
            "discountAmount": money_json(self.discount_amount),
            "finalTotal": money_json(self.final_total),
        }


def parse_cart(items) -> list[CartLine]:
    """
    Normalize raw cart items into CartLines.

    Accepts `qty` or `quantity` per item; any `price` sent by the client is
    dropped here.
    """
    if not isinstance(items, list) or not items:
        raise ValidationError("Missing required fields", details={"fields": ["items"]})

    lines = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError("Invalid item data", details={"index": index})
        quantity = item.get("qty", item.get("quantity"))
        lines.append(CartLine(
            product_id=parse_positive_int(item.get("productId"), "productId"),
            quantity=parse_positive_int(quantity, "qty"),
        ))
    return lines


def _require_fields(**fields) -> None:
    missing = [name for name, value in fields.items() if value is None or (isinstance(value, str) and not value.strip())]
    if missing:
        raise ValidationError("Missing required fields", details={"fields": missing})


def _generate_customer_code() -> str:
    return f"C{secrets.token_hex(6).upper()}"


def _resolve_customer(store_id: int, customer_name: str, phone: str | None) -> Customer:
    """Find-or-create the customer inside the invoice transaction."""
    query = db.session.query(Customer).filter(Customer.store_id == store_id)
    if phone:
        customer = query.filter(Customer.phone == phone).first()
    else:
        customer = query.filter(Customer.phone.is_(None), Customer.customer_name == customer_name).first()

    if customer is None:
        customer = Customer(
            store_id=store_id,
            customer_code=_generate_customer_code(),
            customer_name=customer_name,
            phone=phone,
        )
        db.session.add(customer)
        db.session.flush()
    return customer


def _price_cart(store_id: int, lines: list[CartLine]) -> Decimal:
    total = Decimal("0")
    for line in lines:
        price = catalog_service.find_price(line.product_id, store_id)
        if price is None:
            raise ProductNotFound(line.product_id)
        line.price = price
        total += price * line.quantity
    return total


def _deduct_stock(store_id: int, invoice: Invoice, lines: list[CartLine]) -> None:
    for line in lines:
        available = catalog_service.find_quantity(line.product_id, store_id)
        if available is None:
            raise ProductNotFound(
                line.product_id,
                f"Product {line.product_id} not found for store {store_id}",
            )
        if available < line.quantity:
            raise InsufficientStock(line.product_id, line.quantity, available)

        db.session.add(InvoiceItem(
            invoice_id=invoice.id,
            product_id=line.product_id,
            qty=line.quantity,
            price=line.price,
        ))

        # The guarded UPDATE is the authority; the read above only produces the
        # error detail. A concurrent deduction between the two lands here.
        if not catalog_service.decrement_quantity(line.product_id, store_id, line.quantity):
            if catalog_service.find_quantity(line.product_id, store_id, lock=False) is None:
                raise ProductNotFound(
                    line.product_id,
                    f"Product {line.product_id} not found for store {store_id}",
                )
            raise InsufficientStock(line.product_id, line.quantity)


def create_invoice(
    *,
    store_id,
    customer_name,
    items,
    payment_method,
    phone=None,
    discount=None,
) -> InvoiceResult:
    """
    Price, stock-check and persist an invoice atomically.

    Pricing pass, discount, header insert, then per line: locked stock read,
    line item insert and guarded decrement. Any failure rolls back the whole
    transaction: no header, no line items, no stock change.

    Raises:
        ValidationError: missing/malformed input (nothing is touched)
        StoreNotFound: unknown store
        ProductNotFound: a line does not resolve in the store's catalog
        InsufficientStock: a line asks for more than is on hand
        PersistenceFailure: unexpected storage error
    """
    _require_fields(storeId=store_id, customerName=customer_name, paymentMethod=payment_method)
    lines = parse_cart(items)
    discount_percent = parse_discount_percent(discount)
    customer_name = str(customer_name).strip()
    payment_method = str(payment_method).strip()
    phone = str(phone).strip() if phone not in (None, "") else None

    try:
        with atomic():
            store = require_store(store_id)

            total = _price_cart(store.id, lines)
            discount_amount = to_money(total * discount_percent / Decimal(100))
            final_total = to_money(total - discount_amount)

            customer = _resolve_customer(store.id, customer_name, phone)
            invoice = Invoice(
                store_id=store.id,
                customer_id=customer.id,
                customer_name=customer_name,
                phone=phone,
                total=final_total,
                discount=discount_percent,
                payment_method=payment_method,
                status=INVOICE_STATUS_COMPLETED,
            )
            db.session.add(invoice)
            db.session.flush()

            _deduct_stock(store.id, invoice, lines)
            invoice_id = invoice.id
    except (ProductNotFound, InsufficientStock) as exc:
        current_app.logger.warning("Invoice rejected for store %s: %s", store_id, exc)
        raise

    current_app.logger.info(
        "Invoice %s created for store %s (%d lines, final total %s)",
        invoice_id, store.id, len(lines), final_total,
    )
    return InvoiceResult(
        invoice_id=invoice_id,
        total_before_discount=to_money(total),
        discount_percent=discount_percent,
        discount_amount=discount_amount,
        final_total=final_total,
    )


def get_invoice(invoice_id: int) -> Invoice:
    invoice = (
        db.session.query(Invoice)
        .options(selectinload(Invoice.items).joinedload(InvoiceItem.product))
        .filter(Invoice.id == invoice_id)
        .first()
    )
    if not invoice:
        raise InvoiceNotFound("Invoice not found", details={"invoice_id": invoice_id})
    return invoice


def list_store_invoices(store_id: int) -> list[Invoice]:
    return (
        db.session.query(Invoice)
        .filter(Invoice.store_id == store_id)
        .order_by(Invoice.created_at.desc(), Invoice.id.desc())
        .all()
    )


def update_invoice_status(invoice_id: int, status) -> Invoice:
    """
    Move an invoice to paid/unpaid (case-insensitive; stored lower-case).
    """
    normalized = status.strip().lower() if isinstance(status, str) else None
    if normalized not in SETTABLE_INVOICE_STATUSES:
        raise ValidationError("Invalid status. Use 'paid' or 'unpaid'.", details={"status": status})

    with atomic():
        matched = (
            db.session.query(Invoice)
            .filter(Invoice.id == invoice_id)
            .update({Invoice.status: normalized}, synchronize_session="fetch")
        )
        if matched == 0:
            raise InvoiceNotFound("Invoice not found.", details={"invoice_id": invoice_id})

    return db.session.get(Invoice, invoice_id)


def printable_invoice(invoice_id: int) -> dict:
    """
    Data for a printed invoice: store header, priced lines and totals.

    Rendering (PDF, receipt printer) happens outside this service.
    """
    invoice = get_invoice(invoice_id)
    items = [item.to_dict() for item in invoice.items]
    total_before_discount = to_money(sum((item.subtotal for item in invoice.items), Decimal("0")))
    return {
        "title": "Smart Billing System",
        "invoice": invoice.to_dict(),
        "store": {
            "storeId": invoice.store.id,
            "storeName": invoice.store.store_name,
            "address": invoice.store.address,
            "gstNumber": invoice.store.gst_number,
        },
        "items": items,
        "totalBeforeDiscount": money_json(total_before_discount),
        "discountAmount": money_json(total_before_discount - invoice.total),
        "grandTotal": money_json(invoice.total),
    }
