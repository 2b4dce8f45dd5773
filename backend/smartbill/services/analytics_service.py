# Overview: Service-layer operations for customer analytics; read-only aggregation over invoices.

from __future__ import annotations

from collections import defaultdict
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import func

from smartbill.errors import CustomerNotFound, ValidationError
from smartbill.extensions import db
from smartbill.models import Customer, Invoice
from smartbill.services.store_service import require_store
from smartbill.time_utils import as_utc_naive, days_ago, to_utc_z
from smartbill.validation import coerce_int, money_json, to_money

NEW_CUSTOMER_WINDOW_DAYS = 30
DAILY_TREND_WINDOW_DAYS = 30
DEFAULT_TOP_LIMIT = 5
MAX_TOP_LIMIT = 100
TREND_RANGES = ("daily", "monthly")


def _round_half_up(value) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def list_customers(store_id) -> list[Customer]:
    store = require_store(store_id)
    return (
        db.session.query(Customer)
        .filter(Customer.store_id == store.id)
        .order_by(Customer.created_at.desc(), Customer.id.desc())
        .all()
    )


def _invoice_counts_by_customer(store_id: int) -> list[int]:
    rows = (
        db.session.query(Invoice.customer_id, func.count(Invoice.id).label("invoice_count"))
        .filter(Invoice.store_id == store_id, Invoice.customer_id.isnot(None))
        .group_by(Invoice.customer_id)
        .all()
    )
    return [int(row.invoice_count) for row in rows]


def count_repeat_customers(store_id) -> int:
    """Customers with more than one invoice at the store."""
    store = require_store(store_id)
    return sum(1 for count in _invoice_counts_by_customer(store.id) if count > 1)


def count_new_customers(store_id, *, days: int = NEW_CUSTOMER_WINDOW_DAYS) -> int:
    store = require_store(store_id)
    return (
        db.session.query(func.count(Customer.id))
        .filter(Customer.store_id == store.id, Customer.created_at >= days_ago(days))
        .scalar()
    ) or 0


def average_invoice_value(store_id) -> Decimal:
    store = require_store(store_id)
    avg = db.session.query(func.avg(Invoice.total)).filter(Invoice.store_id == store.id).scalar()
    if avg is None:
        return Decimal("0.00")
    return to_money(Decimal(str(avg)))


def spending_trends(store_id, range_: str = "monthly") -> dict:
    """
    Invoice totals bucketed by day (last 30 days) or by calendar month.

    Buckets are built in Python so the grouping does not depend on the SQL
    dialect's date functions.
    """
    store = require_store(store_id)
    range_ = range_ if range_ in TREND_RANGES else "monthly"

    query = db.session.query(Invoice.created_at, Invoice.total).filter(Invoice.store_id == store.id)
    if range_ == "daily":
        query = query.filter(Invoice.created_at >= days_ago(DAILY_TREND_WINDOW_DAYS))
    rows = query.order_by(Invoice.created_at.asc(), Invoice.id.asc()).all()

    buckets: dict[tuple, Decimal] = {}
    labels: dict[tuple, str] = {}
    for row in rows:
        created = as_utc_naive(row.created_at)
        if range_ == "daily":
            key = (created.year, created.month, created.day)
            labels[key] = created.strftime("%Y-%m-%d")
        else:
            key = (created.year, created.month)
            labels[key] = created.strftime("%b")
        buckets[key] = buckets.get(key, Decimal("0")) + row.total

    ordered = sorted(buckets)
    return {
        "storeId": store.id,
        "range": range_,
        "labels": [labels[key] for key in ordered],
        "values": [money_json(buckets[key]) for key in ordered],
    }


def top_customers(store_id, limit=DEFAULT_TOP_LIMIT) -> list[dict]:
    store = require_store(store_id)
    limit = DEFAULT_TOP_LIMIT if limit in (None, "") else coerce_int(limit, "limit")
    if limit < 1 or limit > MAX_TOP_LIMIT:
        raise ValidationError(f"limit must be between 1 and {MAX_TOP_LIMIT}")

    total_spent = func.sum(Invoice.total).label("total_spent")
    rows = (
        db.session.query(
            Customer.id,
            Customer.customer_name,
            total_spent,
            func.count(Invoice.id).label("orders"),
            func.max(Invoice.created_at).label("last_purchase"),
        )
        .join(Invoice, Invoice.customer_id == Customer.id)
        .filter(Invoice.store_id == store.id)
        .group_by(Customer.id, Customer.customer_name)
        .order_by(total_spent.desc(), Customer.id.asc())
        .limit(limit)
        .all()
    )
    return [
        {
            "customerId": row.id,
            "name": row.customer_name,
            "totalSpent": money_json(row.total_spent),
            "orders": int(row.orders),
            "lastPurchase": to_utc_z(row.last_purchase),
        }
        for row in rows
    ]


def loyalty_insights(store_id) -> dict:
    """
    Loyalty scores for a store.

    loyaltyScore: share of invoicing customers who came back (0-100)
    frequencyScore: average invoices per customer scaled by 20, capped at 100
    avgOrderInterval: mean whole-day gap between a customer's consecutive invoices
    """
    store = require_store(store_id)

    counts = _invoice_counts_by_customer(store.id)
    total_customers = len(counts)
    repeat_customers = sum(1 for count in counts if count > 1)
    loyalty_score = _round_half_up(repeat_customers / total_customers * 100) if total_customers else 0

    avg_frequency = Decimal("0")
    if total_customers:
        avg_frequency = (Decimal(sum(counts)) / total_customers).quantize(
            Decimal("0.01"), rounding=ROUND_HALF_UP
        )
    frequency_score = min(_round_half_up(avg_frequency * 20), 100)

    visits = (
        db.session.query(Invoice.customer_id, Invoice.created_at)
        .filter(Invoice.store_id == store.id, Invoice.customer_id.isnot(None))
        .order_by(Invoice.customer_id.asc(), Invoice.created_at.asc(), Invoice.id.asc())
        .all()
    )
    by_customer: dict[int, list] = defaultdict(list)
    for customer_id, created_at in visits:
        by_customer[customer_id].append(as_utc_naive(created_at))

    gaps = []
    for timestamps in by_customer.values():
        for earlier, later in zip(timestamps, timestamps[1:]):
            gaps.append((later - earlier).days)
    avg_order_interval = _round_half_up(sum(gaps) / len(gaps)) if gaps else 0

    return {
        "loyaltyScore": loyalty_score,
        "frequencyScore": frequency_score,
        "avgOrderInterval": avg_order_interval,
    }


def customer_details(customer_code: str) -> dict:
    customer = db.session.query(Customer).filter_by(customer_code=customer_code).first()
    if not customer:
        raise CustomerNotFound("Customer not found", details={"customer_code": customer_code})

    total_spent, orders, last_purchase = (
        db.session.query(
            func.coalesce(func.sum(Invoice.total), 0),
            func.count(Invoice.id),
            func.max(Invoice.created_at),
        )
        .filter(Invoice.customer_id == customer.id)
        .one()
    )
    return {
        "customerCode": customer.customer_code,
        "name": customer.customer_name,
        "contact": customer.phone,
        "totalSpent": money_json(Decimal(str(total_spent))),
        "orders": int(orders),
        "lastPurchase": to_utc_z(last_purchase),
    }


def customer_summary_rows(store_id) -> list[dict]:
    """
    One row per customer of the store (including customers without invoices),
    highest spenders first. Feeds the CSV/XLSX exports.
    """
    store = require_store(store_id)
    total_spent = func.coalesce(func.sum(Invoice.total), 0).label("total_spent")
    rows = (
        db.session.query(
            Customer.customer_name,
            Customer.phone,
            func.count(Invoice.id).label("orders"),
            total_spent,
            func.max(Invoice.created_at).label("last_purchase"),
        )
        .outerjoin(Invoice, Invoice.customer_id == Customer.id)
        .filter(Customer.store_id == store.id)
        .group_by(Customer.id, Customer.customer_name, Customer.phone)
        .order_by(total_spent.desc(), Customer.id.asc())
        .all()
    )
    return [
        {
            "Customer Name": row.customer_name,
            "Phone": row.phone,
            "Total Orders": int(row.orders),
            "Total Spent": to_money(Decimal(str(row.total_spent))),
            "Last Purchase": as_utc_naive(row.last_purchase),
        }
        for row in rows
    ]


def detailed_report(store_id, range_: str = "monthly") -> dict:
    store = require_store(store_id)
    invoices = (
        db.session.query(Invoice)
        .filter(Invoice.store_id == store.id)
        .order_by(Invoice.created_at.desc(), Invoice.id.desc())
        .all()
    )
    total_revenue = sum((inv.total for inv in invoices), Decimal("0"))
    avg_value = to_money(total_revenue / len(invoices)) if invoices else Decimal("0.00")
    return {
        "storeId": store.id,
        "storeName": store.store_name,
        "range": range_,
        "totalInvoices": len(invoices),
        "totalRevenue": money_json(total_revenue),
        "avgInvoiceValue": money_json(avg_value),
        "recentInvoices": [inv.to_summary_dict() for inv in invoices[:10]],
    }
