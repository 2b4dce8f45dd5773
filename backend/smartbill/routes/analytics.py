# Overview: Flask API routes for customer analytics and exports; parses input and returns JSON responses.

"""
Customer analytics routes.

Every store-level endpoint takes `storeId` as a query parameter; a missing
id answers 400 and an unknown store 404.
"""

from flask import Blueprint, Response, current_app, jsonify, request

from ..errors import BillingError, error_response
from ..services import analytics_service, export_service


analytics_bp = Blueprint("analytics", __name__, url_prefix="/api")


def _store_id_arg():
    return request.args.get("storeId")


@analytics_bp.get("/customers")
def list_customers_route():
    try:
        customers = analytics_service.list_customers(_store_id_arg())
    except BillingError as e:
        return error_response(e)

    return jsonify({
        "storeId": int(_store_id_arg()),
        "totalCustomers": len(customers),
        "customers": [c.to_dict() for c in customers],
        "message": "Customers fetched successfully",
    }), 200


@analytics_bp.get("/customers/repeat")
def repeat_customers_route():
    try:
        count = analytics_service.count_repeat_customers(_store_id_arg())
    except BillingError as e:
        return error_response(e)

    return jsonify({
        "storeId": int(_store_id_arg()),
        "repeatCustomers": count,
        "message": "Repeat customers fetched successfully",
    }), 200


@analytics_bp.get("/customers/new")
def new_customers_route():
    try:
        count = analytics_service.count_new_customers(_store_id_arg())
    except BillingError as e:
        return error_response(e)

    return jsonify({
        "storeId": int(_store_id_arg()),
        "newCustomers": count,
        "message": "New customers (last 30 days) fetched successfully",
    }), 200


@analytics_bp.get("/invoice/average-value")
def average_invoice_value_route():
    try:
        avg = analytics_service.average_invoice_value(_store_id_arg())
    except BillingError as e:
        return error_response(e)

    return jsonify({
        "storeId": int(_store_id_arg()),
        "avgInvoiceValue": float(avg),
        "message": "Average invoice value fetched successfully",
    }), 200


@analytics_bp.get("/customers/spending-trends")
def spending_trends_route():
    """Query params: storeId, range=daily|monthly (default monthly)."""
    try:
        trends = analytics_service.spending_trends(_store_id_arg(), request.args.get("range", "monthly"))
    except BillingError as e:
        return error_response(e)

    trends["message"] = "Customer spending trends fetched successfully"
    return jsonify(trends), 200


@analytics_bp.get("/customers/top-spenders")
def top_spenders_route():
    """Query params: storeId, limit (1-100, default 5)."""
    limit = request.args.get("limit")
    try:
        top = analytics_service.top_customers(_store_id_arg(), limit)
    except BillingError as e:
        return error_response(e)

    return jsonify({
        "storeId": int(_store_id_arg()),
        "topCustomers": top,
        "message": f"Top {len(top)} customers fetched successfully",
    }), 200


@analytics_bp.get("/customers/loyalty-insights")
def loyalty_insights_route():
    try:
        return jsonify(analytics_service.loyalty_insights(_store_id_arg())), 200
    except BillingError as e:
        return error_response(e)


@analytics_bp.get("/customers/detailes/<customer_code>")
def customer_details_route(customer_code: str):
    try:
        return jsonify(analytics_service.customer_details(customer_code)), 200
    except BillingError as e:
        return error_response(e)


@analytics_bp.get("/analytics/exports")
def export_analytics_route():
    """
    Download per-customer analytics.

    Query params: storeId, format=csv|xlsx (default csv)
    """
    try:
        rows = analytics_service.customer_summary_rows(_store_id_arg())
        if not rows:
            return jsonify({
                "success": False,
                "error": "No analytics data found for this store",
                "reason": "NO_DATA",
            }), 404
        body, mimetype, ext = export_service.export_rows(rows, request.args.get("format", "csv"))
    except BillingError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to export analytics data")
        return jsonify({"success": False, "error": "Internal server error"}), 500

    filename = f"analytics_{int(_store_id_arg())}.{ext}"
    return Response(
        body,
        mimetype=mimetype,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@analytics_bp.get("/analytics/detailes/report")
def detailed_report_route():
    """Store report as JSON: totals plus the 10 most recent invoices."""
    try:
        report = analytics_service.detailed_report(_store_id_arg(), request.args.get("range", "monthly"))
    except BillingError as e:
        return error_response(e)

    return jsonify(report), 200
