# Overview: Flask API routes for invoice operations; parses input and returns JSON responses.

# backend/smartbill/routes/invoices.py
"""Invoice API routes"""

from flask import Blueprint, current_app, jsonify, request

from ..errors import BillingError, error_response
from ..services import invoice_service


invoices_bp = Blueprint("invoices", __name__, url_prefix="/api")


@invoices_bp.post("/invoices")
def create_invoice_route():
    """
    Create an invoice from a cart.

    Body: {storeId, customerName, phone?, items: [{productId, qty}],
           paymentMethod, discount?}

    Prices come from the catalog; a `price` on an item is ignored.
    """
    try:
        data = request.get_json(silent=True) or {}

        result = invoice_service.create_invoice(
            store_id=data.get("storeId"),
            customer_name=data.get("customerName"),
            phone=data.get("phone"),
            items=data.get("items"),
            payment_method=data.get("paymentMethod"),
            discount=data.get("discount"),
        )

        body = result.to_dict()
        body["message"] = "Invoice created successfully with overall discount"
        return jsonify(body), 201

    except BillingError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create invoice")
        return jsonify({"success": False, "error": "Internal server error"}), 500


@invoices_bp.get("/invoices/<int:invoice_id>")
def get_invoice_route(invoice_id: int):
    """Get invoice with its line items (product names joined in)."""
    try:
        invoice = invoice_service.get_invoice(invoice_id)
    except BillingError as e:
        return error_response(e)

    payload = invoice.to_dict()
    payload["items"] = [item.to_dict() for item in invoice.items]
    return jsonify({"success": True, "invoice": payload}), 200


@invoices_bp.get("/invoices/<int:invoice_id>/print")
def print_invoice_route(invoice_id: int):
    """Printable invoice data (header, lines, totals)."""
    try:
        return jsonify(invoice_service.printable_invoice(invoice_id)), 200
    except BillingError as e:
        return error_response(e)


@invoices_bp.get("/stores/<int:store_id>/invoices")
def list_store_invoices_route(store_id: int):
    invoices = invoice_service.list_store_invoices(store_id)
    return jsonify({
        "success": True,
        "count": len(invoices),
        "invoices": [inv.to_summary_dict() for inv in invoices],
    }), 200


@invoices_bp.patch("/invoices/<int:invoice_id>/status")
def update_invoice_status_route(invoice_id: int):
    """Body: {"status": "paid" | "unpaid"}"""
    try:
        data = request.get_json(silent=True) or {}
        invoice = invoice_service.update_invoice_status(invoice_id, data.get("status"))
        return jsonify({
            "success": True,
            "message": "Status updated successfully",
            "data": {"id": invoice.id, "status": invoice.status},
        }), 200

    except BillingError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update invoice status")
        return jsonify({"success": False, "error": "Internal server error"}), 500
