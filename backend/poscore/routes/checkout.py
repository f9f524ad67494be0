# Overview: Flask API routes for register checkout; parses the cart and payment and commits the sale.

from flask import Blueprint, request, jsonify, current_app

from ..errors import PosCoreError
from ..money import to_cents
from ..services import checkout_service
from ..services.checkout_service import CheckoutValidationError, PaymentInfo


checkout_bp = Blueprint("checkout", __name__, url_prefix="/api/checkout")


def _payment_from_payload(data: dict) -> PaymentInfo:
    payment = data.get("payment") or {}
    if not isinstance(payment, dict):
        raise CheckoutValidationError("payment must be an object")

    if "amount_received_cents" in payment:
        received = payment["amount_received_cents"]
    else:
        try:
            received = to_cents(str(payment.get("amount_received", "")))
        except ValueError:
            raise CheckoutValidationError("Invalid amount received")
    if isinstance(received, bool) or not isinstance(received, int):
        raise CheckoutValidationError("Invalid amount received")

    return PaymentInfo(
        method=payment.get("method") or "",
        amount_received_cents=received,
        reference_no=payment.get("reference_no"),
    )


@checkout_bp.post("")
def checkout_route():
    """
    Commit a register sale.

    Body:
    {
      "staff_id": 1,
      "cart_transaction_id": "cart-123",
      "lines": [{"sku": "A", "quantity": 2, "unit_price_cents": 10000}],
      "payment": {"method": "Cash", "amount_received_cents": 30000}
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        lines = checkout_service.cart_lines_from_payload(data.get("lines") or [])
        payment = _payment_from_payload(data)

        result = checkout_service.commit_sale(
            lines,
            payment,
            data.get("staff_id"),
            cart_transaction_id=data.get("cart_transaction_id"),
        )
        return jsonify({"checkout": result.to_dict()}), 201

    except PosCoreError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to commit checkout")
        return jsonify({"error": "Internal server error"}), 500


@checkout_bp.get("/invoices/<invoice_no>")
def get_invoice_route(invoice_no: str):
    try:
        txn = checkout_service.get_transaction_by_invoice(invoice_no)
        if not txn:
            return jsonify({"error": "Invoice not found"}), 404
        return jsonify({"transaction": txn.to_dict(include_lines=True)}), 200
    except Exception:
        current_app.logger.exception("Failed to load invoice")
        return jsonify({"error": "Internal server error"}), 500
