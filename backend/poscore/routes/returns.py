# Overview: Flask API routes for returns; invoice lookup for refund and the return commit.

from flask import Blueprint, request, jsonify, current_app

from ..errors import PosCoreError
from ..services import return_service
from ..services.return_service import ReturnData, REASON_NOT_FOUND


returns_bp = Blueprint("returns", __name__, url_prefix="/api/returns")


@returns_bp.get("/invoices/<invoice_no>")
def load_invoice_route(invoice_no: str):
    """
    Check return eligibility and load the invoice lines priced for refund.

    Returns 404 for unknown invoices and 422 when the invoice is too old or
    already returned.
    """
    try:
        eligibility = return_service.validate_invoice_for_return(invoice_no)
        if not eligibility.is_eligible:
            status = 404 if eligibility.reason == REASON_NOT_FOUND else 422
            return jsonify({"error": eligibility.message, "details": {"reason": eligibility.reason}}), status

        txn, lines = return_service.load_invoice_for_return(invoice_no)
        return jsonify({
            "invoice": return_service.invoice_summary(txn),
            "lines": [line.to_dict() for line in lines],
        }), 200

    except PosCoreError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load invoice for return")
        return jsonify({"error": "Internal server error"}), 500


@returns_bp.post("")
def create_return_route():
    """
    Commit a return.

    Body:
    {
      "invoice_no": "0000001",
      "cashier_id": 3,
      "supervisor_id": 1,
      "refund_total_cents": 10000,
      "items": [{"invoice_item_id": 1, "qty_returned": 1, "refund_amount_cents": 10000,
                 "in_store_inventory_id": 1}]
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        result = return_service.commit_return(ReturnData.from_dict(data))
        return jsonify({"return": result.to_dict()}), 201

    except PosCoreError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to process return")
        return jsonify({"error": "Internal server error"}), 500


@returns_bp.get("/<int:return_id>")
def get_return_route(return_id: int):
    try:
        ret = return_service.get_return(return_id)
        if not ret:
            return jsonify({"error": "Return not found"}), 404
        return jsonify({"return": ret.to_dict(include_lines=True)}), 200
    except Exception:
        current_app.logger.exception("Failed to load return")
        return jsonify({"error": "Internal server error"}), 500
