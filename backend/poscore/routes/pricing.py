# Overview: Flask API routes for cart pricing; prices lines against the current pricing snapshot.

from flask import Blueprint, request, jsonify, current_app

from ..errors import PosCoreError
from ..services.pricing_service import compute_cart_totals, current_snapshot, get_snapshot_cache
from ..services.checkout_service import cart_lines_from_payload


pricing_bp = Blueprint("pricing", __name__, url_prefix="/api/pricing")


@pricing_bp.post("/lines")
def price_lines_route():
    """
    Price cart lines.

    Body: {"lines": [{"sku": "A", "quantity": 2, "unit_price_cents": 10000}]}
    Returns per-line discounts plus cart totals and the snapshot id used.
    """
    try:
        data = request.get_json(silent=True) or {}
        lines = cart_lines_from_payload(data.get("lines") or [])
        snapshot = current_snapshot()
        totals = compute_cart_totals(lines, snapshot)
        return jsonify({"pricing": totals.to_dict()}), 200

    except PosCoreError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to price cart lines")
        return jsonify({"error": "Internal server error"}), 500


@pricing_bp.get("/snapshot")
def get_snapshot_route():
    try:
        return jsonify({"snapshot": current_snapshot().to_dict()}), 200
    except Exception:
        current_app.logger.exception("Failed to load pricing snapshot")
        return jsonify({"error": "Internal server error"}), 500


@pricing_bp.post("/snapshot/refresh")
def refresh_snapshot_route():
    """Reload promotions and VAT now instead of waiting for the refresh interval."""
    try:
        snapshot = get_snapshot_cache().refresh()
        return jsonify({"snapshot": snapshot.to_dict()}), 200
    except Exception:
        current_app.logger.exception("Failed to refresh pricing snapshot")
        return jsonify({"error": "Internal server error"}), 500
