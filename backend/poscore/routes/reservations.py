# Overview: Flask API routes for stock reservations; per-cart holds and availability lookups.

from flask import Blueprint, request, jsonify, current_app

from ..errors import PosCoreError
from ..services import reservation_service


reservations_bp = Blueprint("reservations", __name__, url_prefix="/api/reservations")


@reservations_bp.put("/<transaction_id>/<sku>")
def upsert_reservation_route(transaction_id: str, sku: str):
    """
    Set the cart's hold on a SKU to an absolute quantity.

    Body: {"quantity": 3}
    Returns 409 with the available quantity when stock is short.
    """
    try:
        data = request.get_json(silent=True) or {}
        quantity = data.get("quantity")
        if quantity is None:
            return jsonify({"error": "quantity required"}), 400

        reservation = reservation_service.upsert_reservation(transaction_id, sku, quantity)
        return jsonify({"reservation": reservation.to_dict()}), 200

    except PosCoreError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to reserve stock")
        return jsonify({"error": "Internal server error"}), 500


@reservations_bp.get("/availability/<sku>")
def availability_route(sku: str):
    """Query params: quantity (default 1), transaction_id (own hold excluded)."""
    try:
        quantity = request.args.get("quantity", 1, type=int)
        transaction_id = request.args.get("transaction_id") or None
        availability = reservation_service.check_available(sku, quantity, transaction_id)
        return jsonify({"sku": sku, "availability": availability.to_dict()}), 200

    except Exception:
        current_app.logger.exception("Failed to check availability")
        return jsonify({"error": "Internal server error"}), 500


@reservations_bp.get("/<transaction_id>")
def list_reservations_route(transaction_id: str):
    try:
        rows = reservation_service.get_reservations_for_transaction(transaction_id)
        return jsonify({"reservations": [r.to_dict() for r in rows]}), 200
    except Exception:
        current_app.logger.exception("Failed to list reservations")
        return jsonify({"error": "Internal server error"}), 500


@reservations_bp.delete("/<transaction_id>/<sku>")
def remove_reservation_route(transaction_id: str, sku: str):
    try:
        removed = reservation_service.remove_reservation(transaction_id, sku)
        return jsonify({"removed": removed}), 200
    except Exception:
        current_app.logger.exception("Failed to remove reservation")
        return jsonify({"error": "Internal server error"}), 500


@reservations_bp.delete("/<transaction_id>")
def clear_reservations_route(transaction_id: str):
    try:
        removed = reservation_service.clear_for_transaction(transaction_id)
        return jsonify({"removed": removed}), 200
    except Exception:
        current_app.logger.exception("Failed to clear reservations")
        return jsonify({"error": "Internal server error"}), 500
