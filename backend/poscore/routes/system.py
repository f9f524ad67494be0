# backend/poscore/routes/system.py
"""
System health endpoint.

Reports database connectivity, pending expired reservations and the age of
the cached pricing snapshot.
"""

import time
from flask import Blueprint, current_app

from ..extensions import db
from ..models import StockReservation, DocumentSequence
from poscore.time_utils import utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    start_time = time.time()
    try:
        sequence_count = db.session.query(DocumentSequence).count()
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {"document_sequences": sequence_count},
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


def check_reservation_health() -> dict:
    """Expired holds waiting for the sweep; a growing number means the sweep is not running."""
    start_time = time.time()
    try:
        now = utcnow()
        active = db.session.query(StockReservation).filter(StockReservation.expires_at > now).count()
        expired = db.session.query(StockReservation).filter(StockReservation.expires_at <= now).count()
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "active_reservations": active,
                "expired_pending_cleanup": expired,
                "scheduler_enabled": bool(current_app.config.get("SCHEDULER_ENABLED")),
            },
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Reservation health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Reservation store error",
        }


def check_pricing_health() -> dict:
    cache = current_app.extensions.get("poscore.pricing_cache")
    snapshot = cache.peek() if cache is not None else None
    if snapshot is None:
        return {"status": "degraded", "warning": "Pricing snapshot not loaded yet"}
    return {
        "status": "healthy",
        "details": {
            "snapshot_id": snapshot.snapshot_id,
            "loaded_at": snapshot.loaded_at.isoformat() + "Z",
            "promotions": len(snapshot.promotions),
        },
    }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: healthy or degraded
    - 503: database or reservation store unreachable
    """
    start_time = time.time()

    database_health = check_database_health()
    reservation_health = check_reservation_health()
    pricing_health = check_pricing_health()

    all_checks = [database_health, reservation_health, pricing_health]
    unhealthy_count = sum(1 for check in all_checks if check["status"] == "unhealthy")
    degraded_count = sum(1 for check in all_checks if check["status"] == "degraded")

    if unhealthy_count > 0:
        overall_status = "unhealthy"
        http_status = 503
    elif degraded_count > 0:
        overall_status = "degraded"
        http_status = 200
    else:
        overall_status = "healthy"
        http_status = 200

    total_elapsed_ms = (time.time() - start_time) * 1000

    response = {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round(total_elapsed_ms, 2),
        "checks": {
            "database": database_health,
            "reservations": reservation_health,
            "pricing": pricing_health,
        },
    }

    return response, http_status
