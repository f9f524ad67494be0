# Overview: Service-layer operations for the audit sink; activity log and transaction log appends.

from __future__ import annotations

import logging

from flask import current_app, has_app_context
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import ActivityLog, TransactionLog
from .sequence_service import next_transaction_log_id
"""
Audit Invariants (authoritative)

- activity_log and transaction_log are append-only (no updates/deletes).
- Transaction log rows are written inside the same DB transaction as the sale
  or return they index; a failure there fails the commit.
- Activity entries are best-effort: each append runs in a SAVEPOINT and a
  failure is logged as a warning without touching the surrounding unit of work.
"""

ACTIVITY_SALE = "sale"
ACTIVITY_RETURN_AUTHORIZATION = "return_authorization"
ACTIVITY_RETURN_PROCESSING = "returns_refunds"


def _logger() -> logging.Logger:
    if has_app_context():
        return current_app.logger
    return logging.getLogger(__name__)


def append_activity(staff_id: int, activity_type: str, details: str | None = None) -> ActivityLog | None:
    """
    Append a staff activity record without risking the caller's transaction.

    Returns the new row, or None when the append failed (already logged).
    """
    savepoint = db.session.begin_nested()
    try:
        entry = ActivityLog(staff_id=staff_id, activity_type=activity_type, details=details)
        db.session.add(entry)
        db.session.flush()
        savepoint.commit()
        return entry
    except SQLAlchemyError:
        savepoint.rollback()
        _logger().warning(
            "Failed to append activity log entry (staff_id=%s, type=%s)",
            staff_id,
            activity_type,
            exc_info=True,
        )
        return None


def append_transaction_log(
    *,
    type: str,
    pos_transaction_id: int | None = None,
    return_id: int | None = None,
    channel: str = "in-store",
    status: str = "completed",
) -> TransactionLog:
    """Append a TRX-YYYYMMDD-NNNNN row. Does not commit."""
    entry = TransactionLog(
        transaction_id=next_transaction_log_id(),
        pos_transaction_id=pos_transaction_id,
        return_id=return_id,
        channel=channel,
        type=type,
        status=status,
    )
    db.session.add(entry)
    db.session.flush()
    return entry


def list_activity(staff_id: int | None = None, activity_type: str | None = None, limit: int = 100) -> list[ActivityLog]:
    q = db.session.query(ActivityLog)
    if staff_id is not None:
        q = q.filter(ActivityLog.staff_id == staff_id)
    if activity_type:
        q = q.filter(ActivityLog.activity_type == activity_type)
    return q.order_by(ActivityLog.id.desc()).limit(limit).all()
