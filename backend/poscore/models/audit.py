from __future__ import annotations

from ..extensions import db
from poscore.time_utils import to_utc_z


class ActivityLog(db.Model):
    """
    Append-only staff activity record.

    IMMUTABLE: Records are never updated or deleted.
    """
    __tablename__ = "activity_log"
    __table_args__ = (
        db.Index("ix_activity_log_staff_created", "staff_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    staff_id = db.Column(db.Integer, nullable=False)
    activity_type = db.Column(db.String(64), nullable=False, index=True)
    details = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "staff_id": self.staff_id,
            "activity_type": self.activity_type,
            "details": self.details,
            "created_at": to_utc_z(self.created_at),
        }


class TransactionLog(db.Model):
    """
    Cross-channel transaction index (TRX-YYYYMMDD-NNNNN).

    One row per committed sale or return, written inside the same DB
    transaction as the document it points at.
    """
    __tablename__ = "transaction_log"
    __table_args__ = (
        db.UniqueConstraint("transaction_id", name="uq_transaction_log_transaction_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.String(32), nullable=False)
    pos_transaction_id = db.Column(db.Integer, db.ForeignKey("pos_transactions.id"), nullable=True, index=True)
    return_id = db.Column(db.Integer, db.ForeignKey("pos_returns.id"), nullable=True, index=True)
    channel = db.Column(db.String(16), nullable=False, default="in-store")
    type = db.Column(db.String(16), nullable=False)  # sale, return
    status = db.Column(db.String(16), nullable=False, default="completed")
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "pos_transaction_id": self.pos_transaction_id,
            "return_id": self.return_id,
            "channel": self.channel,
            "type": self.type,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }
