from __future__ import annotations

from ..extensions import db
from poscore.time_utils import to_utc_z


class StockReservation(db.Model):
    """
    Time-boxed hold on stock for one cart.

    INVARIANTS:
    - Exactly one of online_inventory_item_id / in_store_inventory_id is set.
    - At most one row per (transaction_id, item): rows are upserted, never appended.
    - A row counts against availability only while expires_at > now.
    """
    __tablename__ = "stock_reservations"
    __table_args__ = (
        db.UniqueConstraint("transaction_id", "online_inventory_item_id", name="uq_reservations_tx_online_item"),
        db.UniqueConstraint("transaction_id", "in_store_inventory_id", name="uq_reservations_tx_in_store_item"),
        db.CheckConstraint(
            "(online_inventory_item_id IS NULL) <> (in_store_inventory_id IS NULL)",
            name="ck_reservations_single_item_ref",
        ),
        db.CheckConstraint("quantity > 0", name="ck_reservations_quantity_positive"),
        db.Index("ix_reservations_online_expires", "online_inventory_item_id", "expires_at"),
        db.Index("ix_reservations_in_store_expires", "in_store_inventory_id", "expires_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Cart session key
    transaction_id = db.Column(db.String(64), nullable=False, index=True)

    online_inventory_item_id = db.Column(db.Integer, db.ForeignKey("online_variant_stock.id"), nullable=True)
    in_store_inventory_id = db.Column(db.Integer, db.ForeignKey("in_store_stock.id"), nullable=True)

    quantity = db.Column(db.Integer, nullable=False)
    channel = db.Column(db.String(16), nullable=False)

    reserved_at = db.Column(db.DateTime(timezone=True), nullable=False)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "online_inventory_item_id": self.online_inventory_item_id,
            "in_store_inventory_id": self.in_store_inventory_id,
            "quantity": self.quantity,
            "channel": self.channel,
            "reserved_at": to_utc_z(self.reserved_at),
            "expires_at": to_utc_z(self.expires_at),
        }
