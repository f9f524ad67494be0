from __future__ import annotations

from ..extensions import db
from poscore.time_utils import to_utc_z


class PosReturn(db.Model):
    """
    Committed refund against one invoice.

    WHY the unique invoice_no: the existence check in the returns flow is the
    first duplicate guard, the constraint is the one that holds when two
    returns for the same invoice race past that check.
    """
    __tablename__ = "pos_returns"
    __table_args__ = (
        db.UniqueConstraint("return_no", name="uq_pos_returns_return_no"),
        db.UniqueConstraint("invoice_no", name="uq_pos_returns_invoice_no"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    return_no = db.Column(db.String(32), nullable=False)
    invoice_no = db.Column(db.String(32), db.ForeignKey("pos_transactions.invoice_no"), nullable=False)

    cashier_id = db.Column(db.Integer, nullable=False, index=True)
    supervisor_id = db.Column(db.Integer, nullable=False, index=True)

    refund_total_cents = db.Column(db.Integer, nullable=False)
    refund_method = db.Column(db.String(32), nullable=False, default="Cash")
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False)

    lines = db.relationship("PosReturnLine", back_populates="pos_return", lazy=True, order_by="PosReturnLine.id")

    def to_dict(self, include_lines: bool = False) -> dict:
        data = {
            "id": self.id,
            "return_no": self.return_no,
            "invoice_no": self.invoice_no,
            "cashier_id": self.cashier_id,
            "supervisor_id": self.supervisor_id,
            "refund_total_cents": self.refund_total_cents,
            "refund_method": self.refund_method,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class PosReturnLine(db.Model):
    __tablename__ = "pos_return_lines"
    __table_args__ = (
        db.CheckConstraint("qty_returned > 0", name="ck_pos_return_lines_qty_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    return_id = db.Column(db.Integer, db.ForeignKey("pos_returns.id"), nullable=False, index=True)
    invoice_item_id = db.Column(db.Integer, db.ForeignKey("pos_transaction_lines.id"), nullable=False)

    online_inventory_item_id = db.Column(db.Integer, db.ForeignKey("online_variant_stock.id"), nullable=True)
    in_store_inventory_id = db.Column(db.Integer, db.ForeignKey("in_store_stock.id"), nullable=True)

    qty_returned = db.Column(db.Integer, nullable=False)
    refund_amount_cents = db.Column(db.Integer, nullable=False)

    pos_return = db.relationship("PosReturn", back_populates="lines")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "return_id": self.return_id,
            "invoice_item_id": self.invoice_item_id,
            "online_inventory_item_id": self.online_inventory_item_id,
            "in_store_inventory_id": self.in_store_inventory_id,
            "qty_returned": self.qty_returned,
            "refund_amount_cents": self.refund_amount_cents,
        }
