from __future__ import annotations

from ..extensions import db
from poscore.time_utils import to_utc_z


class PosTransaction(db.Model):
    """
    Committed register sale.

    Created exactly once per successful checkout and never mutated afterwards.
    invoice_no is the human-facing identifier printed on the receipt.
    """
    __tablename__ = "pos_transactions"
    __table_args__ = (
        db.UniqueConstraint("invoice_no", name="uq_pos_transactions_invoice_no"),
        db.Index("ix_pos_transactions_date", "transaction_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    invoice_no = db.Column(db.String(32), nullable=False)

    transaction_date = db.Column(db.DateTime(timezone=True), nullable=False)
    payment_method = db.Column(db.String(32), nullable=False)
    staff_id = db.Column(db.Integer, nullable=False, index=True)

    # All amounts in cents
    subtotal_cents = db.Column(db.Integer, nullable=False)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    total_amount_cents = db.Column(db.Integer, nullable=False)
    received_amount_cents = db.Column(db.Integer, nullable=False)
    change_cents = db.Column(db.Integer, nullable=False, default=0)

    # Only for non-cash tenders (e-wallet reference)
    payment_ref_no = db.Column(db.String(128), nullable=True)

    # Pricing snapshot used to compute discount/tax (reproducibility)
    pricing_snapshot_id = db.Column(db.String(64), nullable=True)

    lines = db.relationship(
        "PosTransactionLine",
        back_populates="transaction",
        lazy=True,
        order_by="PosTransactionLine.id",
    )

    def to_dict(self, include_lines: bool = False) -> dict:
        data = {
            "id": self.id,
            "invoice_no": self.invoice_no,
            "transaction_date": to_utc_z(self.transaction_date),
            "payment_method": self.payment_method,
            "staff_id": self.staff_id,
            "subtotal_cents": self.subtotal_cents,
            "discount_cents": self.discount_cents,
            "tax_cents": self.tax_cents,
            "total_amount_cents": self.total_amount_cents,
            "received_amount_cents": self.received_amount_cents,
            "change_cents": self.change_cents,
            "payment_ref_no": self.payment_ref_no,
            "pricing_snapshot_id": self.pricing_snapshot_id,
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class PosTransactionLine(db.Model):
    """One cart line of a committed sale (the invoice item)."""
    __tablename__ = "pos_transaction_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    pos_transaction_id = db.Column(db.Integer, db.ForeignKey("pos_transactions.id"), nullable=False, index=True)

    sku = db.Column(db.String(64), nullable=False)
    order_quantity = db.Column(db.Integer, nullable=False)
    # On-hand quantity read under the checkout lock, before the decrement
    stock_quantity_at_sale = db.Column(db.Integer, nullable=False)

    unit_price_cents = db.Column(db.Integer, nullable=False)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    subtotal_cents = db.Column(db.Integer, nullable=False)
    promotion_id = db.Column(db.Integer, nullable=True)

    sale_channel = db.Column(db.String(16), nullable=False)
    online_inventory_item_id = db.Column(db.Integer, db.ForeignKey("online_variant_stock.id"), nullable=True)
    in_store_inventory_item_id = db.Column(db.Integer, db.ForeignKey("in_store_stock.id"), nullable=True)

    transaction = db.relationship("PosTransaction", back_populates="lines")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "pos_transaction_id": self.pos_transaction_id,
            "sku": self.sku,
            "order_quantity": self.order_quantity,
            "stock_quantity_at_sale": self.stock_quantity_at_sale,
            "unit_price_cents": self.unit_price_cents,
            "discount_cents": self.discount_cents,
            "subtotal_cents": self.subtotal_cents,
            "promotion_id": self.promotion_id,
            "sale_channel": self.sale_channel,
            "online_inventory_item_id": self.online_inventory_item_id,
            "in_store_inventory_item_id": self.in_store_inventory_item_id,
        }
