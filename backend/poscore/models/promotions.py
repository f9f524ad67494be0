from __future__ import annotations

from ..extensions import db
from poscore.time_utils import to_utc_z


PROMO_TYPE_PERCENTAGE = "percentage"
PROMO_TYPE_FIXED = "fixed"
PROMO_TYPE_FREE_SHIPPING = "free_shipping"
PROMO_TYPES = (PROMO_TYPE_PERCENTAGE, PROMO_TYPE_FIXED, PROMO_TYPE_FREE_SHIPPING)

APPLIES_TO_ALL = "all"
APPLIES_TO_CATEGORY = "category"
APPLIES_TO_PRODUCT = "product"

APPLICATION_AUTOMATIC = "automatic_discount"
APPLICATION_VOUCHER = "voucher_code"


class Promotion(db.Model):
    """
    Promotions and discounts.

    Only automatic discounts for the in-store or both channels, inside their
    activation window, are priced at the register. Voucher-code promotions are
    stored but never applied automatically.

    discount_value: basis points for percentage, cents for fixed,
    ignored for free_shipping.
    applies_to_id: category id (as text) or product SKU; NULL for "all".
    """
    __tablename__ = "promotions"
    __table_args__ = (
        db.Index("ix_promotions_active_window", "application_method", "activation_date", "expiration_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    title = db.Column(db.String(255), nullable=False)

    promo_type = db.Column(db.String(32), nullable=False)  # percentage, fixed, free_shipping
    discount_value = db.Column(db.Integer, nullable=False, default=0)
    min_purchase_cents = db.Column(db.Integer, nullable=False, default=0)

    sale_channel = db.Column(db.String(16), nullable=False, default="both")  # in-store, online, both
    application_method = db.Column(db.String(32), nullable=False, default=APPLICATION_AUTOMATIC)

    activation_date = db.Column(db.Date, nullable=False)
    expiration_date = db.Column(db.Date, nullable=False)

    applies_to_type = db.Column(db.String(16), nullable=False, default=APPLIES_TO_ALL)  # all, category, product
    applies_to_id = db.Column(db.String(64), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "promo_type": self.promo_type,
            "discount_value": self.discount_value,
            "min_purchase_cents": self.min_purchase_cents,
            "sale_channel": self.sale_channel,
            "application_method": self.application_method,
            "activation_date": self.activation_date.isoformat() if self.activation_date else None,
            "expiration_date": self.expiration_date.isoformat() if self.expiration_date else None,
            "applies_to_type": self.applies_to_type,
            "applies_to_id": self.applies_to_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
