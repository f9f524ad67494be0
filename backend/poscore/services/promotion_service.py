from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from ..extensions import db
from ..models import Promotion
from ..models.promotions import (
    PROMO_TYPES,
    PROMO_TYPE_PERCENTAGE,
    PROMO_TYPE_FIXED,
    APPLIES_TO_ALL,
    APPLIES_TO_CATEGORY,
    APPLIES_TO_PRODUCT,
    APPLICATION_AUTOMATIC,
)
from ..money import apply_bps
from poscore.time_utils import utctoday


REGISTER_CHANNELS = ("in-store", "both")


@dataclass(frozen=True)
class PromotionRule:
    """Immutable copy of a promotion row, safe to share between threads."""
    id: int
    title: str
    promo_type: str
    discount_value: int
    min_purchase_cents: int
    applies_to_type: str
    applies_to_id: str | None
    sale_channel: str = "both"
    activation_date: date | None = None
    expiration_date: date | None = None

    @classmethod
    def from_model(cls, promo: Promotion) -> "PromotionRule":
        return cls(
            id=promo.id,
            title=promo.title,
            promo_type=promo.promo_type,
            discount_value=int(promo.discount_value or 0),
            min_purchase_cents=int(promo.min_purchase_cents or 0),
            applies_to_type=promo.applies_to_type,
            applies_to_id=promo.applies_to_id,
            sale_channel=promo.sale_channel,
            activation_date=promo.activation_date,
            expiration_date=promo.expiration_date,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "promo_type": self.promo_type,
            "discount_value": self.discount_value,
            "min_purchase_cents": self.min_purchase_cents,
            "applies_to_type": self.applies_to_type,
            "applies_to_id": self.applies_to_id,
        }


@dataclass(frozen=True)
class PromotionMatch:
    promotion: PromotionRule
    discount_cents: int


def applies_to_line(rule: PromotionRule, sku: str, category_id: int | None) -> bool:
    if rule.applies_to_type == APPLIES_TO_ALL:
        return True
    if rule.applies_to_id is None:
        return False
    if rule.applies_to_type == APPLIES_TO_CATEGORY:
        return category_id is not None and str(rule.applies_to_id) == str(category_id)
    if rule.applies_to_type == APPLIES_TO_PRODUCT:
        return str(rule.applies_to_id) == str(sku)
    return False


def discount_for_line(rule: PromotionRule, line_total_cents: int) -> int:
    """Line discount in cents; free shipping is not a line discount."""
    if rule.promo_type == PROMO_TYPE_PERCENTAGE:
        return apply_bps(line_total_cents, rule.discount_value)
    if rule.promo_type == PROMO_TYPE_FIXED:
        return min(rule.discount_value, line_total_cents)
    return 0


def best_promotion(sku, category_id, unit_price_cents, quantity, promotions) -> PromotionMatch | None:
    """
    Pick the promotion giving the largest discount on one cart line.

    Only strictly larger discounts replace the current best, so ties keep the
    promotion encountered first and a zero discount never wins.
    """
    line_total = int(unit_price_cents) * int(quantity)
    best = None
    for rule in promotions:
        if not applies_to_line(rule, sku, category_id):
            continue
        if line_total < rule.min_purchase_cents:
            continue
        discount = discount_for_line(rule, line_total)
        if discount > (best.discount_cents if best else 0):
            best = PromotionMatch(promotion=rule, discount_cents=discount)
    return best


# =============================================================================
# PERSISTENCE
# =============================================================================

def get_active_promotions(today: date | None = None) -> list[PromotionRule]:
    """Automatic in-store/both promotions whose window contains today, oldest first."""
    today = today or utctoday()
    rows = (
        db.session.query(Promotion)
        .filter(
            Promotion.application_method == APPLICATION_AUTOMATIC,
            Promotion.sale_channel.in_(REGISTER_CHANNELS),
            Promotion.activation_date <= today,
            Promotion.expiration_date >= today,
        )
        .order_by(Promotion.id.asc())
        .all()
    )
    return [PromotionRule.from_model(p) for p in rows]


def create_promotion(data: dict) -> Promotion:
    promo_type = data["promo_type"]
    if promo_type not in PROMO_TYPES:
        raise ValueError(f"Unknown promotion type: {promo_type!r}")
    applies_to_type = data.get("applies_to_type", APPLIES_TO_ALL)
    applies_to_id = data.get("applies_to_id")
    if applies_to_type != APPLIES_TO_ALL and applies_to_id is None:
        raise ValueError("applies_to_id is required for category and product promotions")

    promo = Promotion(
        title=data["title"],
        promo_type=promo_type,
        discount_value=int(data.get("discount_value", 0)),
        min_purchase_cents=int(data.get("min_purchase_cents", 0)),
        sale_channel=data.get("sale_channel", "both"),
        application_method=data.get("application_method", APPLICATION_AUTOMATIC),
        activation_date=data["activation_date"],
        expiration_date=data["expiration_date"],
        applies_to_type=applies_to_type,
        applies_to_id=str(applies_to_id) if applies_to_id is not None else None,
    )
    db.session.add(promo)
    db.session.commit()
    return promo
