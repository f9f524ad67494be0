# Overview: Service-layer operations for cart pricing; versioned promotion/VAT snapshots and totals.

"""
Pricing Snapshots

Active promotions and VAT settings are a cache, not authoritative state. They
are loaded into an immutable PricingSnapshot that is handed to every pricing
call, so a price can always be reproduced from (cart, snapshot_id).

The snapshot id is a digest of the snapshot contents: two loads that see the
same promotions and VAT settings produce the same id.

PricingSnapshotCache keeps the current snapshot per application and reloads it
once it is older than PROMOTION_REFRESH_SECONDS (the scheduler also refreshes
it in the background).
"""

from __future__ import annotations

import hashlib
import json
import threading
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

from flask import current_app

from ..money import apply_percent
from .promotion_service import PromotionRule, best_promotion, get_active_promotions
from . import settings_service
from poscore.time_utils import utcnow, utctoday


@dataclass(frozen=True)
class PricingSnapshot:
    snapshot_id: str
    promotions: tuple[PromotionRule, ...]
    vat_rate: int
    as_of: date
    loaded_at: datetime

    @classmethod
    def build(cls, promotions, vat_rate: int, as_of: date, loaded_at: datetime | None = None) -> "PricingSnapshot":
        promotions = tuple(promotions)
        payload = json.dumps(
            {
                "as_of": as_of.isoformat(),
                "vat_rate": vat_rate,
                "promotions": [p.to_dict() for p in promotions],
            },
            sort_keys=True,
        )
        digest = hashlib.sha256(payload.encode("utf-8")).hexdigest()[:16]
        return cls(
            snapshot_id=f"ps-{digest}",
            promotions=promotions,
            vat_rate=vat_rate,
            as_of=as_of,
            loaded_at=loaded_at or utcnow(),
        )

    def to_dict(self) -> dict:
        return {
            "snapshot_id": self.snapshot_id,
            "vat_rate": self.vat_rate,
            "as_of": self.as_of.isoformat(),
            "promotions": [p.to_dict() for p in self.promotions],
        }


EMPTY_SNAPSHOT_DATE = date(1970, 1, 1)


def empty_snapshot() -> PricingSnapshot:
    """No promotions, no VAT."""
    return PricingSnapshot.build((), 0, EMPTY_SNAPSHOT_DATE)


def load_pricing_snapshot(today: date | None = None) -> PricingSnapshot:
    today = today or utctoday()
    promotions = get_active_promotions(today)
    vat_rate = settings_service.get_vat_rate()
    return PricingSnapshot.build(promotions, vat_rate, today)


class PricingSnapshotCache:
    """Thread-safe holder for the current snapshot of one application."""

    def __init__(self, max_age_seconds: int):
        self.max_age = timedelta(seconds=max_age_seconds)
        self._lock = threading.Lock()
        self._snapshot: PricingSnapshot | None = None

    def peek(self) -> PricingSnapshot | None:
        return self._snapshot

    def is_stale(self, now: datetime | None = None) -> bool:
        snapshot = self._snapshot
        if snapshot is None:
            return True
        now = now or utcnow()
        return now - snapshot.loaded_at >= self.max_age or snapshot.as_of != now.date()

    def refresh(self) -> PricingSnapshot:
        snapshot = load_pricing_snapshot()
        with self._lock:
            self._snapshot = snapshot
        return snapshot

    def get(self) -> PricingSnapshot:
        if self.is_stale():
            return self.refresh()
        return self._snapshot


def get_snapshot_cache() -> PricingSnapshotCache:
    cache = current_app.extensions.get("poscore.pricing_cache")
    if cache is None:
        cache = PricingSnapshotCache(current_app.config.get("PROMOTION_REFRESH_SECONDS", 120))
        current_app.extensions["poscore.pricing_cache"] = cache
    return cache


def current_snapshot() -> PricingSnapshot:
    return get_snapshot_cache().get()


# =============================================================================
# CART PRICING
# =============================================================================

@dataclass(frozen=True)
class CartLine:
    sku: str
    quantity: int
    unit_price_cents: int
    category_id: int | None = None

    @property
    def line_total_cents(self) -> int:
        return self.unit_price_cents * self.quantity


@dataclass(frozen=True)
class LinePrice:
    line: CartLine
    discount_cents: int
    promotion_id: int | None

    @property
    def subtotal_cents(self) -> int:
        return self.line.line_total_cents

    def to_dict(self) -> dict:
        return {
            "sku": self.line.sku,
            "quantity": self.line.quantity,
            "unit_price_cents": self.line.unit_price_cents,
            "subtotal_cents": self.subtotal_cents,
            "discount_cents": self.discount_cents,
            "promotion_id": self.promotion_id,
        }


@dataclass(frozen=True)
class CartTotals:
    subtotal_cents: int
    discount_cents: int
    tax_cents: int
    total_cents: int
    snapshot_id: str
    lines: tuple[LinePrice, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            "subtotal_cents": self.subtotal_cents,
            "discount_cents": self.discount_cents,
            "tax_cents": self.tax_cents,
            "total_cents": self.total_cents,
            "snapshot_id": self.snapshot_id,
            "lines": [line.to_dict() for line in self.lines],
        }


def price_cart_line(sku, category_id, unit_price_cents, quantity, snapshot: PricingSnapshot) -> LinePrice:
    """Discount for one cart line under a snapshot. Pure; re-run on any quantity change."""
    line = CartLine(sku=sku, quantity=quantity, unit_price_cents=unit_price_cents, category_id=category_id)
    match = best_promotion(sku, category_id, unit_price_cents, quantity, snapshot.promotions)
    if match is None:
        return LinePrice(line=line, discount_cents=0, promotion_id=None)
    return LinePrice(line=line, discount_cents=match.discount_cents, promotion_id=match.promotion.id)


def compute_cart_totals(lines, snapshot: PricingSnapshot) -> CartTotals:
    """
    subtotal = sum(unit_price * qty)
    discount = sum(best line discount)
    tax      = (subtotal - discount) * VAT%   (half-up to the cent)
    total    = subtotal - discount + tax
    """
    priced = tuple(
        price_cart_line(line.sku, line.category_id, line.unit_price_cents, line.quantity, snapshot)
        for line in lines
    )
    subtotal = sum(p.subtotal_cents for p in priced)
    discount = sum(p.discount_cents for p in priced)
    taxable = max(subtotal - discount, 0)
    tax = apply_percent(taxable, snapshot.vat_rate) if snapshot.vat_rate > 0 else 0
    return CartTotals(
        subtotal_cents=subtotal,
        discount_cents=discount,
        tax_cents=tax,
        total_cents=taxable + tax,
        snapshot_id=snapshot.snapshot_id,
        lines=priced,
    )
