# Overview: Service-layer operations for stock reservations; per-cart holds with expiry.

"""
Stock Reservation Store

WHY: Two carts looking at the last unit must not both be allowed to sell it.
Each cart (identified by its transaction_id) holds a time-boxed reservation
per SKU; availability for any cart is physical stock minus everybody else's
unexpired holds.

SEMANTICS:
- upsert_reservation() SETS the cart's hold to an absolute quantity (not a
  delta) and pushes expires_at to now + TTL.
- A cart's own hold never counts against itself.
- Reservations stop counting the moment expires_at <= now, whether or not the
  sweep has physically removed them yet.

CONCURRENCY:
The availability check and the write happen in ONE write-locked unit of work
(BEGIN IMMEDIATE on SQLite, SELECT ... FOR UPDATE on the stock row elsewhere),
so two concurrent upserts on the same SKU from different carts are serialized
and the second sees the first's hold. Lock contention is retried with backoff
and then surfaces as an error; it never silently succeeds.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from flask import current_app, has_app_context
from sqlalchemy import func

from ..extensions import db
from ..models import StockReservation
from ..models.inventory import STOCK_TABLE_ONLINE
from ..errors import AvailabilityError, ValidationError
from .concurrency import begin_write_transaction, run_with_retry
from .inventory_service import InventoryItemRef, resolve_sku, get_stock_quantity
from poscore.time_utils import utcnow


DEFAULT_TTL_MINUTES = 15


class ReservationError(ValidationError):
    """Raised for invalid reservation requests."""
    pass


@dataclass(frozen=True)
class StockAvailability:
    is_available: bool
    total_stock: int
    reserved_quantity: int
    available_stock: int
    message: str

    @classmethod
    def available(cls, total_stock: int, reserved_quantity: int, available_stock: int) -> "StockAvailability":
        return cls(True, total_stock, reserved_quantity, available_stock, "Stock available")

    @classmethod
    def unavailable(cls, total_stock: int, reserved_quantity: int, available_stock: int, message: str) -> "StockAvailability":
        return cls(False, total_stock, reserved_quantity, available_stock, message)

    def to_dict(self) -> dict:
        return {
            "is_available": self.is_available,
            "total_stock": self.total_stock,
            "reserved_quantity": self.reserved_quantity,
            "available_stock": self.available_stock,
            "message": self.message,
        }


def reservation_ttl() -> timedelta:
    minutes = DEFAULT_TTL_MINUTES
    if has_app_context():
        minutes = current_app.config.get("RESERVATION_TTL_MINUTES", DEFAULT_TTL_MINUTES)
    return timedelta(minutes=minutes)


def _item_column(item: InventoryItemRef):
    if item.stock_table == STOCK_TABLE_ONLINE:
        return StockReservation.online_inventory_item_id
    return StockReservation.in_store_inventory_id


def reserved_for_item(item: InventoryItemRef, exclude_transaction_id: str | None, now: datetime) -> int:
    """Unexpired holds on a resolved item, optionally excluding one cart."""
    column = _item_column(item)
    q = db.session.query(func.coalesce(func.sum(StockReservation.quantity), 0)).filter(
        column == item.inventory_item_id,
        StockReservation.expires_at > now,
    )
    if exclude_transaction_id is not None:
        q = q.filter(StockReservation.transaction_id != exclude_transaction_id)
    return int(q.scalar() or 0)


def _check_item(
    item: InventoryItemRef,
    requested_qty: int,
    exclude_transaction_id: str | None,
    now: datetime,
    *,
    for_update: bool = False,
) -> StockAvailability:
    total_stock = get_stock_quantity(item.stock_table, item.inventory_item_id, for_update=for_update)
    reserved = reserved_for_item(item, exclude_transaction_id, now)
    available_stock = total_stock - reserved

    if available_stock >= requested_qty:
        return StockAvailability.available(total_stock, reserved, available_stock)

    message = f"Insufficient stock. Available: {available_stock}, Requested: {requested_qty}"
    return StockAvailability.unavailable(total_stock, reserved, available_stock, message)


def check_available(
    sku: str,
    requested_qty: int,
    exclude_transaction_id: str | None = None,
    *,
    now: datetime | None = None,
) -> StockAvailability:
    """
    Availability of a SKU for one cart.

    available = total stock - unexpired holds of OTHER carts.
    Fails closed when the SKU does not resolve to a stock row.
    """
    item = resolve_sku(sku)
    if item is None:
        return StockAvailability.unavailable(0, 0, 0, "Product not found")
    return _check_item(item, requested_qty, exclude_transaction_id, now or utcnow())


def reserved_quantity(sku: str, exclude_transaction_id: str | None = None, *, now: datetime | None = None) -> int:
    """Sum of unexpired holds on a SKU (optionally excluding one cart)."""
    item = resolve_sku(sku)
    if item is None:
        return 0
    return reserved_for_item(item, exclude_transaction_id, now or utcnow())


def _validate_transaction_id(transaction_id: str) -> str:
    transaction_id = (transaction_id or "").strip()
    if not transaction_id:
        raise ReservationError("transaction_id is required")
    if len(transaction_id) > 64:
        raise ReservationError("transaction_id must be at most 64 characters")
    return transaction_id


def upsert_reservation(
    transaction_id: str,
    sku: str,
    quantity: int,
    *,
    now: datetime | None = None,
) -> StockReservation:
    """
    Set a cart's hold on a SKU to an absolute quantity.

    Re-checks availability (excluding this cart's own hold) under the write
    lock, then updates the existing row or inserts a new one. Commits.

    Raises:
        ReservationError: bad transaction id / quantity
        AvailabilityError: unknown SKU or not enough unreserved stock
    """
    transaction_id = _validate_transaction_id(transaction_id)
    if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
        raise ReservationError("Reservation quantity must be a positive integer")

    def _op() -> StockReservation:
        current = now or utcnow()
        begin_write_transaction()

        item = resolve_sku(sku)
        if item is None:
            raise AvailabilityError("Product not found", available=0, details={"sku": sku})

        availability = _check_item(item, quantity, transaction_id, current, for_update=True)
        if not availability.is_available:
            raise AvailabilityError(
                availability.message,
                available=availability.available_stock,
                details={"sku": item.sku, **availability.to_dict()},
            )

        expires_at = current + reservation_ttl()
        column = _item_column(item)
        reservation = (
            db.session.query(StockReservation)
            .filter(
                StockReservation.transaction_id == transaction_id,
                column == item.inventory_item_id,
            )
            .first()
        )
        if reservation is not None:
            reservation.quantity = quantity
            reservation.expires_at = expires_at
        else:
            reservation = StockReservation(
                transaction_id=transaction_id,
                online_inventory_item_id=item.online_inventory_item_id,
                in_store_inventory_id=item.in_store_inventory_item_id,
                quantity=quantity,
                channel=item.sale_channel,
                reserved_at=current,
                expires_at=expires_at,
            )
            db.session.add(reservation)

        db.session.commit()
        return reservation

    try:
        return run_with_retry(_op)
    except (AvailabilityError, ValidationError):
        db.session.rollback()
        raise


def remove_reservation(transaction_id: str, sku: str) -> int:
    """Drop one cart line's hold. Returns rows removed (0 or 1). Commits."""
    item = resolve_sku(sku)
    if item is None:
        return 0
    column = _item_column(item)
    removed = (
        db.session.query(StockReservation)
        .filter(
            StockReservation.transaction_id == transaction_id,
            column == item.inventory_item_id,
        )
        .delete(synchronize_session=False)
    )
    db.session.commit()
    return removed


def delete_for_transactions(transaction_ids) -> int:
    """Delete every hold of the given carts without committing."""
    ids = sorted({t for t in transaction_ids if t})
    if not ids:
        return 0
    return (
        db.session.query(StockReservation)
        .filter(StockReservation.transaction_id.in_(ids))
        .delete(synchronize_session=False)
    )


def clear_for_transaction(transaction_id: str) -> int:
    """Release every hold of one cart (after checkout). Idempotent. Commits."""
    removed = delete_for_transactions([transaction_id])
    db.session.commit()
    return removed


def clear_for_transactions(transaction_ids) -> int:
    """Batched release for several carts in one DELETE. Commits."""
    ids = list(transaction_ids or [])
    if not ids:
        return 0
    removed = delete_for_transactions(ids)
    db.session.commit()
    return removed


def sweep_expired(*, now: datetime | None = None) -> int:
    """
    Delete holds whose expires_at <= now.

    Only already-expired rows are touched, so it is safe to run concurrently
    with reads and upserts.
    """
    now = now or utcnow()
    removed = (
        db.session.query(StockReservation)
        .filter(StockReservation.expires_at <= now)
        .delete(synchronize_session=False)
    )
    db.session.commit()
    if removed and has_app_context():
        current_app.logger.info("Cleaned up %s expired reservations", removed)
    return removed


def get_reservations_for_transaction(transaction_id: str, *, now: datetime | None = None) -> list[StockReservation]:
    """Unexpired holds of one cart."""
    now = now or utcnow()
    return (
        db.session.query(StockReservation)
        .filter(
            StockReservation.transaction_id == transaction_id,
            StockReservation.expires_at > now,
        )
        .order_by(StockReservation.id.asc())
        .all()
    )
