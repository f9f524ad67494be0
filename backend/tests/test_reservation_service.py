from datetime import timedelta

import pytest

from poscore.errors import AvailabilityError
from poscore.models import StockReservation
from poscore.services import reservation_service
from poscore.services.reservation_service import ReservationError
from poscore.time_utils import utcnow


def test_availability_is_stock_minus_other_holds(db_session, make_product):
    make_product("A", quantity=10)
    reservation_service.upsert_reservation("cart-1", "A", 4)

    other = reservation_service.check_available("A", 6, exclude_transaction_id="cart-2")
    assert other.is_available
    assert other.total_stock == 10
    assert other.reserved_quantity == 4
    assert other.available_stock == 6

    too_much = reservation_service.check_available("A", 7, exclude_transaction_id="cart-2")
    assert not too_much.is_available
    assert too_much.message == "Insufficient stock. Available: 6, Requested: 7"


def test_own_hold_not_counted_against_caller(db_session, make_product):
    make_product("A", quantity=5)
    reservation_service.upsert_reservation("cart-1", "A", 5)

    own = reservation_service.check_available("A", 5, exclude_transaction_id="cart-1")
    assert own.is_available
    assert own.available_stock == 5

    # Raising the same cart's hold up to total stock is allowed
    reservation_service.upsert_reservation("cart-1", "A", 5)


def test_upsert_sets_absolute_quantity(db_session, make_product):
    make_product("A", quantity=10)
    reservation_service.upsert_reservation("cart-1", "A", 3)
    reservation_service.upsert_reservation("cart-1", "A", 7)

    rows = reservation_service.get_reservations_for_transaction("cart-1")
    assert len(rows) == 1
    assert rows[0].quantity == 7
    assert reservation_service.reserved_quantity("A") == 7


def test_upsert_rejects_oversell_with_available_quantity(db_session, make_product):
    make_product("A", quantity=5)
    reservation_service.upsert_reservation("cart-1", "A", 3)

    with pytest.raises(AvailabilityError) as excinfo:
        reservation_service.upsert_reservation("cart-2", "A", 3)

    assert excinfo.value.available == 2
    assert "Available: 2, Requested: 3" in excinfo.value.message
    assert reservation_service.reserved_quantity("A") == 3


def test_upsert_validates_input(db_session, make_product):
    make_product("A", quantity=5)
    with pytest.raises(ReservationError):
        reservation_service.upsert_reservation("cart-1", "A", 0)
    with pytest.raises(ReservationError):
        reservation_service.upsert_reservation("", "A", 1)


def test_unknown_sku_fails_closed(db_session):
    result = reservation_service.check_available("NOPE", 1)
    assert not result.is_available
    assert result.message == "Product not found"

    with pytest.raises(AvailabilityError):
        reservation_service.upsert_reservation("cart-1", "NOPE", 1)


def test_expired_hold_stops_counting_and_is_swept(db_session, make_product):
    make_product("A", quantity=5)
    start = utcnow()
    reservation_service.upsert_reservation("cart-1", "A", 5, now=start)

    just_before = start + timedelta(minutes=14)
    after_ttl = start + timedelta(minutes=15, seconds=1)

    assert not reservation_service.check_available("A", 1, "cart-2", now=just_before).is_available
    assert reservation_service.check_available("A", 5, "cart-2", now=after_ttl).is_available

    removed = reservation_service.sweep_expired(now=after_ttl)
    assert removed == 1
    assert db_session.query(StockReservation).count() == 0


def test_sweep_keeps_live_holds(db_session, make_product):
    make_product("A", quantity=5)
    make_product("B", quantity=5)
    start = utcnow()
    reservation_service.upsert_reservation("cart-1", "A", 1, now=start - timedelta(minutes=30))
    reservation_service.upsert_reservation("cart-1", "B", 1, now=start)

    assert reservation_service.sweep_expired(now=start) == 1
    remaining = db_session.query(StockReservation).all()
    assert len(remaining) == 1


def test_upsert_refreshes_expiry(db_session, make_product):
    make_product("A", quantity=5)
    start = utcnow()
    reservation_service.upsert_reservation("cart-1", "A", 1, now=start)
    reservation_service.upsert_reservation("cart-1", "A", 2, now=start + timedelta(minutes=10))

    row = db_session.query(StockReservation).one()
    assert row.expires_at == start + timedelta(minutes=25)


def test_online_products_reserve_online_stock(db_session, make_product):
    make_product("W", quantity=3, sale_channel="online")
    reservation = reservation_service.upsert_reservation("cart-1", "W", 2)
    assert reservation.online_inventory_item_id is not None
    assert reservation.in_store_inventory_id is None
    assert reservation.channel == "online"


def test_remove_and_clear(db_session, make_product):
    make_product("A", quantity=10)
    make_product("B", quantity=10)
    reservation_service.upsert_reservation("cart-1", "A", 1)
    reservation_service.upsert_reservation("cart-1", "B", 1)
    reservation_service.upsert_reservation("cart-2", "A", 1)
    reservation_service.upsert_reservation("cart-3", "A", 1)

    assert reservation_service.remove_reservation("cart-1", "A") == 1
    assert reservation_service.remove_reservation("cart-1", "A") == 0
    assert reservation_service.clear_for_transaction("cart-1") == 1
    assert reservation_service.clear_for_transaction("cart-1") == 0
    assert reservation_service.clear_for_transactions([]) == 0
    assert reservation_service.clear_for_transactions(["cart-2", "cart-3"]) == 2
    assert db_session.query(StockReservation).count() == 0
