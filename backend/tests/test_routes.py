"""HTTP surface: status codes and JSON bodies for each endpoint."""

from datetime import timedelta

from poscore.extensions import db
from poscore.models import PosTransaction


def _checkout(client, **overrides):
    body = {
        "staff_id": 1,
        "lines": [
            {"sku": "A", "quantity": 2, "unit_price_cents": 10000},
            {"sku": "B", "quantity": 1, "unit_price_cents": 5000},
        ],
        "payment": {"method": "Cash", "amount_received": "300.00"},
    }
    body.update(overrides)
    return client.post("/api/checkout", json=body)


def test_health(client, db_session):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json["checks"]["database"]["status"] == "healthy"


def test_price_lines(client, db_session, products_ab, make_promotion):
    make_promotion(promo_type="fixed", discount_value=1500, applies_to_type="product", applies_to_id="B")

    response = client.post("/api/pricing/lines", json={"lines": [{"sku": "A", "quantity": 2}, {"sku": "B", "quantity": 1}]})

    assert response.status_code == 200
    pricing = response.json["pricing"]
    assert pricing["subtotal_cents"] == 25000
    assert pricing["discount_cents"] == 1500
    assert pricing["lines"][1]["discount_cents"] == 1500
    assert pricing["snapshot_id"].startswith("ps-")


def test_reservation_flow(client, db_session, make_product):
    make_product("A", quantity=5)

    response = client.put("/api/reservations/cart-1/A", json={"quantity": 4})
    assert response.status_code == 200
    assert response.json["reservation"]["quantity"] == 4

    response = client.put("/api/reservations/cart-2/A", json={"quantity": 2})
    assert response.status_code == 409
    assert response.json["details"]["available"] == 1
    assert response.json["error"] == "Insufficient stock. Available: 1, Requested: 2"

    response = client.get("/api/reservations/availability/A?quantity=1&transaction_id=cart-2")
    assert response.json["availability"]["available_stock"] == 1

    response = client.get("/api/reservations/cart-1")
    assert len(response.json["reservations"]) == 1

    response = client.delete("/api/reservations/cart-1/A")
    assert response.json["removed"] == 1

    response = client.delete("/api/reservations/cart-1")
    assert response.json["removed"] == 0


def test_reservation_requires_quantity(client, db_session, make_product):
    make_product("A", quantity=5)
    response = client.put("/api/reservations/cart-1/A", json={})
    assert response.status_code == 400


def test_checkout_route(client, db_session, products_ab):
    response = _checkout(client)

    assert response.status_code == 201
    checkout = response.json["checkout"]
    assert checkout["invoice_no"] == "0000001"
    assert checkout["totals"]["total_cents"] == 25000
    assert checkout["change_cents"] == 5000

    response = client.get("/api/checkout/invoices/0000001")
    assert response.status_code == 200
    assert len(response.json["transaction"]["lines"]) == 2


def test_checkout_route_validation(client, db_session, products_ab):
    response = _checkout(client, payment={"method": "E-Wallet", "amount_received_cents": 30000})
    assert response.status_code == 400
    assert response.json["error"] == "Reference number is required for E-Wallet payments."

    response = _checkout(client, lines=[])
    assert response.status_code == 400
    assert response.json["error"] == "Cart is empty. Please add items to the cart."


def test_checkout_route_short_stock(client, db_session, make_product):
    make_product("A", quantity=1)
    response = _checkout(client, lines=[{"sku": "A", "quantity": 2, "unit_price_cents": 100}])
    assert response.status_code == 409


def test_returns_routes(client, db_session, products_ab):
    _checkout(client)

    response = client.get("/api/returns/invoices/0000001")
    assert response.status_code == 200
    line_a = next(l for l in response.json["lines"] if l["sku"] == "A")

    body = {
        "invoice_no": "0000001",
        "cashier_id": 2,
        "supervisor_id": 1,
        "refund_total_cents": 10000,
        "items": [{
            "invoice_item_id": line_a["invoice_item_id"],
            "qty_returned": 1,
            "refund_amount_cents": 10000,
            "in_store_inventory_id": line_a["in_store_inventory_id"],
        }],
    }
    response = client.post("/api/returns", json=body)
    assert response.status_code == 201
    assert response.json["return"]["return_no"] == "RTN-000001"

    response = client.post("/api/returns", json=body)
    assert response.status_code == 422
    assert response.json["details"]["reason"] == "already_returned"

    response = client.get("/api/returns/invoices/0000001")
    assert response.status_code == 422


def test_returns_route_unknown_and_old_invoice(client, db_session, products_ab):
    assert client.get("/api/returns/invoices/0000404").status_code == 404

    _checkout(client)
    txn = db_session.query(PosTransaction).one()
    txn.transaction_date = txn.transaction_date - timedelta(days=8)
    db.session.commit()

    response = client.get("/api/returns/invoices/0000001")
    assert response.status_code == 422
    assert response.json["details"]["reason"] == "too_old"


def test_returns_route_validation_message(client, db_session):
    response = client.post("/api/returns", json={"invoice_no": "0000001"})
    assert response.status_code == 400
    assert response.json["error"] == "Valid cashier ID is required"
