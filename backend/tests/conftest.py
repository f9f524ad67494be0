"""
Pytest fixtures for POS core tests.

Provides the application on an in-memory database, a clean session per test,
catalog helpers and the test client.
"""

from datetime import date, timedelta

import pytest

from poscore import create_app
from poscore.extensions import db
from poscore.models import Promotion
from poscore.services.inventory_service import create_product
from poscore.services.pricing_service import CartLine


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'SCHEDULER_ENABLED': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        app.extensions.pop("poscore.pricing_cache", None)

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory: create a product plus its stock row and commit."""
    def _make(sku, price_cents=10000, quantity=10, sale_channel="in-store", category_id=None):
        product = create_product(
            sku=sku,
            name=f"Product {sku}",
            sale_channel=sale_channel,
            price_cents=price_cents,
            quantity=quantity,
            category_id=category_id,
        )
        db_session.commit()
        return product
    return _make


@pytest.fixture(scope='function')
def make_promotion(db_session):
    """Factory: create an automatic promotion active today."""
    def _make(**overrides):
        today = date.today()
        data = {
            "title": "Promo",
            "promo_type": "percentage",
            "discount_value": 1000,
            "min_purchase_cents": 0,
            "sale_channel": "both",
            "application_method": "automatic_discount",
            "activation_date": today - timedelta(days=1),
            "expiration_date": today + timedelta(days=1),
            "applies_to_type": "all",
            "applies_to_id": None,
        }
        data.update(overrides)
        promo = Promotion(**data)
        db_session.add(promo)
        db_session.commit()
        return promo
    return _make


@pytest.fixture(scope='function')
def products_ab(make_product):
    """Two in-store products: A at 100.00 and B at 50.00, 10 units each."""
    a = make_product("A", price_cents=10000, quantity=10)
    b = make_product("B", price_cents=5000, quantity=10)
    return a, b


@pytest.fixture(scope='function')
def cart_ab(products_ab):
    return [
        CartLine(sku="A", quantity=2, unit_price_cents=10000),
        CartLine(sku="B", quantity=1, unit_price_cents=5000),
    ]
