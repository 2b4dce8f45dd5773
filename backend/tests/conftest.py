"""
Pytest fixtures for the billing backend tests.

Provides test database setup, two-store tenant fixtures, and test client.
"""

from decimal import Decimal

import pytest
from smartbill import create_app
from smartbill.extensions import db
from smartbill.models import Product, Store


ADMIN_TOKEN = "test-admin-token"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'ADMIN_TOKEN': ADMIN_TOKEN,
        'OTP_STUB_CODE': '123456',
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

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def store_a(db_session):
    """Create Store A (first tenant)."""
    store = Store(store_name="Store A", phone="9000000001", api_key="key-store-a")
    db_session.add(store)
    db_session.commit()
    return store


@pytest.fixture(scope='function')
def store_b(db_session):
    """Create Store B (second tenant)."""
    store = Store(store_name="Store B", phone="9000000002", api_key="key-store-b")
    db_session.add(store)
    db_session.commit()
    return store


def make_product(db_session, store, *, sku, price, quantity, name=None):
    product = Product(
        store_id=store.id,
        sku=sku,
        name=name or sku,
        price=Decimal(str(price)),
        quantity=quantity,
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def product_a(db_session, store_a):
    """Product in Store A: price 100.00, 5 on hand."""
    return make_product(db_session, store_a, sku="PROD-A-001", name="Product A", price="100.00", quantity=5)


@pytest.fixture(scope='function')
def product_b(db_session, store_b):
    """Product in Store B: price 20.00, 10 on hand."""
    return make_product(db_session, store_b, sku="PROD-B-001", name="Product B", price="20.00", quantity=10)


def stock_of(db_session, product) -> int:
    """Re-read on-hand quantity from the database."""
    db_session.expire_all()
    return db_session.get(Product, product.id).quantity


def api_key_headers(store) -> dict:
    return {'Authorization': store.api_key}


def admin_headers() -> dict:
    return {'Authorization': f'Bearer {ADMIN_TOKEN}'}


def bearer_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
