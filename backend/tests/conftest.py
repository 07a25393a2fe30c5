"""
Pytest fixtures for billing backend tests.

Provides the app (in-memory SQLite), a per-test table wipe, user/shop
factories and bearer-token helpers.
"""

import pytest

from billing import create_app
from billing.config import TestConfig
from billing.extensions import db
from billing.services.auth_service import create_user
from billing.services.shop_service import create_shop

PASSWORD = "secret123"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig)

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
    """Fresh tables for each test."""
    with app.app_context():
        # Clear all data but keep schema
        for table in reversed(db.metadata.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        db.session.rollback()


@pytest.fixture(scope='function')
def make_user(db_session):
    """Factory: user row only (no default shop)."""
    def _make(username: str, email: str | None = None, password: str = PASSWORD):
        return create_user(username, password, email)
    return _make


@pytest.fixture(scope='function')
def make_shop(db_session):
    """Factory: shop plus the owner's OWNER edge."""
    def _make(owner, name: str = "Acme Traders", **fields):
        payload = {
            "name": name,
            "legal_name": f"{name} Pvt Ltd",
            "gstin": "27ABCDE1234F1Z5",
            "pan": "ABCDE1234F",
            "address": "12 MG Road, Pune",
            "state": "Maharashtra",
            "state_code": "27",
            "pin": "411001",
        }
        payload.update(fields)
        return create_shop(payload, owner)
    return _make


@pytest.fixture(scope='function')
def owner(make_user):
    return make_user("owner_user", email="owner@example.com")


@pytest.fixture(scope='function')
def outsider(make_user):
    return make_user("outsider_user")


@pytest.fixture(scope='function')
def shop(make_shop, owner):
    return make_shop(owner)


def invoice_payload(serial_no: str = "INV-001", items=None, **overrides) -> dict:
    """A valid invoice body; two items unless `items` is given."""
    if items is None:
        items = [
            {
                "description": "Steel rod",
                "hsn_sac_code": "7214",
                "quantity": 2,
                "unit_value": "500.00",
                "discount": 0,
                "taxable_value": "1000.00",
                "cgst_rate": 9,
                "cgst_amount": "90.00",
                "sgst_rate": 9,
                "sgst_amount": "90.00",
            },
            {
                "description": "Cement bag",
                "hsn_sac_code": "2523",
                "quantity": 10,
                "unit_value": "350.00",
                "discount": "100.00",
                "taxable_value": "3400.00",
                "igst_rate": 18,
                "igst_amount": "612.00",
            },
        ]
    payload = {
        "serial_no": serial_no,
        "invoice_date": "2026-10-01",
        "bill_to": {"name": "Acme Corp", "address": "1 Harbour St", "state": "Goa", "state_code": "30", "gstin": "30AAACA1111A1Z1"},
        "ship_to": {"name": "Acme Warehouse", "address": "9 Dock Rd", "state": "Goa", "state_code": "30"},
        "total": "5192.00",
        "items": items,
    }
    payload.update(overrides)
    return payload


def get_auth_token(client, username: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
