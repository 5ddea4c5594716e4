"""
Pytest fixtures for the inventory backend tests.

Provides the application on an in-memory database, a per-test table wipe,
users for each role and small factories for items.
"""

import pytest

from hkinv import create_app
from hkinv.config import TestConfig
from hkinv.extensions import db
from hkinv.models import User
from hkinv.services import items_service


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
def db_session(app, monkeypatch):
    """Fresh tables for each test; stock policy back to the default."""
    monkeypatch.setitem(app.config, "STOCK_REVERSAL_POLICY", "leave")
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


def _make_user(username: str, role: str, status: str = "active") -> User:
    user = User(
        username=username,
        name=username.title(),
        email=f"{username}@hotel.local",
        role=role,
        status=status,
    )
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def admin(db_session):
    return _make_user("admin", "admin")


@pytest.fixture
def manager(db_session):
    return _make_user("manager", "manager")


@pytest.fixture
def staff(db_session):
    return _make_user("staff", "staff")


@pytest.fixture
def make_item(db_session):
    """Factory: create an item through the service and return its record."""
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        payload = {
            "code": f"ITM-{counter['n']:03d}",
            "name": f"Towel {counter['n']}",
            "unit": "pcs",
            "category": "Linen",
            "min_stock": 5,
            "current_stock": 10,
            "price": 25000,
        }
        payload.update(overrides)
        result = items_service.create_item(payload)
        assert result.success, result.message
        return result.payload

    return _make


@pytest.fixture
def headers():
    """X-User-Id header for a user."""
    return lambda user: {"X-User-Id": str(user.id)}
