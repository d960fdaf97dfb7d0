"""
Pytest fixtures for custody ledger backend tests.

Provides test database setup, users/assets, and logged-in test clients.
"""

import pytest

from custody import create_app
from custody.extensions import db
from custody.models import ROLE_ADMIN, ROLE_USER
from custody.services import asset_service, user_service


ADMIN_PASSWORD = "Admin-Password-1"
USER_PASSWORD = "User-Password-1"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'LOG_LEVEL': 'WARNING',
        # small scrypt work factor; hashing speed is not under test
        'PASSWORD_HASH_METHOD': 'scrypt:1024:8:1',
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
        db.session.remove()


@pytest.fixture(scope='function')
def admin_user(db_session):
    """ADMIN who can move custody."""
    return user_service.create_user(
        username="admin",
        password=ADMIN_PASSWORD,
        name="Ada Admin",
        user_tag_id="ADM001",
        role=ROLE_ADMIN,
    )


@pytest.fixture(scope='function')
def standard_user(db_session):
    """Standard USER carrying tag U001."""
    return user_service.create_user(
        username="jdoe",
        password=USER_PASSWORD,
        name="Jane Doe",
        user_tag_id="U001",
        role=ROLE_USER,
    )


@pytest.fixture(scope='function')
def other_user(db_session):
    return user_service.create_user(
        username="rroe",
        password=USER_PASSWORD,
        name="Richard Roe",
        user_tag_id="U002",
    )


@pytest.fixture(scope='function')
def asset(db_session):
    """AVAILABLE asset tagged A123."""
    return asset_service.create_asset(name="Cordless Drill", asset_tag_id="A123", category="tools")


@pytest.fixture(scope='function')
def second_asset(db_session):
    return asset_service.create_asset(name="Laser Level", asset_tag_id="A456", category="tools")


def login(client, username: str, password: str):
    """Helper to log a test client in; the session cookie stays on the client."""
    return client.post('/api/auth/login', json={
        'username': username,
        'password': password,
    })


@pytest.fixture(scope='function')
def admin_client(app, admin_user):
    c = app.test_client()
    resp = login(c, "admin", ADMIN_PASSWORD)
    assert resp.status_code == 200
    return c


@pytest.fixture(scope='function')
def user_client(app, standard_user):
    c = app.test_client()
    resp = login(c, "jdoe", USER_PASSWORD)
    assert resp.status_code == 200
    return c
