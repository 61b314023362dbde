"""
Pytest fixtures for consign backend tests.

Provides test database setup, per-role users and actors, a small location
graph with one store, a priced product, and the Flask test client.
"""

from datetime import datetime, time, timedelta

import pytest

from consign import create_app
from consign.extensions import db
from consign.models import LocationKind, MovementAction, UnitType
from consign.permissions import Role
from consign.services import location_service, movement_service, products_service, vendor_service
from consign.services.auth_service import create_user
from consign.services.permission_service import Actor
from consign.time_utils import utcnow


PASSWORD = "Password123!"

WHOLESALE_CENTS = 1800


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'CRON_SECRET': 'test-cron-secret',
        'LOW_STOCK_THRESHOLD': 5,
        'PAYMENT_OVERDUE_DAYS': 14,
        'RECONCILIATION_PRICING': 'CURRENT',
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


# =============================================================================
# USERS AND ACTORS
# =============================================================================

@pytest.fixture(scope='function')
def manager_user(db_session):
    return create_user("manager", PASSWORD, role=Role.MANAGER, display_name="Mia Manager")


@pytest.fixture(scope='function')
def staff_user(db_session):
    return create_user("staff", PASSWORD, role=Role.STAFF)


@pytest.fixture(scope='function')
def viewer_user(db_session):
    return create_user("viewer", PASSWORD, role=Role.VIEWER)


@pytest.fixture(scope='function')
def manager(manager_user):
    return Actor.from_user(manager_user)


@pytest.fixture(scope='function')
def staff(staff_user):
    return Actor.from_user(staff_user)


@pytest.fixture(scope='function')
def viewer(viewer_user):
    return Actor.from_user(viewer_user)


# =============================================================================
# CATALOG AND LOCATIONS
# =============================================================================

@pytest.fixture(scope='function')
def storage(manager):
    return location_service.create_location(manager, name="Main Storage", kind=LocationKind.STORAGE)


@pytest.fixture(scope='function')
def shelf(manager, storage):
    return location_service.create_location(
        manager, name="Shelf A", kind=LocationKind.SHELF, parent_id=storage.id
    )


@pytest.fixture(scope='function')
def truck(manager):
    return location_service.create_location(manager, name="Van 1", kind=LocationKind.TRUCK)


@pytest.fixture(scope='function')
def store(manager):
    return location_service.create_store(manager, name="Corner Market", contact_name="Sam")


@pytest.fixture(scope='function')
def store_location(store):
    return store.location


@pytest.fixture(scope='function')
def vendor(manager):
    return vendor_service.create_vendor(manager, name="Acme Wholesale")


@pytest.fixture(scope='function')
def product(manager):
    """10 packs per box; cost 12.00/box, retail 3.00/pack, 24.00/box, wholesale 18.00/box."""
    return products_service.create_product(
        manager,
        name="Gummy Bears",
        sku="gb-001",
        packs_per_box=10,
        variant="Original",
        pricing={
            "cost_per_box_cents": 1200,
            "retail_price_per_pack_cents": 300,
            "retail_price_per_box_cents": 2400,
            "wholesale_price_per_box_cents": WHOLESALE_CENTS,
        },
    )


@pytest.fixture(scope='function')
def stocked(manager, product, storage, vendor):
    """Receive 50 boxes into storage and return the RECEIVE row."""
    return movement_service.receive_inventory(
        manager,
        product_id=product.id,
        quantity=50,
        to_location_id=storage.id,
        vendor_id=vendor.id,
        cost_per_box_cents=1200,
    )


def days_ago(days: int, hour: int = 12):
    """UTC-naive timestamp at the given hour, `days` days before today."""
    return datetime.combine(utcnow().date() - timedelta(days=days), time(hour=hour))


def deliver(actor, product, storage, store_location, quantity, performed_at=None):
    return movement_service.transfer_inventory(
        actor,
        action=MovementAction.DELIVER_TO_STORE,
        product_id=product.id,
        unit_type=UnitType.BOX,
        quantity=quantity,
        from_location_id=storage.id,
        to_location_id=store_location.id,
        performed_at=performed_at,
    )


def return_from_store(actor, product, store_location, storage, quantity, performed_at=None):
    return movement_service.transfer_inventory(
        actor,
        action=MovementAction.RETURN_FROM_STORE,
        product_id=product.id,
        unit_type=UnitType.BOX,
        quantity=quantity,
        from_location_id=store_location.id,
        to_location_id=storage.id,
        performed_at=performed_at,
    )


# =============================================================================
# HTTP HELPERS
# =============================================================================

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


@pytest.fixture(scope='function')
def manager_headers(client, manager_user):
    return auth_headers(get_auth_token(client, "manager"))


@pytest.fixture(scope='function')
def staff_headers(client, staff_user):
    return auth_headers(get_auth_token(client, "staff"))


@pytest.fixture(scope='function')
def viewer_headers(client, viewer_user):
    return auth_headers(get_auth_token(client, "viewer"))
