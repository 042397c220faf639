"""
Pytest fixtures for the central kitchen backend tests.

Provides the test database, stores (central kitchen + two retail stores),
users and callers for every role, products, stocked central batches and
the test client with login helpers.
"""

import itertools
from datetime import timedelta

import pytest

from ckms import create_app
from ckms.extensions import db
from ckms.models import (
    BatchStatus,
    Inventory,
    Product,
    ProductBatch,
    Role,
    Store,
    User,
)
from ckms.services import supply_order_service
from ckms.services.auth_service import hash_password
from ckms.services.inventory_service import compute_expiry_status
from ckms.services.permission_service import CallerIdentity
from ckms.time_utils import today


PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
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
# STORES
# =============================================================================


@pytest.fixture(scope='function')
def central_store(app, db_session):
    """Central kitchen; CENTRAL_STORE_ID is pointed at it for the test."""
    store = Store(code="CK", name="Central Kitchen")
    db_session.add(store)
    db_session.commit()
    app.config["CENTRAL_STORE_ID"] = store.id
    return store


@pytest.fixture(scope='function')
def store_a(db_session, central_store):
    store = Store(code="S-A", name="Store A", address="1 First Street")
    db_session.add(store)
    db_session.commit()
    return store


@pytest.fixture(scope='function')
def store_b(db_session, central_store):
    store = Store(code="S-B", name="Store B")
    db_session.add(store)
    db_session.commit()
    return store


# =============================================================================
# USERS AND CALLERS
# =============================================================================


def _make_user(db_session, username, role, store_id=None):
    user = User(
        username=username,
        password_hash=hash_password(PASSWORD),
        role=role,
        store_id=store_id,
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def admin_user(db_session, central_store):
    return _make_user(db_session, "admin", Role.ADMIN)


@pytest.fixture(scope='function')
def central_user(db_session, central_store):
    return _make_user(db_session, "central", Role.CENTRAL_STAFF, central_store.id)


@pytest.fixture(scope='function')
def store_user_a(db_session, store_a):
    return _make_user(db_session, "staff_a", Role.STORE_STAFF, store_a.id)


@pytest.fixture(scope='function')
def store_user_b(db_session, store_b):
    return _make_user(db_session, "staff_b", Role.STORE_STAFF, store_b.id)


def caller_for(user) -> CallerIdentity:
    return CallerIdentity(user_id=user.id, role=user.role, store_id=user.store_id)


@pytest.fixture(scope='function')
def admin(admin_user):
    return caller_for(admin_user)


@pytest.fixture(scope='function')
def central(central_user):
    return caller_for(central_user)


@pytest.fixture(scope='function')
def staff_a(store_user_a):
    return caller_for(store_user_a)


@pytest.fixture(scope='function')
def staff_b(store_user_b):
    return caller_for(store_user_b)


# =============================================================================
# PRODUCTS AND CENTRAL STOCK
# =============================================================================


@pytest.fixture(scope='function')
def product_p(db_session):
    product = Product(code="P-DOUGH", name="Pastry Dough", unit="kg")
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def product_q(db_session):
    product = Product(code="Q-SAUCE", name="Tomato Sauce", unit="box")
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def stock_central(db_session, central_store):
    """
    Factory: put a stocked batch of a product into central inventory.

    stock_central(product, quantity, expires_in_days) -> Inventory
    """
    counter = itertools.count(1)

    def _stock(product, quantity, expires_in_days, store=None):
        n = next(counter)
        batch = ProductBatch(
            code=f"BATCH-202601-{n:03d}",
            product_id=product.id,
            status=BatchStatus.STOCKED,
            planned_quantity=quantity,
            produced_quantity=quantity,
            production_date=today() - timedelta(days=1),
            expired_date=today() + timedelta(days=expires_in_days),
        )
        db_session.add(batch)
        db_session.flush()
        row = Inventory(
            store_id=(store or central_store).id,
            batch_id=batch.id,
            quantity=quantity,
            status=compute_expiry_status(batch.expired_date),
        )
        db_session.add(row)
        db_session.commit()
        return row

    return _stock


# =============================================================================
# ORDERS
# =============================================================================


@pytest.fixture(scope='function')
def order_codes():
    counter = itertools.count(1)
    return lambda: f"SO-202601-{next(counter):04d}"


@pytest.fixture(scope='function')
def submit_order(db_session, order_codes):
    """
    Factory: submit an order through the service and commit.

    submit_order(caller, [(product, qty), ...]) -> SupplyOrder
    """
    def _submit(caller, lines, code=None):
        order = supply_order_service.create_supply_order(
            caller,
            code or order_codes(),
            [{"product_id": product.id, "requested_quantity": qty} for product, qty in lines],
        )
        db_session.commit()
        return order

    return _submit


def approve_all(db_session, caller, order):
    """Approve every item of an order at its requested quantity."""
    supply_order_service.review_supply_order(
        caller,
        order.id,
        [{"supply_order_item_id": item.id, "action": "APPROVE"} for item in order.items],
    )
    db_session.commit()
    return order


def all_lines(order):
    return [line for item in order.items for line in item.allocations]


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
def admin_headers(client, admin_user):
    return auth_headers(get_auth_token(client, admin_user.username))


@pytest.fixture(scope='function')
def central_headers(client, central_user):
    return auth_headers(get_auth_token(client, central_user.username))


@pytest.fixture(scope='function')
def staff_a_headers(client, store_user_a):
    return auth_headers(get_auth_token(client, store_user_a.username))


@pytest.fixture(scope='function')
def staff_b_headers(client, store_user_b):
    return auth_headers(get_auth_token(client, store_user_b.username))
