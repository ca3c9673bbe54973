"""
Pytest fixtures for back-office tests.

Provides the application on an in-memory database, a per-test table wipe,
two tenants with their stores and catalog, actor factories and a test client.
"""

from decimal import Decimal

import pytest

from backoffice import create_app
from backoffice.config import TestingConfig
from backoffice.extensions import db
from backoffice.models import Company, Customer, Inventory, Product, Store, Vendor
from backoffice.permissions import Roles
from backoffice.services.tenant_service import Actor


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestingConfig)

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
    # Clear all data but keep schema
    meta = db.metadata
    for table in reversed(meta.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()

    yield db.session

    # Cleanup after test
    db.session.rollback()
    db.session.remove()


# =============================================================================
# Tenant A: two stores, one vendor, one customer, two products
# =============================================================================

@pytest.fixture(scope='function')
def company_a(db_session):
    company = Company(name="Acme Retail")
    db_session.add(company)
    db_session.commit()
    return company


@pytest.fixture(scope='function')
def store_a1(db_session, company_a):
    store = Store(company_id=company_a.id, name="Main Street")
    db_session.add(store)
    db_session.commit()
    return store


@pytest.fixture(scope='function')
def store_a2(db_session, company_a):
    store = Store(company_id=company_a.id, name="Harbour Mall")
    db_session.add(store)
    db_session.commit()
    return store


@pytest.fixture(scope='function')
def vendor_a(db_session, company_a):
    vendor = Vendor(company_id=company_a.id, name="Acme Wholesale")
    db_session.add(vendor)
    db_session.commit()
    return vendor


@pytest.fixture(scope='function')
def customer_a(db_session, company_a):
    customer = Customer(company_id=company_a.id, name="Jane Regular")
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def product_x(db_session, company_a):
    product = Product(
        company_id=company_a.id,
        sku="X-001",
        name="Product X",
        cost_price=Decimal("5.00"),
        selling_price=Decimal("8.00"),
        reorder_level=5,
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def product_y(db_session, company_a):
    product = Product(
        company_id=company_a.id,
        sku="Y-001",
        name="Product Y",
        cost_price=Decimal("2.50"),
        selling_price=Decimal("4.00"),
        reorder_level=0,
    )
    db_session.add(product)
    db_session.commit()
    return product


# =============================================================================
# Tenant B
# =============================================================================

@pytest.fixture(scope='function')
def company_b(db_session):
    company = Company(name="Beta Traders")
    db_session.add(company)
    db_session.commit()
    return company


@pytest.fixture(scope='function')
def store_b1(db_session, company_b):
    store = Store(company_id=company_b.id, name="Beta Central")
    db_session.add(store)
    db_session.commit()
    return store


@pytest.fixture(scope='function')
def vendor_b(db_session, company_b):
    vendor = Vendor(company_id=company_b.id, name="Beta Supply")
    db_session.add(vendor)
    db_session.commit()
    return vendor


@pytest.fixture(scope='function')
def customer_b(db_session, company_b):
    customer = Customer(company_id=company_b.id, name="Bob Buyer")
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def product_b(db_session, company_b):
    product = Product(company_id=company_b.id, sku="B-001", name="Product B", reorder_level=0)
    db_session.add(product)
    db_session.commit()
    return product


# =============================================================================
# Actors
# =============================================================================

@pytest.fixture(scope='function')
def make_actor():
    """Factory: make_actor(role, company) -> Actor."""
    def _make(role: str, company=None, user_id: int = 1) -> Actor:
        return Actor(user_id=user_id, company_id=company.id if company is not None else None, role=role)
    return _make


@pytest.fixture(scope='function')
def owner_a(make_actor, company_a):
    return make_actor(Roles.OWNER, company_a, user_id=10)


@pytest.fixture(scope='function')
def manager_a(make_actor, company_a):
    return make_actor(Roles.BRANCH_MANAGER, company_a, user_id=11)


@pytest.fixture(scope='function')
def salesman_a(make_actor, company_a):
    return make_actor(Roles.SALESMAN, company_a, user_id=12)


@pytest.fixture(scope='function')
def owner_b(make_actor, company_b):
    return make_actor(Roles.OWNER, company_b, user_id=20)


@pytest.fixture(scope='function')
def platform_admin(make_actor):
    return make_actor(Roles.SUPER_ADMIN, None, user_id=99)


# =============================================================================
# Helpers
# =============================================================================

def set_stock(product, store, quantity: int) -> None:
    """Seed an inventory row directly (bypasses documents and the journal)."""
    row = db.session.get(Inventory, (product.id, store.id))
    if row is None:
        db.session.add(Inventory(product_id=product.id, store_id=store.id, quantity=quantity))
    else:
        row.quantity = quantity
    db.session.commit()


def on_hand(product, store) -> int:
    quantity = (
        db.session.query(Inventory.quantity)
        .filter_by(product_id=product.id, store_id=store.id)
        .scalar()
    )
    return int(quantity or 0)


def actor_headers(actor: Actor) -> dict:
    """Helper to create the trusted identity headers for an actor."""
    headers = {'X-User-Id': str(actor.user_id), 'X-User-Role': actor.role}
    if actor.company_id is not None:
        headers['X-Company-Id'] = str(actor.company_id)
    return headers
