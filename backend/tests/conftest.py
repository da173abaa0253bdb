"""
Pytest fixtures for agrimarket backend tests.

Provides test database setup, role-specific users, bearer headers and a
stocked warehouse.
"""

from decimal import Decimal

import pytest

from agrimarket import create_app
from agrimarket.config import TestingConfig
from agrimarket.extensions import db
from agrimarket.models import Product, Warehouse, RoleType
from agrimarket.services import permission_service, session_service, stock_service, user_service
from agrimarket.services.concurrency import unit_of_work


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestingConfig)

    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Fresh database and app context for each test."""
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
def setup_roles(db_session):
    """Setup roles, permissions and default role permissions."""
    permission_service.initialize_roles()
    permission_service.initialize_permissions()
    permission_service.assign_default_role_permissions()


@pytest.fixture(scope='function')
def make_user(db_session, setup_roles):
    """Factory: make_user("name", RoleType.SUPPLIER, ...) -> User (always CLIENT too)."""
    def _make(name: str, *roles):
        return user_service.create_user(
            f"{name}@agri.test",
            first_name=name.capitalize(),
            roles=list(roles),
        )
    return _make


@pytest.fixture
def admin(make_user):
    return make_user("admin", RoleType.ADMIN)


@pytest.fixture
def business(make_user):
    return make_user("business", RoleType.BUSINESS)


@pytest.fixture
def supplier(make_user):
    return make_user("supplier", RoleType.SUPPLIER)


@pytest.fixture
def other_supplier(make_user):
    return make_user("othersupplier", RoleType.SUPPLIER)


@pytest.fixture
def stock_manager(make_user):
    return make_user("stockmanager", RoleType.STOCK_MANAGER)


@pytest.fixture
def client_user(make_user):
    return make_user("client")


@pytest.fixture
def other_client(make_user):
    return make_user("otherclient")


@pytest.fixture
def command_manager(make_user):
    return make_user("commandmanager", RoleType.COMMAND_MANAGER)


@pytest.fixture
def driver(make_user):
    return make_user("driver", RoleType.DELIVERY_DRIVER)


@pytest.fixture
def other_driver(make_user):
    return make_user("otherdriver", RoleType.DELIVERY_DRIVER)


@pytest.fixture
def headers_for(db_session):
    """Factory: headers_for(user) -> Authorization headers with a fresh session."""
    def _headers(user):
        _session, token = session_service.create_session(user.id)
        return auth_headers(token)
    return _headers


@pytest.fixture
def warehouse(db_session):
    warehouse = Warehouse(name="Entrepot Nord", address="1 Route du Marche")
    db_session.add(warehouse)
    db_session.commit()
    return warehouse


@pytest.fixture
def other_warehouse(db_session):
    warehouse = Warehouse(name="Entrepot Sud", address="9 Quai Sud")
    db_session.add(warehouse)
    db_session.commit()
    return warehouse


@pytest.fixture
def product(db_session):
    product = Product(name="Tomatoes", unit="kg")
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture
def product_b(db_session):
    product = Product(name="Onions", unit="kg")
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture
def stock(db_session, product, product_b, warehouse):
    """10 kg tomatoes @ 2.50 and 5 kg onions @ 1.20 in the warehouse."""
    def _seed(session):
        stock_service.increment(product.id, warehouse.id, Decimal("10"), Decimal("2.50"))
        stock_service.increment(product_b.id, warehouse.id, Decimal("5"), Decimal("1.20"))
    unit_of_work(_seed)
    return {"product": product, "product_b": product_b, "warehouse": warehouse}


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
