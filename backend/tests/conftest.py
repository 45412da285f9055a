"""
Pytest fixtures for the Roti Factory ERP backend tests.

Provides a fresh in-memory database per test, one user per role with bearer
headers, and small catalog/counter/franchise fixtures.
"""

import pytest

from rotierp import create_app
from rotierp.extensions import db
from rotierp.models import Counter, Franchise, Product
from rotierp.services.auth_service import create_user
from rotierp.services import token_service

PASSWORD = "Password123!"


@pytest.fixture(scope='function')
def app(tmp_path):
    """Create application for testing with an empty schema."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'ORDER_TAX_RATE_BPS': 500,
        'AUTH_STRATEGY': 'database',
        'JWT_SECRET': 'test-access-secret-0123456789abcdef',
        'JWT_REFRESH_SECRET': 'test-refresh-secret-0123456789abcdef',
        'BACKUP_DIR': str(tmp_path / 'backups'),
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def runner(app):
    return app.test_cli_runner()


def auth_headers(user) -> dict:
    """Bearer header for a user, signed without a login round trip."""
    return {'Authorization': f'Bearer {token_service.sign_token(user)}'}


def _make_user(role: str, email: str, **kwargs):
    return create_user(
        email=email,
        password=PASSWORD,
        first_name=kwargs.pop('first_name', role.title().replace('_', ' ')),
        last_name=kwargs.pop('last_name', 'User'),
        role=role,
        **kwargs,
    )


@pytest.fixture(scope='function')
def make_user(app):
    """Factory: make_user("MANAGER", "m2@rotifactory.com")."""
    return _make_user


@pytest.fixture(scope='function')
def super_admin(app):
    return _make_user('SUPER_ADMIN', 'superadmin@rotifactory.com')


@pytest.fixture(scope='function')
def admin(app):
    return _make_user('ADMIN', 'admin@rotifactory.com')


@pytest.fixture(scope='function')
def manager(app):
    return _make_user('MANAGER', 'manager@rotifactory.com')


@pytest.fixture(scope='function')
def franchise_manager(app):
    return _make_user('FRANCHISE_MANAGER', 'franchise@rotifactory.com')


@pytest.fixture(scope='function')
def operator(app):
    return _make_user('COUNTER_OPERATOR', 'counter@rotifactory.com')


@pytest.fixture(scope='function')
def super_admin_headers(super_admin):
    return auth_headers(super_admin)


@pytest.fixture(scope='function')
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture(scope='function')
def manager_headers(manager):
    return auth_headers(manager)


@pytest.fixture(scope='function')
def franchise_manager_headers(franchise_manager):
    return auth_headers(franchise_manager)


@pytest.fixture(scope='function')
def operator_headers(operator):
    return auth_headers(operator)


@pytest.fixture(scope='function')
def product(app):
    """Create an active roti product priced at 8.00."""
    product = Product(name="Butter Roti", sku="ROTI-BUTTER", category="ROTI", unit_price_cents=800)
    db.session.add(product)
    db.session.commit()
    return product


@pytest.fixture(scope='function')
def franchise(app, franchise_manager):
    """Create a franchise managed by the franchise_manager user."""
    franchise = Franchise(
        name="North Franchise",
        code="FR-NORTH",
        owner_name="Asha Verma",
        city="Delhi",
        manager_user_id=franchise_manager.id,
    )
    db.session.add(franchise)
    db.session.commit()
    return franchise


@pytest.fixture(scope='function')
def counter(app, franchise):
    """Create an active counter under the franchise."""
    counter = Counter(name="Main Counter", location="Sector 12", franchise_id=franchise.id)
    db.session.add(counter)
    db.session.commit()
    return counter


@pytest.fixture(scope='function')
def other_counter(app):
    """Create an active counter with no franchise."""
    counter = Counter(name="Factory Gate", location="Factory")
    db.session.add(counter)
    db.session.commit()
    return counter
