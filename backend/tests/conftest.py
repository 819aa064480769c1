"""
Pytest fixtures for Duka POS backend tests.

Provides the application, an in-memory database wiped between tests, a
test client, catalog fixtures and authenticated request headers.
"""

import pytest

from duka import create_app
from duka.extensions import db
from duka.services import auth_service, catalog_service

PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'SALE_TOTAL_POLICY': 'verify',
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


@pytest.fixture(scope='function', autouse=True)
def db_session(app):
    """Fresh database contents for each test."""
    # Clear all data but keep schema
    for table in reversed(db.metadata.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()

    yield db.session

    db.session.rollback()
    db.session.remove()


@pytest.fixture(scope='function')
def category(db_session):
    return catalog_service.create_category("Beverages", "Soft drinks and water")


@pytest.fixture(scope='function')
def product(category):
    """Stock 10, selling price 100.00, no VAT."""
    return catalog_service.create_product({
        "name": "Soda 500ml",
        "category_id": category.id,
        "purchase_price": "60.00",
        "selling_price": "100.00",
        "vat": 0,
        "stock_level": 10,
        "supplier_name": "Coastal Bottlers",
    })


@pytest.fixture(scope='function')
def admin_user(db_session):
    return auth_service.create_user("admin", "admin@duka.local", PASSWORD, role="admin")


@pytest.fixture(scope='function')
def cashier_user(db_session):
    return auth_service.create_user("cashier", "cashier@duka.local", PASSWORD, role="cashier")


def get_auth_token(client, email: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'email': email,
        'password': password
    })
    assert response.status_code == 200, response.get_json()
    return response.get_json()['token']


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(client, admin_user):
    return auth_headers(get_auth_token(client, admin_user.email))


@pytest.fixture(scope='function')
def cashier_headers(client, cashier_user):
    return auth_headers(get_auth_token(client, cashier_user.email))
