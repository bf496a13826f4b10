"""
Shared pytest fixtures for Becky API tests.
"""
import os
import sys

import pytest

# Select TestingConfig before the app module is imported
os.environ['TESTING'] = '1'
os.environ.setdefault('FLASK_ENV', 'testing')

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, project_root)

DEFAULT_PASSWORD = 'password123'


# ============================================================================
# Flask App Fixtures
# ============================================================================

@pytest.fixture(scope='session')
def app():
    """Create Flask app for testing."""
    from app import app as flask_app
    flask_app.config['TESTING'] = True
    return flask_app


@pytest.fixture(scope='session')
def db(app):
    """Get database instance."""
    from extensions import db as _db
    with app.app_context():
        _db.create_all()
    return _db


@pytest.fixture
def app_context(app):
    """Provide app context for database operations."""
    with app.app_context():
        yield


@pytest.fixture
def client(app):
    """Create a test client."""
    return app.test_client()


@pytest.fixture(autouse=True)
def clean_tables(app, db):
    """Empty every table after each test."""
    yield
    with app.app_context():
        db.session.rollback()
        for table in reversed(db.metadata.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()


# ============================================================================
# User / Account Helpers
# ============================================================================

@pytest.fixture
def make_user(app, db):
    """Factory fixture creating a user and a bearer token for it."""
    def _make(email='alice@example.com', name='Alice'):
        from models import User
        from api_decorators import generate_access_token

        with app.app_context():
            user = User(email=email, name=name, is_active=True)
            user.set_password(DEFAULT_PASSWORD)
            db.session.add(user)
            db.session.commit()

            token = generate_access_token(user.id, user.email)
            return {
                'id': user.id,
                'email': user.email,
                'name': user.name,
                'password': DEFAULT_PASSWORD,
                'token': token,
                'headers': {'Authorization': f'Bearer {token}'},
            }

    return _make


@pytest.fixture
def user(make_user):
    """Default test user."""
    return make_user()


@pytest.fixture
def other_user(make_user):
    """Second user, used to check data isolation."""
    return make_user(email='bob@example.com', name='Bob')


@pytest.fixture
def auth_headers(user):
    return user['headers']


@pytest.fixture
def make_account(client):
    """Factory fixture creating an account through the API."""
    def _make(owner, name='Main Checking', **fields):
        payload = {'name': name, 'bank': 'Galicia', 'type': 'checking'}
        payload.update(fields)
        response = client.post('/accounts', headers=owner['headers'], json=payload)
        assert response.status_code == 201, response.get_json()
        return response.get_json()['id']

    return _make


@pytest.fixture
def account_id(make_account, user):
    """An account owned by the default user."""
    return make_account(user)


@pytest.fixture
def make_movement(client):
    """Factory fixture creating a plain movement through the API."""
    def _make(owner, account, **fields):
        payload = {
            'type': 'expense',
            'concept': 'needs',
            'amount': 100,
            'description': 'Groceries',
            'date': '2024-01-15',
            'category': 'food',
        }
        payload.update(fields)
        response = client.post(f'/movements/account/{account}', headers=owner['headers'], json=payload)
        assert response.status_code == 201, response.get_json()
        return response.get_json()

    return _make
