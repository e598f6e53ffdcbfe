"""
Pytest fixtures for the BuenaVista test suite.

Provides app configurations for testing features and security controls
in isolation, each with its own temporary instance folder:
- app/client: Base test config (CSRF off, rate limiting off, mail recorded)
- csrf_app/csrf_client: CSRF enabled
- rate_limit_app/rate_limit_client: Rate limiting enabled

Plus factories for users and locations and an already-logged-in client.
"""

import re

import pytest

from buenavista import create_app
from buenavista.config import CSRFTestConfig, RateLimitTestConfig, TestConfig

PASSWORD = 'password123'


@pytest.fixture
def app(tmp_path):
    """Create a Flask app with the base test configuration."""
    yield create_app(TestConfig, instance_path=str(tmp_path))


@pytest.fixture
def client(app):
    """Test client for the base app configuration."""
    return app.test_client()


@pytest.fixture
def csrf_app(tmp_path):
    """Create a Flask app with CSRF protection enabled."""
    yield create_app(CSRFTestConfig, instance_path=str(tmp_path))


@pytest.fixture
def csrf_client(csrf_app):
    """Test client with CSRF protection enabled."""
    return csrf_app.test_client()


@pytest.fixture
def rate_limit_app(tmp_path):
    """Create a Flask app with rate limiting enabled."""
    yield create_app(RateLimitTestConfig, instance_path=str(tmp_path))


@pytest.fixture
def rate_limit_client(rate_limit_app):
    """Test client with rate limiting enabled."""
    return rate_limit_app.test_client()


@pytest.fixture
def make_user(app):
    """Factory: insert a user straight into the store and return it."""
    from buenavista.auth.models import create_user

    def _make_user(username='explorer_one', email='explorer@example.com', password=PASSWORD):
        with app.app_context():
            return create_user(username, email, password)

    return _make_user


@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def other_user(make_user):
    return make_user('wanderer_two', 'wanderer@example.com')


def login(client, username_or_email, password=PASSWORD):
    return client.post('/login', data={
        'usernameOrEmail': username_or_email,
        'password': password,
    })


@pytest.fixture
def authenticated_client(client, user):
    """Test client logged in as ``user``."""
    login(client, user['username'])
    return client


@pytest.fixture
def make_location(app):
    """Factory: insert a location authored by ``author`` and return it."""
    from buenavista.locations.models import AuthorSnapshot, create_location

    def _make_location(author, name='Mirador de San Nicolas',
                       image='https://images.example.com/alhambra.jpg',
                       description='Sunset over the Alhambra.'):
        with app.app_context():
            return create_location(name, image, description, AuthorSnapshot.of(author))

    return _make_location


@pytest.fixture
def location(make_location, user):
    """A location posted by ``user``."""
    return make_location(user)


def extract_csrf_token(html: str) -> str:
    match = re.search(r'name="csrf_token"[^>]*value="([^"]+)"', html)
    assert match, 'CSRF token not found in form'
    return match.group(1)
