"""
Shared fixtures.

The environment is set before any project module is imported, so config.py
picks TestingConfig and never writes a generated SECRET_KEY to .env.
"""
import os
import sys

os.environ['FLASK_ENV'] = 'testing'
os.environ['SECRET_KEY'] = 'test-secret-key-not-for-production-0123456789abcdef'
os.environ['USE_FALLBACK_DATA'] = 'true'
os.environ['ENFORCE_ROLE_SECTIONS'] = 'false'

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from unittest.mock import MagicMock, patch

import server
from backend_client import BackendError
from session_claims import issue_claims

OFFLINE_MESSAGE = "Unable to connect to the server. Please try again."


@pytest.fixture
def app():
    return server.app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def backend():
    """Stand-in for the shared backend client. Every call fails until a test says otherwise."""
    mock = MagicMock()
    offline = BackendError(OFFLINE_MESSAGE)
    mock.get.side_effect = offline
    mock.post.side_effect = offline
    mock.put.side_effect = offline
    with patch.object(server, 'backend', mock):
        yield mock


@pytest.fixture(autouse=True)
def fresh_search_registry():
    with patch.object(server, 'search_registry', server.LatestRequestRegistry()):
        yield


def sign_in(client, role, name='Test User', email='user@npc.edu', token='abc123'):
    claims = issue_claims(server.app.config['SECRET_KEY'], role, name=name, email=email)
    client.set_cookie('loginToken', token)
    client.set_cookie('sessionClaims', claims)
    return client


@pytest.fixture
def admin_client(client):
    return sign_in(client, 'admin', name='Ada Admin', email='admin@npc.edu')


@pytest.fixture
def student_client(client):
    return sign_in(client, 'student', name='Jane Student', email='jane@npc.edu')
