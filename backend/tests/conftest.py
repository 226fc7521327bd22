"""
Configuration partagée pour tous les tests.
Override la dépendance get_db pour éviter toute connexion réelle à PostgreSQL.
"""

import os

os.environ.setdefault("SCHEDULER_ENABLED", "false")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from unittest.mock import MagicMock  # noqa: E402

from soucheapp.database import get_db  # noqa: E402
from soucheapp.dependencies import get_capability  # noqa: E402
from soucheapp.main import app  # noqa: E402
from soucheapp.schemas.auth import Capability  # noqa: E402
from soucheapp.services.feed import feed  # noqa: E402


@pytest.fixture(autouse=True)
def reset_feed():
    """Le snapshot est global au processus : on le vide entre chaque test."""
    feed.clear()
    yield
    feed.clear()


@pytest.fixture
def db_mock():
    """Session SQLAlchemy mockée injectée par le client de test."""
    return MagicMock()


@pytest.fixture
def client(db_mock):
    """Client HTTP de test avec la BDD mockée."""
    app.dependency_overrides[get_db] = lambda: db_mock
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def as_delegue():
    """Requêtes authentifiées comme délégué de ISE1."""
    capability = Capability(role="delegue", nom="KOUASSI AMA", classe="ISE1")
    app.dependency_overrides[get_capability] = lambda: capability
    yield capability
    app.dependency_overrides.pop(get_capability, None)


@pytest.fixture
def as_admin():
    """Requêtes authentifiées comme administrateur."""
    capability = Capability(role="admin", nom="Administration")
    app.dependency_overrides[get_capability] = lambda: capability
    yield capability
    app.dependency_overrides.pop(get_capability, None)
