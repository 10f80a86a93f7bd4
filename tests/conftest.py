"""Configuration de test pour pytest avec gestion des chemins.

Ce module configure pytest pour résoudre les imports backend en ajoutant la racine du projet au
sys.path, et fournit les fixtures partagées: configuration, backends de stockage (mémoire et
SQLite en mémoire), émission de tokens et client HTTP.
"""

import os
import sys

import pytest

# Ensure project root is on sys.path so that
# imports like `from backend...` resolve.
CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from fastapi.testclient import TestClient  # noqa: E402

from backend.app.main import create_app  # noqa: E402
from backend.core.container import Container  # noqa: E402
from backend.core.settings import get_settings  # noqa: E402
from backend.domain.auth import hash_password  # noqa: E402
from backend.domain.entities import (  # noqa: E402
    IdentityCreate,
    Role,
    SubscriptionStatus,
    Tier,
)
from backend.infra.storage.memory import InMemoryStorage  # noqa: E402
from backend.infra.storage.sql import SqlStorage  # noqa: E402

TEST_SECRET = "test-secret"
SQLITE_MEMORY_URL = "sqlite+pysqlite:///:memory:"


@pytest.fixture
def settings():
    """Configuration de test: secret fixe, pas de base durable."""
    return get_settings(JWT_SECRET=TEST_SECRET, DATABASE_URL=None, SEED_DEMO_DATA=False)


@pytest.fixture
def memory_storage():
    return InMemoryStorage(seed=False)


@pytest.fixture
def sql_storage():
    return SqlStorage.from_url(SQLITE_MEMORY_URL, auto_create=True)


@pytest.fixture(params=["memory", "sql"])
def storage(request):
    """Backend paramétré: chaque test de contrat tourne sur les deux implémentations."""
    if request.param == "memory":
        return InMemoryStorage(seed=False)
    return SqlStorage.from_url(SQLITE_MEMORY_URL, auto_create=True)


@pytest.fixture
def container(settings, memory_storage):
    return Container(settings=settings, storage=memory_storage)


@pytest.fixture
def client(container):
    return TestClient(create_app(container))


@pytest.fixture
def make_identity(container):
    """Crée une identité dans le stockage du conteneur et retourne l'enregistrement."""
    counter = iter(range(1, 10_000))

    def _make(
        tier: Tier = Tier.FREE,
        status: SubscriptionStatus | None = SubscriptionStatus.ACTIVE,
        role: Role = Role.USER,
        is_active: bool = True,
        password: str = "secret123",
    ):
        return container.storage.create_identity(
            IdentityCreate(
                email=f"user{next(counter)}@test.io",
                hashed_password=hash_password(password),
                role=role,
                is_active=is_active,
                subscription_tier=tier,
                subscription_status=status,
            )
        )

    return _make


@pytest.fixture
def auth_headers(container):
    """En-têtes `Authorization` portant un token valide pour l'identité donnée."""

    def _headers(identity):
        return {"Authorization": f"Bearer {container.issue_token(identity)}"}

    return _headers
