"""
Conteneur d'injection de dépendances.

Instancie une fois par processus les composants centraux: configuration, backend de stockage,
vérificateur de jetons, résolveur d'identité, évaluateur d'entitlements et passerelle. Aucun
singleton de module: `create_app` reçoit (ou construit) un `Container` et l'expose via
`app.state`.

Sélection du stockage (une seule fois, au démarrage):
- `DATABASE_URL` présent et base joignable → `SqlStorage`;
- sinon → `InMemoryStorage` (avertissement journalisé), sauf si `REQUIRE_DATABASE` est vrai,
  auquel cas le démarrage échoue.
"""

from __future__ import annotations

import structlog

from backend.apigw.gate import RequestGate
from backend.core.settings import Settings, get_settings
from backend.domain.auth import CredentialVerifier
from backend.domain.entities import Identity
from backend.domain.entitlements import EntitlementEvaluator, UnknownFeaturePolicy
from backend.domain.errors import ConfigurationError, StorageError
from backend.domain.identity import IdentityResolver
from backend.infra.storage.base import Storage
from backend.infra.storage.memory import InMemoryStorage
from backend.infra.storage.sql import SqlStorage

log = structlog.get_logger(__name__)


class Container:
    def __init__(self, settings: Settings | None = None, storage: Storage | None = None):
        self.settings = settings or get_settings()
        if storage is None:
            storage, self.storage_backend = self._select_storage()
        else:
            self.storage_backend = storage.backend_name
        self.storage = storage
        self.verifier = CredentialVerifier(self.settings.JWT_SECRET, self.settings.JWT_ALG)
        self.resolver = IdentityResolver(storage)
        self.evaluator = EntitlementEvaluator(
            UnknownFeaturePolicy(self.settings.UNKNOWN_FEATURE_POLICY)
        )
        self.gate = RequestGate(self.verifier, self.resolver, self.evaluator)

    def _select_storage(self) -> tuple[Storage, str]:
        settings = self.settings
        if settings.DATABASE_URL:
            try:
                storage = SqlStorage.from_url(
                    settings.DATABASE_URL, auto_create=settings.DATABASE_AUTO_CREATE
                )
                log.info("storage_backend_selected", backend=storage.backend_name)
                return storage, storage.backend_name
            except StorageError as err:
                if settings.REQUIRE_DATABASE:
                    raise ConfigurationError("database required but unavailable") from err
                log.warning("storage_backend_fallback", backend="memory", error=str(err))
                return InMemoryStorage(seed=settings.SEED_DEMO_DATA), "memory-fallback"
        if settings.REQUIRE_DATABASE:
            raise ConfigurationError("database required but DATABASE_URL not set")
        log.warning("storage_backend_selected", backend="memory", durable=False)
        return InMemoryStorage(seed=settings.SEED_DEMO_DATA), "memory"

    def issue_token(self, identity: Identity) -> str:
        """Émet un token d'accès pour `identity` (sub, email, role)."""
        return self.verifier.issue(
            identity.id,
            expires_min=self.settings.JWT_EXPIRES_MIN,
            email=identity.email,
            role=identity.role.value,
        )
