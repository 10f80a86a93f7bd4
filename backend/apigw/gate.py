"""
Passerelle d'autorisation des requêtes.

Compose, pour chaque requête protégée: vérification du bearer token → résolution de l'identité →
évaluation de l'exigence. Chaque étape peut court-circuiter avec un refus typé (`GateRejection`);
une `StorageError` est propagée telle quelle (rendue en 500 par le handler dédié).

Usage côté routes::

    @router.get("/signals")
    def signals(identity: Identity = Depends(requires_feature("basicSignals"))): ...
"""

from __future__ import annotations

from collections.abc import Callable

import structlog
from fastapi import Request

from backend.apigw.errors import GateRejection
from backend.app.metrics import AUTHENTICATION_FAILURES, ENTITLEMENT_DECISIONS
from backend.domain.auth import CredentialVerifier
from backend.domain.entities import Identity, Tier
from backend.domain.entitlements import (
    ADMIN_ONLY,
    EntitlementEvaluator,
    FeatureRequirement,
    MinimumTier,
    PaymentRequired,
    Requirement,
    requirement_label,
)
from backend.domain.errors import AuthenticationError
from backend.domain.identity import IdentityResolver

log = structlog.get_logger(__name__)


def bearer_token(authorization: str | None) -> str | None:
    """Extrait le jeton d'un en-tête `Authorization: Bearer <token>`."""
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


class RequestGate:
    """Point de contrôle unique des requêtes protégées."""

    def __init__(
        self,
        verifier: CredentialVerifier,
        resolver: IdentityResolver,
        evaluator: EntitlementEvaluator,
    ) -> None:
        self.verifier = verifier
        self.resolver = resolver
        self.evaluator = evaluator

    def authenticate(self, request: Request) -> Identity:
        """Vérifie le jeton, charge l'identité et l'attache à `request.state.identity`.

        Raises:
            GateRejection: 401 avec le code d'authentification.
            StorageError: échec du stockage pendant la résolution.
        """
        token = bearer_token(request.headers.get("Authorization"))
        try:
            subject = self.verifier.verify(token)
            identity = self.resolver.resolve(subject)
        except AuthenticationError as err:
            AUTHENTICATION_FAILURES.labels(code=err.code).inc()
            raise GateRejection.unauthenticated(err) from err
        request.state.identity = identity
        return identity

    def authorize(self, identity: Identity | None, requirement: Requirement) -> None:
        """Évalue l'exigence; lève `GateRejection` (401/402/403) en cas de refus."""
        decision = self.evaluator.evaluate(identity, requirement)
        label = requirement_label(requirement)
        if decision.allowed:
            ENTITLEMENT_DECISIONS.labels(requirement=label, outcome="allow").inc()
            return
        ENTITLEMENT_DECISIONS.labels(requirement=label, outcome=decision.reason.value).inc()
        log.info(
            "entitlement_denied",
            requirement=label,
            reason=decision.reason.value,
            user_id=identity.id if identity else None,
            current_tier=decision.current_tier.value if decision.current_tier else None,
        )
        raise GateRejection.from_decision(decision)

    def check(self, request: Request, requirement: Requirement | None = None) -> Identity:
        """Authentifie puis, si fourni, vérifie `requirement`; retourne l'identité."""
        identity = self.authenticate(request)
        if requirement is not None:
            self.authorize(identity, requirement)
        return identity


def get_gate(request: Request) -> RequestGate:
    """Passerelle de l'application (posée par `create_app`)."""
    return request.app.state.gate


def requires(requirement: Requirement | None = None) -> Callable[[Request], Identity]:
    """Dépendance FastAPI: identité authentifiée satisfaisant `requirement`."""

    def dependency(request: Request) -> Identity:
        return get_gate(request).check(request, requirement)

    return dependency


def requires_tier(tier: Tier | str) -> Callable[[Request], Identity]:
    return requires(MinimumTier(Tier(tier)))


def requires_feature(name: str) -> Callable[[Request], Identity]:
    return requires(FeatureRequirement(name))


def requires_payment() -> Callable[[Request], Identity]:
    return requires(PaymentRequired())


def requires_admin() -> Callable[[Request], Identity]:
    return requires(ADMIN_ONLY)
