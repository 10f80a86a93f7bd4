"""
Gestion des entitlements utilisateur pour l'autorisation.

Ce module décide, pour une identité et une exigence de capacité, si l'accès est autorisé. La
décision est déterministe et sans I/O; elle porte un code de raison et assez de contexte (palier
requis, palier courant, statut) pour construire une invitation à la mise à niveau.

Ordre d'évaluation:
1. identité absente → refus `NOT_AUTHENTICATED`;
2. rôle administrateur/superuser → autorisation pour toute exigence;
3. palier minimum → statut actif exigé pour tout palier payant, puis comparaison ordinale;
4. fonctionnalité nommée → palier (ou rôle admin) issu de `FEATURE_REQUIREMENTS`; un nom inconnu
   suit `UnknownFeaturePolicy` (autorisé par défaut, avec avertissement);
5. paiement requis → palier payant et statut actif;
6. admin uniquement → refus `ADMIN_REQUIRED`.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from types import MappingProxyType

import structlog

from backend.domain.entities import Identity, Role, SubscriptionStatus, Tier

log = structlog.get_logger(__name__)


class ReasonCode(StrEnum):
    """Taxonomie fixe des refus d'autorisation."""

    NOT_AUTHENTICATED = "NOT_AUTHENTICATED"
    SUBSCRIPTION_INACTIVE = "SUBSCRIPTION_INACTIVE"
    TIER_INSUFFICIENT = "SUBSCRIPTION_INSUFFICIENT"
    PAYMENT_REQUIRED = "PAYMENT_REQUIRED"
    ADMIN_REQUIRED = "ADMIN_REQUIRED"


class Feature(StrEnum):
    """Fonctionnalités connues, soumises à un palier minimum ou au rôle admin."""

    DASHBOARD = "dashboard"
    ALERTS = "alerts"
    HEATMAP = "heatmap"
    BASIC_CHARTS = "basicCharts"
    BASIC_SIGNALS = "basicSignals"
    MEMBERS = "members"
    ADVANCED_ALERTS = "advancedAlerts"
    HISTORICAL_DATA = "historicalData"
    FORECASTING = "forecasting"
    CYCLE_ANALYSIS = "cycleAnalysis"
    LIVE_STREAMING = "liveStreaming"
    TRADING_PLAYGROUND = "tradingPlayground"
    ADVANCED_ANALYTICS = "advancedAnalytics"
    PORTFOLIO_MANAGEMENT = "portfolioManagement"
    API_ACCESS = "apiAccess"
    ADMIN_DASHBOARD = "adminDashboard"
    USER_MANAGEMENT = "userManagement"
    SYSTEM_CONFIGURATION = "systemConfiguration"


class UnknownFeaturePolicy(StrEnum):
    """Traitement d'un nom de fonctionnalité absent de la table."""

    ALLOW = "allow"
    DENY = "deny"


@dataclass(frozen=True)
class MinimumTier:
    """Exige un palier au moins égal à `tier`."""

    tier: Tier


@dataclass(frozen=True)
class FeatureRequirement:
    """Exige l'accès à une fonctionnalité nommée."""

    name: str

    @property
    def feature(self) -> Feature | None:
        """Fonctionnalité connue correspondant au nom, ou None si inconnue."""
        try:
            return Feature(self.name)
        except ValueError:
            return None


@dataclass(frozen=True)
class PaymentRequired:
    """Exige un abonnement payant actif, quel que soit le palier."""


@dataclass(frozen=True)
class AdminOnly:
    """Exige le rôle administrateur ou superuser."""


Requirement = MinimumTier | FeatureRequirement | PaymentRequired | AdminOnly

ADMIN_ONLY = AdminOnly()

FEATURE_REQUIREMENTS: Mapping[Feature, Tier | AdminOnly] = MappingProxyType(
    {
        Feature.DASHBOARD: Tier.BASIC,
        Feature.ALERTS: Tier.BASIC,
        Feature.HEATMAP: Tier.BASIC,
        Feature.BASIC_CHARTS: Tier.BASIC,
        Feature.BASIC_SIGNALS: Tier.BASIC,
        Feature.MEMBERS: Tier.BASIC,
        Feature.ADVANCED_ALERTS: Tier.PREMIUM,
        Feature.HISTORICAL_DATA: Tier.PREMIUM,
        Feature.FORECASTING: Tier.PREMIUM,
        Feature.CYCLE_ANALYSIS: Tier.PREMIUM,
        Feature.LIVE_STREAMING: Tier.PREMIUM,
        Feature.TRADING_PLAYGROUND: Tier.PRO,
        Feature.ADVANCED_ANALYTICS: Tier.PRO,
        Feature.PORTFOLIO_MANAGEMENT: Tier.PRO,
        Feature.API_ACCESS: Tier.PRO,
        Feature.ADMIN_DASHBOARD: ADMIN_ONLY,
        Feature.USER_MANAGEMENT: ADMIN_ONLY,
        Feature.SYSTEM_CONFIGURATION: ADMIN_ONLY,
    }
)


@dataclass(frozen=True)
class Decision:
    """Résultat d'une évaluation: autorisation ou refus motivé."""

    allowed: bool
    reason: ReasonCode | None = None
    error: str | None = None
    message: str | None = None
    required_tier: Tier | None = None
    feature: str | None = None
    current_tier: Tier | None = None
    subscription_status: SubscriptionStatus | None = None
    current_role: Role | None = None


ALLOW = Decision(allowed=True)


class EntitlementEvaluator:
    """Fonction de décision pure combinant identité et exigence."""

    def __init__(
        self, unknown_feature_policy: UnknownFeaturePolicy = UnknownFeaturePolicy.ALLOW
    ) -> None:
        self.unknown_feature_policy = UnknownFeaturePolicy(unknown_feature_policy)

    def evaluate(self, identity: Identity | None, requirement: Requirement) -> Decision:
        """Évalue `requirement` pour `identity` (voir l'ordre dans la docstring du module)."""
        if identity is None:
            return Decision(
                allowed=False,
                reason=ReasonCode.NOT_AUTHENTICATED,
                error="Authentication required",
            )
        if identity.is_admin:
            return ALLOW

        match requirement:
            case MinimumTier(tier=tier):
                return self._check_tier(identity, tier)
            case FeatureRequirement():
                return self._check_feature(identity, requirement)
            case PaymentRequired():
                return self._check_payment(identity)
            case AdminOnly():
                return self._deny_admin(identity)
        raise TypeError(f"unsupported requirement: {requirement!r}")

    def _check_tier(
        self, identity: Identity, required: Tier, feature: str | None = None
    ) -> Decision:
        current = identity.subscription_tier
        if required.is_paid and not identity.has_active_subscription:
            return Decision(
                allowed=False,
                reason=ReasonCode.SUBSCRIPTION_INACTIVE,
                error="Active subscription required",
                message=f"An active {required} subscription is required",
                required_tier=required,
                feature=feature,
                current_tier=current,
                subscription_status=identity.subscription_status,
            )
        if current.rank < required.rank:
            return Decision(
                allowed=False,
                reason=ReasonCode.TIER_INSUFFICIENT,
                error="Insufficient subscription tier",
                message=f"This feature requires {required} subscription or higher",
                required_tier=required,
                feature=feature,
                current_tier=current,
                subscription_status=identity.subscription_status,
            )
        return ALLOW

    def _check_feature(self, identity: Identity, requirement: FeatureRequirement) -> Decision:
        feature = requirement.feature
        if feature is None:
            return self._unknown_feature(identity, requirement.name)
        target = FEATURE_REQUIREMENTS[feature]
        if isinstance(target, AdminOnly):
            return self._deny_admin(identity, feature=feature.value)
        return self._check_tier(identity, target, feature=feature.value)

    def _unknown_feature(self, identity: Identity, name: str) -> Decision:
        log.warning(
            "unknown_feature_requirement",
            feature=name,
            policy=self.unknown_feature_policy.value,
        )
        if self.unknown_feature_policy is UnknownFeaturePolicy.ALLOW:
            return ALLOW
        return Decision(
            allowed=False,
            reason=ReasonCode.TIER_INSUFFICIENT,
            error="Unknown feature",
            message=f"Feature '{name}' is not available",
            feature=name,
            current_tier=identity.subscription_tier,
            subscription_status=identity.subscription_status,
        )

    def _check_payment(self, identity: Identity) -> Decision:
        if identity.subscription_tier.is_paid and identity.has_active_subscription:
            return ALLOW
        return Decision(
            allowed=False,
            reason=ReasonCode.PAYMENT_REQUIRED,
            error="Payment required",
            message="A paid subscription is required to access this feature",
            current_tier=identity.subscription_tier,
            subscription_status=identity.subscription_status,
        )

    def _deny_admin(self, identity: Identity, feature: str | None = None) -> Decision:
        return Decision(
            allowed=False,
            reason=ReasonCode.ADMIN_REQUIRED,
            error="Administrator access required",
            message="Administrator access required",
            feature=feature,
            current_tier=identity.subscription_tier,
            subscription_status=identity.subscription_status,
            current_role=identity.role,
        )


def requirement_label(requirement: Requirement) -> str:
    """Libellé court d'une exigence (journaux et métriques)."""
    match requirement:
        case MinimumTier(tier=tier):
            return f"tier:{tier}"
        case FeatureRequirement(name=name):
            return f"feature:{name}"
        case PaymentRequired():
            return "payment"
        case AdminOnly():
            return "admin"
    return "unknown"
