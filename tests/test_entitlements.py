"""Tests de l'évaluateur d'entitlements.

Couvre le contournement administrateur, l'ordre des paliers, la dégradation d'un palier payant
inactif, la politique des fonctionnalités inconnues et les refus par paiement ou rôle.
"""

from __future__ import annotations

from itertools import combinations

import pytest

from backend.domain.entities import Identity, Role, SubscriptionStatus, Tier
from backend.domain.entitlements import (
    ADMIN_ONLY,
    FEATURE_REQUIREMENTS,
    EntitlementEvaluator,
    Feature,
    FeatureRequirement,
    MinimumTier,
    PaymentRequired,
    ReasonCode,
    UnknownFeaturePolicy,
    requirement_label,
)
from backend.domain.models import utcnow

TIERS = [Tier.FREE, Tier.BASIC, Tier.PREMIUM, Tier.PRO]
ALL_REQUIREMENTS = [
    *(MinimumTier(t) for t in TIERS),
    *(FeatureRequirement(f.value) for f in Feature),
    FeatureRequirement("notARealFeature"),
    PaymentRequired(),
    ADMIN_ONLY,
]


def _identity(
    tier: Tier = Tier.FREE,
    status: SubscriptionStatus | None = SubscriptionStatus.ACTIVE,
    role: Role = Role.USER,
) -> Identity:
    now = utcnow()
    return Identity(
        id="u1",
        email="u1@test.io",
        role=role,
        subscription_tier=tier,
        subscription_status=status,
        created_at=now,
        updated_at=now,
    )


@pytest.fixture
def evaluator():
    return EntitlementEvaluator()


def test_absent_identity_is_not_authenticated(evaluator):
    decision = evaluator.evaluate(None, MinimumTier(Tier.FREE))
    assert not decision.allowed
    assert decision.reason is ReasonCode.NOT_AUTHENTICATED


@pytest.mark.parametrize("role", [Role.ADMIN, Role.SUPERUSER])
@pytest.mark.parametrize("status", [None, SubscriptionStatus.CANCELED])
def test_admin_bypass_is_total(evaluator, role, status):
    """Un administrateur (même free et sans abonnement) passe toutes les exigences."""
    admin = _identity(tier=Tier.FREE, status=status, role=role)
    for requirement in ALL_REQUIREMENTS:
        assert evaluator.evaluate(admin, requirement).allowed, requirement


@pytest.mark.parametrize("lower,higher", list(combinations(TIERS, 2)))
def test_tier_ordering(evaluator, lower, higher):
    assert not evaluator.evaluate(_identity(tier=lower), MinimumTier(higher)).allowed
    assert evaluator.evaluate(_identity(tier=higher), MinimumTier(lower)).allowed


@pytest.mark.parametrize("tier", TIERS)
def test_same_tier_is_allowed(evaluator, tier):
    assert evaluator.evaluate(_identity(tier=tier), MinimumTier(tier)).allowed


@pytest.mark.parametrize(
    "status",
    [
        None,
        SubscriptionStatus.CANCELED,
        SubscriptionStatus.PAST_DUE,
        SubscriptionStatus.TRIALING,
        SubscriptionStatus.INCOMPLETE,
    ],
)
@pytest.mark.parametrize("required", [Tier.BASIC, Tier.PREMIUM, Tier.PRO])
def test_inactive_paid_tier_degrades_to_free(evaluator, status, required):
    pro = _identity(tier=Tier.PRO, status=status)
    free = _identity(tier=Tier.FREE)
    inactive = evaluator.evaluate(pro, MinimumTier(required))
    assert not inactive.allowed
    assert inactive.reason is ReasonCode.SUBSCRIPTION_INACTIVE
    assert not evaluator.evaluate(free, MinimumTier(required)).allowed


def test_inactive_paid_tier_still_gets_free_requirements(evaluator):
    pro = _identity(tier=Tier.PRO, status=SubscriptionStatus.CANCELED)
    assert evaluator.evaluate(pro, MinimumTier(Tier.FREE)).allowed


@pytest.mark.parametrize("tier", TIERS)
@pytest.mark.parametrize("role", [Role.USER, Role.ADMIN])
def test_unknown_feature_fails_open(evaluator, tier, role):
    identity = _identity(tier=tier, status=None, role=role)
    assert evaluator.evaluate(identity, FeatureRequirement("unmappedFeature")).allowed


def test_unknown_feature_deny_policy():
    evaluator = EntitlementEvaluator(UnknownFeaturePolicy.DENY)
    decision = evaluator.evaluate(_identity(tier=Tier.PRO), FeatureRequirement("unmapped"))
    assert not decision.allowed
    assert decision.reason is ReasonCode.TIER_INSUFFICIENT
    assert decision.feature == "unmapped"
    assert decision.error == "Unknown feature"


def test_free_user_denied_basic_feature(evaluator):
    decision = evaluator.evaluate(_identity(tier=Tier.FREE), FeatureRequirement("alerts"))
    assert not decision.allowed
    assert decision.reason is ReasonCode.TIER_INSUFFICIENT
    assert decision.required_tier is Tier.BASIC
    assert decision.current_tier is Tier.FREE
    assert decision.feature == "alerts"
    assert decision.message == "This feature requires basic subscription or higher"


def test_canceled_pro_denied_basic_feature(evaluator):
    identity = _identity(tier=Tier.PRO, status=SubscriptionStatus.CANCELED)
    decision = evaluator.evaluate(identity, FeatureRequirement("heatmap"))
    assert not decision.allowed
    assert decision.reason is ReasonCode.SUBSCRIPTION_INACTIVE
    assert decision.subscription_status is SubscriptionStatus.CANCELED


def test_admin_free_tier_allowed_admin_only(evaluator):
    admin = _identity(tier=Tier.FREE, role=Role.ADMIN)
    assert evaluator.evaluate(admin, ADMIN_ONLY).allowed


def test_admin_only_denies_regular_user(evaluator):
    decision = evaluator.evaluate(_identity(tier=Tier.PRO), ADMIN_ONLY)
    assert decision.reason is ReasonCode.ADMIN_REQUIRED
    assert decision.current_role is Role.USER


def test_admin_feature_denies_pro_user(evaluator):
    decision = evaluator.evaluate(_identity(tier=Tier.PRO), FeatureRequirement("userManagement"))
    assert decision.reason is ReasonCode.ADMIN_REQUIRED
    assert decision.feature == "userManagement"
    assert decision.required_tier is None
    assert decision.current_role is Role.USER


@pytest.mark.parametrize(
    "tier,status,allowed",
    [
        (Tier.FREE, SubscriptionStatus.ACTIVE, False),
        (Tier.BASIC, SubscriptionStatus.ACTIVE, True),
        (Tier.PRO, SubscriptionStatus.ACTIVE, True),
        (Tier.PREMIUM, SubscriptionStatus.PAST_DUE, False),
        (Tier.BASIC, None, False),
    ],
)
def test_payment_required(evaluator, tier, status, allowed):
    decision = evaluator.evaluate(_identity(tier=tier, status=status), PaymentRequired())
    assert decision.allowed is allowed
    if not allowed:
        assert decision.reason is ReasonCode.PAYMENT_REQUIRED


def test_feature_table_covers_every_feature():
    assert set(FEATURE_REQUIREMENTS) == set(Feature)


def test_requirement_labels():
    assert requirement_label(MinimumTier(Tier.PRO)) == "tier:pro"
    assert requirement_label(FeatureRequirement("alerts")) == "feature:alerts"
    assert requirement_label(PaymentRequired()) == "payment"
    assert requirement_label(ADMIN_ONLY) == "admin"
