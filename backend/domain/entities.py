"""
Entités du domaine: identité, rôles, paliers et statuts d'abonnement.

Les paliers (`Tier`) forment une hiérarchie ordonnée free < basic < premium < pro. Les rôles
administrateur et superuser sont indépendants des paliers. Le statut d'abonnement est porté
séparément du palier: un palier payant sans statut `active` équivaut à `free` pour les contrôles.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import field_validator

from backend.domain.models import CreateModel, PartialUpdate, Record


class Role(StrEnum):
    """Rôle d'une identité."""

    USER = "user"
    ADMIN = "admin"
    SUPERUSER = "superuser"

    @property
    def is_admin(self) -> bool:
        """Administrateur et superuser sont équivalents pour l'autorisation."""
        return self in (Role.ADMIN, Role.SUPERUSER)


class Tier(StrEnum):
    """Palier d'abonnement, ordonné."""

    FREE = "free"
    BASIC = "basic"
    PREMIUM = "premium"
    PRO = "pro"

    @property
    def rank(self) -> int:
        """Position ordinale dans la hiérarchie (free=0 … pro=3)."""
        return _TIER_ORDER.index(self)

    @property
    def is_paid(self) -> bool:
        return self.rank > 0


_TIER_ORDER = (Tier.FREE, Tier.BASIC, Tier.PREMIUM, Tier.PRO)


class SubscriptionStatus(StrEnum):
    """Cycle de vie de facturation d'un abonnement."""

    ACTIVE = "active"
    CANCELED = "canceled"
    PAST_DUE = "past_due"
    TRIALING = "trialing"
    INCOMPLETE = "incomplete"


class Identity(Record):
    """Principal authentifié tel que persisté."""

    email: str
    hashed_password: str | None = None
    role: Role = Role.USER
    first_name: str | None = None
    last_name: str | None = None
    is_active: bool = True
    stripe_customer_id: str | None = None
    stripe_subscription_id: str | None = None
    subscription_tier: Tier = Tier.FREE
    subscription_status: SubscriptionStatus | None = None
    subscription_ends_at: datetime | None = None
    last_login_at: datetime | None = None
    updated_at: datetime

    @field_validator("subscription_tier", mode="before")
    @classmethod
    def _tier_defaults_to_free(cls, value):
        return Tier.FREE if value is None else value

    @property
    def is_admin(self) -> bool:
        return self.role.is_admin

    @property
    def has_active_subscription(self) -> bool:
        return self.subscription_status == SubscriptionStatus.ACTIVE


class IdentityCreate(CreateModel):
    """Champs d'inscription; les valeurs par défaut sont celles d'un nouveau compte."""

    email: str
    hashed_password: str | None = None
    role: Role = Role.USER
    first_name: str | None = None
    last_name: str | None = None
    is_active: bool = True
    subscription_tier: Tier = Tier.FREE
    subscription_status: SubscriptionStatus | None = None


class IdentityUpdate(PartialUpdate):
    email: str | None = None
    hashed_password: str | None = None
    role: Role | None = None
    first_name: str | None = None
    last_name: str | None = None
    is_active: bool | None = None
    stripe_customer_id: str | None = None
    stripe_subscription_id: str | None = None
    subscription_tier: Tier | None = None
    subscription_status: SubscriptionStatus | None = None
    subscription_ends_at: datetime | None = None


class SubscriptionUpdate(PartialUpdate):
    """État de facturation écrit par les webhooks du fournisseur de paiement."""

    subscription_tier: Tier | None = None
    subscription_status: SubscriptionStatus | None = None
    subscription_ends_at: datetime | None = None
    stripe_customer_id: str | None = None
    stripe_subscription_id: str | None = None
