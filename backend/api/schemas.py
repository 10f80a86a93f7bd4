# Schémas Pydantic exposés par l'API (requêtes et réponses).

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from backend.domain.entities import Role, SubscriptionStatus, Tier


class SignupPayload(BaseModel):
    """Payload pour l'inscription d'un nouvel utilisateur (palier free)."""

    email: EmailStr
    password: str = Field(min_length=6)
    first_name: str | None = None
    last_name: str | None = None


class LoginPayload(BaseModel):
    """Payload pour la connexion d'un utilisateur."""

    email: EmailStr
    password: str


class IdentityOut(BaseModel):
    """Profil public d'une identité (sans hash de mot de passe ni identifiants Stripe)."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    role: Role
    first_name: str | None = None
    last_name: str | None = None
    subscription_tier: Tier
    subscription_status: SubscriptionStatus | None = None
    subscription_ends_at: datetime | None = None
    last_login_at: datetime | None = None


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: IdentityOut


class TickerSubscriptionPayload(BaseModel):
    """Abonnement aux alertes d'un ticker pour l'utilisateur courant."""

    ticker_symbol: str
    max_alerts_per_day: int | None = None
    alert_types: list[str] = []
    delivery_methods: list[str] = []
    notes: str | None = None


class PortfolioPayload(BaseModel):
    quantity: Decimal | None = None
    average_price: Decimal | None = None
    current_value: Decimal | None = None
    pnl: Decimal | None = None
    pnl_percentage: Decimal | None = None
