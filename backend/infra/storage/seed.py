"""Données de démonstration du backend mémoire.

Trois comptes permettent d'utiliser l'API sans base durable:

- `admin@proudprofits.com` / `admin123` (admin, pro);
- `user@proudprofits.com` / `user123` (free);
- `demo@proudprofits.com` / `demo123` (premium).

Les mots de passe sont hachés à la construction (aucun hash figé dans le code).
"""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal

from backend.domain.auth import hash_password
from backend.domain.entities import Identity, Role, SubscriptionStatus, Tier
from backend.domain.models import Record, utcnow
from backend.domain.records import (
    Achievement,
    AlertSignal,
    AvailableTicker,
    SubscriptionPlan,
    UserStats,
    UserSubscription,
    WebhookSecret,
)

DEMO_ADMIN_ID = "admin-user-456"
DEMO_USER_ID = "user-user-789"
DEMO_PREMIUM_ID = "demo-user-123"


def _identities(now: datetime) -> list[Identity]:
    accounts = [
        (DEMO_ADMIN_ID, "admin@proudprofits.com", "admin123", Role.ADMIN, "Admin", Tier.PRO),
        (DEMO_USER_ID, "user@proudprofits.com", "user123", Role.USER, "Regular", Tier.FREE),
        (DEMO_PREMIUM_ID, "demo@proudprofits.com", "demo123", Role.USER, "Demo", Tier.PREMIUM),
    ]
    return [
        Identity(
            id=ident,
            email=email,
            hashed_password=hash_password(password),
            role=role,
            first_name=first_name,
            last_name="User",
            subscription_tier=tier,
            subscription_status=SubscriptionStatus.ACTIVE,
            created_at=now,
            updated_at=now,
        )
        for ident, email, password, role, first_name, tier in accounts
    ]


def _tickers(now: datetime) -> list[AvailableTicker]:
    rows = [
        ("ticker-btc", "BTCUSDT", "Bitcoin / USD Tether", "major", 1),
        ("ticker-eth", "ETHUSDT", "Ethereum / USD Tether", "major", 2),
        ("ticker-ada", "ADAUSDT", "Cardano / USD Tether", "layer1", 8),
    ]
    return [
        AvailableTicker(
            id=ident,
            symbol=symbol,
            description=description,
            category=category,
            market_cap=rank,
            created_at=now,
            updated_at=now,
        )
        for ident, symbol, description, category, rank in rows
    ]


def _signals(now: datetime) -> list[AlertSignal]:
    rows = [
        ("signal-btc-30m", "BTCUSDT", "buy", "67500.00", 15, "30M", "Strong upward momentum detected"),
        ("signal-btc-1h", "BTCUSDT", "buy", "67200.00", 60, "1H", "Breakout above resistance"),
        ("signal-eth-4h", "ETHUSDT", "sell", "3450.00", 240, "4H", "Bearish divergence"),
        ("signal-ada-1d", "ADAUSDT", "buy", "0.45", 1440, "1D", "Support level holding"),
    ]
    signals = []
    for ident, ticker, kind, price, minutes_ago, timeframe, note in rows:
        at = now - timedelta(minutes=minutes_ago)
        signals.append(
            AlertSignal(
                id=ident,
                user_id=DEMO_PREMIUM_ID,
                ticker=ticker,
                signal_type=kind,
                price=Decimal(price),
                timestamp=at,
                timeframe=timeframe,
                source="tradingview",
                note=note,
                created_at=at,
                updated_at=at,
            )
        )
    return signals


def _plans(now: datetime) -> list[SubscriptionPlan]:
    return [
        SubscriptionPlan(
            id="plan-free",
            name="Free Plan",
            tier=Tier.FREE,
            stripe_price_id="price_free",
            monthly_price=0,
            yearly_price=0,
            features=["Basic signals", "Limited charts", "3 tickers"],
            max_signals=10,
            max_tickers=3,
            created_at=now,
            updated_at=now,
        ),
        SubscriptionPlan(
            id="plan-basic",
            name="Basic Plan",
            tier=Tier.BASIC,
            stripe_price_id="price_basic_monthly",
            monthly_price=2999,
            yearly_price=29999,
            features=["Advanced signals", "Full charts", "10 tickers", "Email alerts"],
            max_signals=100,
            max_tickers=10,
            created_at=now,
            updated_at=now,
        ),
    ]


def _user_subscriptions(now: datetime) -> list[UserSubscription]:
    subscriptions = []
    for ident, symbol, days_ago in (
        ("sub-btc", "BTCUSDT", 7),
        ("sub-eth", "ETHUSDT", 5),
        ("sub-sol", "SOLUSDT", 3),
    ):
        at = now - timedelta(days=days_ago)
        subscriptions.append(
            UserSubscription(
                id=ident,
                user_id=DEMO_PREMIUM_ID,
                ticker_symbol=symbol,
                subscribed_at=at,
                created_at=at,
                updated_at=at,
            )
        )
    return subscriptions


def _webhook_secrets(now: datetime) -> list[WebhookSecret]:
    return [
        WebhookSecret(
            id="webhook-tradingview",
            name="tradingview-primary",
            secret="tradingview_webhook_secret_2025",
            description="Primary TradingView webhook secret",
            allowed_sources=["tradingview"],
            created_at=now,
            updated_at=now,
        )
    ]


def _achievements(now: datetime) -> list[Achievement]:
    rows = [
        ("First Login", "Complete your first login to the platform", "milestone", "star", "gold", 10, "login_count", 1, "common"),
        ("Week Warrior", "Login for 7 consecutive days", "streak", "trophy", "gold", 50, "login_streak", 7, "rare"),
        ("Signal Hunter", "Receive your first trading signal", "trading", "badge", "blue", 15, "signals_received", 1, "common"),
        ("Dashboard Explorer", "Visit the dashboard 10 times", "learning", "medal", "bronze", 25, "dashboard_views", 10, "common"),
        ("Alert Master", "Create 5 custom alerts", "trading", "target", "purple", 30, "alerts_created", 5, "rare"),
    ]
    achievements = []
    # Ordre de création conservé (liste triée par created_at croissant).
    for index, (name, description, category, icon, color, points, kind, target, rarity) in enumerate(rows):
        at = now - timedelta(seconds=len(rows) - index)
        achievements.append(
            Achievement(
                id=f"achievement-{index + 1}",
                name=name,
                description=description,
                category=category,
                icon_type=icon,
                icon_color=color,
                points=points,
                requirement={"type": kind, "target": target},
                rarity=rarity,
                created_at=at,
                updated_at=at,
            )
        )
    return achievements


def _user_stats(now: datetime) -> list[UserStats]:
    return [
        UserStats(id="stats-demo", user_id=DEMO_PREMIUM_ID, created_at=now, updated_at=now)
    ]


def demo_records(now: datetime | None = None) -> dict[str, list[Record]]:
    """Enregistrements de démonstration, indexés par nom de collection."""
    now = now or utcnow()
    return {
        "identities": _identities(now),
        "tickers": _tickers(now),
        "signals": _signals(now),
        "subscription_plans": _plans(now),
        "user_subscriptions": _user_subscriptions(now),
        "webhook_secrets": _webhook_secrets(now),
        "achievements": _achievements(now),
        "user_stats": _user_stats(now),
    }
