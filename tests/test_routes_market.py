"""Tests des routes de marché protégées (données renvoyées une fois l'accès accordé)."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from backend.core.http_constants import (
    HTTP_CREATED,
    HTTP_FORBIDDEN,
    HTTP_NO_CONTENT,
    HTTP_NOT_FOUND,
    HTTP_OK,
    HTTP_UNAUTHORIZED,
)
from backend.domain.entities import Role, Tier
from backend.domain.records import (
    AdminLogCreate,
    ForecastCreate,
    SignalCreate,
    SubscriptionPlanCreate,
    TickerCreate,
)


def test_plans_are_public(client, container):
    container.storage.create_subscription_plan(
        SubscriptionPlanCreate(name="Basic", tier=Tier.BASIC, stripe_price_id="p1", monthly_price=2999)
    )
    r = client.get("/api/plans")
    assert r.status_code == HTTP_OK
    assert [p["tier"] for p in r.json()] == ["basic"]


def test_tickers_require_authentication_only(client, container, make_identity, auth_headers):
    container.storage.create_ticker(TickerCreate(symbol="ETHUSDT", description="Ether"))
    container.storage.create_ticker(TickerCreate(symbol="BTCUSDT", description="Bitcoin"))
    assert client.get("/api/tickers").status_code == HTTP_UNAUTHORIZED
    r = client.get("/api/tickers", headers=auth_headers(make_identity(tier=Tier.FREE)))
    assert r.status_code == HTTP_OK
    assert [t["symbol"] for t in r.json()] == ["BTCUSDT", "ETHUSDT"]


def test_signals_for_basic_tier(client, container, make_identity, auth_headers):
    container.storage.create_signal(
        SignalCreate(ticker="BTCUSDT", signal_type="buy", price=Decimal("65000"))
    )
    container.storage.create_signal(
        SignalCreate(ticker="ETHUSDT", signal_type="sell", price=Decimal("3000"))
    )
    headers = auth_headers(make_identity(tier=Tier.BASIC))
    assert len(client.get("/api/signals", headers=headers).json()) == 2
    r = client.get("/api/signals", params={"ticker": "ETHUSDT"}, headers=headers)
    assert [s["ticker"] for s in r.json()] == ["ETHUSDT"]


def test_forecast_requires_premium(client, container, make_identity, auth_headers):
    container.storage.create_forecast(
        ForecastCreate(
            ticker="BTCUSDT",
            date=date(2024, 6, 1),
            predicted_price=Decimal("70000"),
            confidence_low=Decimal("65000"),
            confidence_high=Decimal("75000"),
        )
    )
    basic = client.get("/api/forecast/BTCUSDT", headers=auth_headers(make_identity(tier=Tier.BASIC)))
    assert basic.status_code == HTTP_FORBIDDEN
    assert basic.json()["requiredTier"] == "premium"
    premium = client.get(
        "/api/forecast/BTCUSDT", headers=auth_headers(make_identity(tier=Tier.PREMIUM))
    )
    assert premium.status_code == HTTP_OK
    assert premium.json()[0]["date"] == "2024-06-01"


def test_ticker_subscriptions_flow(client, make_identity, auth_headers):
    owner = make_identity(tier=Tier.BASIC)
    headers = auth_headers(owner)
    payload = {"ticker_symbol": "BTCUSDT"}
    first = client.post("/api/subscriptions", json=payload, headers=headers)
    second = client.post("/api/subscriptions", json=payload, headers=headers)
    assert first.status_code == second.status_code == HTTP_CREATED
    assert first.json()["max_alerts_per_day"] == 50
    listed = client.get("/api/subscriptions", headers=headers).json()
    assert len(listed) == 2

    intruder = auth_headers(make_identity(tier=Tier.BASIC))
    sub_id = first.json()["id"]
    assert client.delete(f"/api/subscriptions/{sub_id}", headers=intruder).status_code == HTTP_NOT_FOUND
    assert client.delete(f"/api/subscriptions/{sub_id}", headers=headers).status_code == HTTP_NO_CONTENT
    assert len(client.get("/api/subscriptions", headers=headers).json()) == 1


def test_portfolio_requires_pro(client, make_identity, auth_headers):
    premium = auth_headers(make_identity(tier=Tier.PREMIUM))
    assert client.get("/api/portfolio", headers=premium).status_code == HTTP_FORBIDDEN
    pro = auth_headers(make_identity(tier=Tier.PRO))
    r = client.put("/api/portfolio/BTCUSDT", json={"quantity": "1.5"}, headers=pro)
    assert r.status_code == HTTP_OK
    r = client.put("/api/portfolio/BTCUSDT", json={"pnl": "10"}, headers=pro)
    positions = client.get("/api/portfolio", headers=pro).json()
    assert len(positions) == 1
    assert Decimal(positions[0]["quantity"]) == Decimal("1.5")
    assert Decimal(positions[0]["pnl"]) == Decimal("10")


def test_admin_routes(client, container, make_identity, auth_headers):
    admin = make_identity(role=Role.ADMIN)
    container.storage.create_admin_log(AdminLogCreate(admin_id=admin.id, action="grant"))
    headers = auth_headers(admin)
    logs = client.get("/api/admin/logs", headers=headers)
    assert logs.status_code == HTTP_OK
    assert logs.json()[0]["action"] == "grant"
    users = client.get("/api/admin/users", headers=headers).json()
    assert [u["id"] for u in users] == [admin.id]
    assert all("hashed_password" not in u for u in users)


def test_storage_health_is_admin_only(client, make_identity, auth_headers):
    user = auth_headers(make_identity(tier=Tier.PRO))
    assert client.get("/health/storage", headers=user).status_code == HTTP_FORBIDDEN
    admin = auth_headers(make_identity(role=Role.ADMIN))
    r = client.get("/health/storage", headers=admin)
    assert r.status_code == HTTP_OK
    assert r.json()["backend"] == "memory"
    assert r.json()["collections"]["users"] == 2
