"""Tests de contrat du stockage, exécutés sur les backends mémoire et SQL.

Chaque test reçoit la fixture paramétrée `storage`: le même scénario doit donner le même résultat
observable sur les deux implémentations (hors format des identifiants et horodatages).
"""

from __future__ import annotations

import time
from datetime import UTC, date, datetime, timedelta
from decimal import Decimal

import pytest

from backend.domain.entities import (
    IdentityCreate,
    IdentityUpdate,
    Role,
    SubscriptionStatus,
    SubscriptionUpdate,
    Tier,
)
from backend.domain.errors import StorageError
from backend.domain.records import (
    AchievementCreate,
    AchievementUpdate,
    AdminLogCreate,
    CycleCreate,
    DashboardLayoutCreate,
    DashboardLayoutUpdate,
    ForecastCreate,
    HeatmapCreate,
    OhlcCreate,
    PortfolioUpdate,
    SignalCreate,
    SubscriptionPlanCreate,
    TickerCreate,
    TickerUpdate,
    TradeCreate,
    TradingSettingsUpdate,
    UserAchievementCreate,
    UserAchievementUpdate,
    UserAlertCreate,
    UserAlertUpdate,
    UserSettingsCreate,
    UserSettingsUpdate,
    UserStat,
    UserStatsCreate,
    UserStatsUpdate,
    UserSubscriptionCreate,
    WebhookSecretCreate,
    WebhookSecretUpdate,
)
from backend.infra.storage.memory import InMemoryStorage
from backend.infra.storage.sql import SqlStorage

T0 = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)


def _ts(minutes: int) -> datetime:
    return T0 + timedelta(minutes=minutes)


# --- Identités -----------------------------------------------------------------------------------


def test_create_identity_defaults(storage):
    identity = storage.create_identity(IdentityCreate(email="a@test.io"))
    assert identity.id
    assert identity.role is Role.USER
    assert identity.subscription_tier is Tier.FREE
    assert identity.subscription_status is None
    assert identity.is_active is True
    assert identity.created_at.tzinfo is not None
    assert storage.get_identity(identity.id) == identity
    assert storage.get_identity_by_email("a@test.io") == identity


def test_get_identity_absent(storage):
    assert storage.get_identity("missing") is None
    assert storage.get_identity_by_email("nobody@test.io") is None


def test_duplicate_email_rejected(storage):
    storage.create_identity(IdentityCreate(email="dup@test.io"))
    with pytest.raises(StorageError):
        storage.create_identity(IdentityCreate(email="dup@test.io"))


def test_update_identity_merges_and_refreshes_timestamp(storage):
    created = storage.create_identity(IdentityCreate(email="m@test.io", first_name="Ann"))
    time.sleep(0.01)
    updated = storage.update_identity(created.id, IdentityUpdate(last_name="Lee"))
    assert updated.first_name == "Ann"
    assert updated.last_name == "Lee"
    assert updated.created_at == created.created_at
    assert updated.updated_at > created.updated_at
    assert storage.get_identity(created.id) == updated


def test_update_subscription(storage):
    created = storage.create_identity(IdentityCreate(email="s@test.io"))
    updated = storage.update_subscription(
        created.id,
        SubscriptionUpdate(
            subscription_tier=Tier.PREMIUM,
            subscription_status=SubscriptionStatus.ACTIVE,
            stripe_customer_id="cus_1",
        ),
    )
    assert updated.subscription_tier is Tier.PREMIUM
    assert updated.subscription_status is SubscriptionStatus.ACTIVE
    assert updated.stripe_customer_id == "cus_1"
    assert updated.email == "s@test.io"


def test_record_login(storage):
    created = storage.create_identity(IdentityCreate(email="l@test.io"))
    assert created.last_login_at is None
    storage.record_login(created.id)
    assert storage.get_identity(created.id).last_login_at is not None


def test_list_identities_newest_first(storage):
    first = storage.create_identity(IdentityCreate(email="1@test.io"))
    time.sleep(0.01)
    second = storage.create_identity(IdentityCreate(email="2@test.io"))
    assert [i.id for i in storage.list_identities()] == [second.id, first.id]


def test_update_on_missing_key_returns_none(storage):
    assert storage.update_identity("missing", IdentityUpdate(first_name="x")) is None
    assert storage.update_subscription("missing", SubscriptionUpdate(subscription_tier=Tier.PRO)) is None
    assert storage.update_user_settings("missing", UserSettingsUpdate(theme="light")) is None
    assert storage.update_ticker("missing", TickerUpdate(is_enabled=False)) is None
    assert storage.update_webhook_secret("missing", WebhookSecretUpdate(is_active=False)) is None
    assert storage.update_user_alert("missing", UserAlertUpdate(enabled=False)) is None
    assert storage.update_dashboard_layout("missing", DashboardLayoutUpdate(name="x")) is None
    assert storage.update_achievement("missing", AchievementUpdate(points=1)) is None
    assert storage.update_user_achievement("missing", UserAchievementUpdate(progress=1)) is None
    assert storage.update_user_stats("missing", UserStatsUpdate(level=2)) is None
    assert storage.increment_user_stat("missing", UserStat.TOTAL_LOGINS) is None
    assert storage.update_user_achievement_progress("u", "a", 10) is None
    # Aucune création implicite
    assert storage.list_identities() == []
    assert storage.get_user_settings("missing") is None
    assert storage.get_user_stats("missing") is None


# --- Préférences et tickers ---------------------------------------------------------------------


def test_user_settings_defaults_and_update(storage):
    created = storage.create_user_settings(UserSettingsCreate(user_id="u1"))
    assert created.theme == "dark"
    assert created.paper_trading_balance == Decimal("10000")
    updated = storage.update_user_settings("u1", UserSettingsUpdate(theme="light"))
    assert updated.theme == "light"
    assert updated.currency == created.currency
    assert storage.get_user_settings("u1") == updated


def test_tickers_sorted_alphabetically(storage):
    for symbol in ("SOLUSDT", "BTCUSDT", "ETHUSDT"):
        storage.create_ticker(TickerCreate(symbol=symbol, description=symbol))
    assert [t.symbol for t in storage.list_tickers()] == ["BTCUSDT", "ETHUSDT", "SOLUSDT"]


def test_enabled_tickers_and_delete(storage):
    btc = storage.create_ticker(TickerCreate(symbol="BTCUSDT", description="Bitcoin"))
    eth = storage.create_ticker(TickerCreate(symbol="ETHUSDT", description="Ether"))
    assert btc.category == "other" and btc.market_cap == 999 and btc.is_enabled
    storage.update_ticker(eth.id, TickerUpdate(is_enabled=False))
    assert [t.symbol for t in storage.list_enabled_tickers()] == ["BTCUSDT"]
    assert storage.delete_ticker(btc.id) is True
    assert storage.delete_ticker(btc.id) is False
    assert [t.symbol for t in storage.list_tickers()] == ["ETHUSDT"]


def test_duplicate_ticker_symbol_rejected(storage):
    storage.create_ticker(TickerCreate(symbol="BTCUSDT", description="Bitcoin"))
    with pytest.raises(StorageError):
        storage.create_ticker(TickerCreate(symbol="BTCUSDT", description="again"))


# --- Signaux et données de marché ---------------------------------------------------------------


def test_signals_newest_first_with_limit(storage):
    for minute, ticker in ((0, "BTCUSDT"), (10, "ETHUSDT"), (5, "BTCUSDT")):
        storage.create_signal(
            SignalCreate(ticker=ticker, signal_type="buy", price=Decimal("1.5"), timestamp=_ts(minute))
        )
    assert [s.timestamp for s in storage.list_signals()] == [_ts(10), _ts(5), _ts(0)]
    assert [s.timestamp for s in storage.list_signals(limit=2)] == [_ts(10), _ts(5)]
    assert [s.timestamp for s in storage.list_signals_by_ticker("BTCUSDT")] == [_ts(5), _ts(0)]


def test_signal_timestamp_defaults_to_now(storage):
    before = datetime.now(UTC) - timedelta(seconds=1)
    signal = storage.create_signal(
        SignalCreate(user_id="u1", ticker="BTCUSDT", signal_type="sell", price=Decimal("2"))
    )
    assert signal.timestamp >= before
    assert signal.source == "webhook"
    assert [s.id for s in storage.list_signals_by_user("u1")] == [signal.id]


def test_backdated_signal_is_kept(storage):
    signal = storage.create_signal(
        SignalCreate(ticker="BTCUSDT", signal_type="buy", price=Decimal("3"), timestamp=_ts(-600))
    )
    assert storage.list_signals()[0].timestamp == _ts(-600)
    assert signal.created_at > _ts(-600)


def test_ohlc_filtered_and_ordered(storage):
    for minute in (0, 60, 120):
        storage.create_ohlc(
            OhlcCreate(
                symbol="BTCUSDT",
                interval="1h",
                timestamp=_ts(minute),
                open=Decimal("1"),
                high=Decimal("2"),
                low=Decimal("0.5"),
                close=Decimal("1.5"),
            )
        )
    rows = storage.list_ohlc("BTCUSDT", "1h", limit=2)
    assert [r.timestamp for r in rows] == [_ts(120), _ts(60)]
    assert rows[0].volume == Decimal("0")
    assert storage.list_ohlc("BTCUSDT", "4h") == []


def test_heatmap_cycle_forecast_ordered_by_date(storage):
    for day in (1, 15, 8):
        storage.create_heatmap(
            HeatmapCreate(
                ticker="BTCUSDT",
                week=date(2024, 1, day),
                sma_200w=Decimal("100"),
                deviation_percent=Decimal("5"),
                price=Decimal("105"),
            )
        )
        storage.create_cycle_data(
            CycleCreate(
                ticker="BTCUSDT",
                date=date(2024, 1, day),
                ma_2y=Decimal("100"),
                deviation=Decimal("1"),
            )
        )
        storage.create_forecast(
            ForecastCreate(
                ticker="BTCUSDT",
                date=date(2024, 1, day),
                predicted_price=Decimal("110"),
                confidence_low=Decimal("100"),
                confidence_high=Decimal("120"),
            )
        )
    expected = [date(2024, 1, 15), date(2024, 1, 8), date(2024, 1, 1)]
    assert [h.week for h in storage.list_heatmap("BTCUSDT")] == expected
    assert [c.date for c in storage.list_cycle_data("BTCUSDT")] == expected
    assert [f.date for f in storage.list_forecasts("BTCUSDT")] == expected
    assert storage.list_forecasts("ETHUSDT") == []


# --- Administration et offres -------------------------------------------------------------------


def test_admin_logs(storage):
    storage.create_admin_log(AdminLogCreate(admin_id="a1", action="old", timestamp=_ts(0)))
    latest = storage.create_admin_log(AdminLogCreate(admin_id="a1", action="new"))
    logs = storage.list_admin_logs()
    assert [entry.action for entry in logs] == ["new", "old"]
    assert logs[0].id == latest.id
    assert len(storage.list_admin_logs(limit=1)) == 1


def test_subscription_plans(storage):
    storage.create_subscription_plan(
        SubscriptionPlanCreate(name="Pro", tier=Tier.PRO, stripe_price_id="p3", monthly_price=9999)
    )
    storage.create_subscription_plan(
        SubscriptionPlanCreate(name="Basic", tier=Tier.BASIC, stripe_price_id="p1", monthly_price=2999)
    )
    storage.create_subscription_plan(
        SubscriptionPlanCreate(
            name="Legacy", tier=Tier.PREMIUM, stripe_price_id="p2", monthly_price=10, is_active=False
        )
    )
    assert [p.name for p in storage.list_subscription_plans()] == ["Basic", "Pro"]
    assert storage.get_subscription_plan(Tier.PRO).stripe_price_id == "p3"
    assert storage.get_subscription_plan(Tier.FREE) is None


def test_webhook_secrets(storage):
    primary = storage.create_webhook_secret(WebhookSecretCreate(name="primary", secret="s1"))
    storage.create_webhook_secret(WebhookSecretCreate(name="retired", secret="s2", is_active=False))
    assert [s.name for s in storage.list_webhook_secrets()] == ["primary"]
    assert storage.get_webhook_secret("primary").secret == "s1"
    assert storage.get_webhook_secret("retired") is None
    used = storage.update_webhook_secret(primary.id, WebhookSecretUpdate(usage_count=3))
    assert used.usage_count == 3 and used.allowed_sources == []
    with pytest.raises(StorageError):
        storage.create_webhook_secret(WebhookSecretCreate(name="primary", secret="s3"))
    assert storage.delete_webhook_secret(primary.id) is True
    assert storage.list_webhook_secrets() == []


# --- Abonnements aux tickers --------------------------------------------------------------------


def test_user_subscription_defaults(storage):
    sub = storage.create_user_subscription(
        UserSubscriptionCreate(user_id="u1", ticker_symbol="BTCUSDT")
    )
    assert sub.max_alerts_per_day == 50
    assert sub.is_active is True
    assert sub.alert_types == []
    assert sub.subscribed_at is not None


def test_duplicate_ticker_subscriptions_are_kept(storage):
    first = storage.create_user_subscription(
        UserSubscriptionCreate(user_id="u1", ticker_symbol="BTCUSDT")
    )
    second = storage.create_user_subscription(
        UserSubscriptionCreate(user_id="u1", ticker_symbol="BTCUSDT")
    )
    assert first.id != second.id
    rows = storage.list_user_subscriptions("u1")
    assert {r.id for r in rows} == {first.id, second.id}
    assert storage.delete_user_subscription(first.id) is True
    assert [r.id for r in storage.list_user_subscriptions("u1")] == [second.id]
    assert storage.delete_user_subscription(first.id) is False


# --- Trading -------------------------------------------------------------------------------------


def test_trades(storage):
    trade = storage.create_trade(
        TradeCreate(
            user_id="u1",
            ticker="BTCUSDT",
            type="BUY",
            amount=Decimal("0.5"),
            price=Decimal("60000"),
            total=Decimal("30000"),
        )
    )
    assert trade.status == "EXECUTED" and trade.mode == "paper"
    assert [t.id for t in storage.list_trades("u1")] == [trade.id]
    assert storage.list_trades("u2") == []


def test_portfolio_get_or_create(storage):
    created = storage.update_portfolio("u1", "BTCUSDT", PortfolioUpdate(quantity=Decimal("2")))
    assert created.quantity == Decimal("2")
    assert created.average_price == Decimal("0")
    assert created.pnl == Decimal("0")
    merged = storage.update_portfolio("u1", "BTCUSDT", PortfolioUpdate(pnl=Decimal("15")))
    assert merged.id == created.id
    assert merged.quantity == Decimal("2")
    assert merged.pnl == Decimal("15")
    other = storage.update_portfolio("u1", "ETHUSDT", PortfolioUpdate())
    assert other.id != created.id
    assert len(storage.list_portfolio("u1")) == 2


def test_trading_settings_get_or_create(storage):
    assert storage.get_trading_settings("u1") is None
    created = storage.update_trading_settings("u1", TradingSettingsUpdate(auto_trading=True))
    assert created.auto_trading is True
    assert created.risk_level == "moderate"
    assert created.max_trade_amount == Decimal("1000")
    updated = storage.update_trading_settings("u1", TradingSettingsUpdate(risk_level="high"))
    assert updated.id == created.id
    assert updated.auto_trading is True
    assert storage.get_trading_settings("u1") == updated


def test_user_alerts_crud(storage):
    alert = storage.create_user_alert(
        UserAlertCreate(user_id="u1", ticker="BTCUSDT", value=Decimal("70000"))
    )
    assert alert.channels == ["email"]
    assert alert.condition == "above"
    updated = storage.update_user_alert(alert.id, UserAlertUpdate(trigger_count=2))
    assert updated.trigger_count == 2 and updated.value == Decimal("70000")
    assert [a.id for a in storage.list_user_alerts("u1")] == [alert.id]
    assert storage.delete_user_alert(alert.id) is True
    assert storage.list_user_alerts("u1") == []


def test_dashboard_layout_save_replaces_default(storage):
    assert storage.get_dashboard_layout("u1") is None
    first = storage.save_dashboard_layout(
        DashboardLayoutCreate(user_id="u1", layout_config={"cols": 2}, is_default=True)
    )
    second = storage.save_dashboard_layout(
        DashboardLayoutCreate(user_id="u1", layout_config={"cols": 3}, is_default=True)
    )
    assert second.id == first.id
    assert storage.get_dashboard_layout("u1").layout_config == {"cols": 3}
    renamed = storage.update_dashboard_layout(first.id, DashboardLayoutUpdate(name="main"))
    assert renamed.name == "main" and renamed.layout_config == {"cols": 3}


# --- Gamification --------------------------------------------------------------------------------


def test_achievements_active_oldest_first(storage):
    first = storage.create_achievement(
        AchievementCreate(name="First", description="d", category="login")
    )
    time.sleep(0.01)
    second = storage.create_achievement(
        AchievementCreate(name="Second", description="d", category="login", points=10)
    )
    storage.create_achievement(
        AchievementCreate(name="Hidden", description="d", category="x", is_active=False)
    )
    assert [a.id for a in storage.list_achievements()] == [first.id, second.id]
    assert storage.get_achievement(second.id).points == 10
    assert storage.delete_achievement(first.id) is True
    assert storage.get_achievement(first.id) is None


def test_unlock_and_progress_user_achievement(storage):
    partial = storage.unlock_user_achievement(
        UserAchievementCreate(user_id="u1", achievement_id="a1", progress=40, target=100)
    )
    assert partial.is_completed is False
    assert partial.completed_at is None
    done = storage.update_user_achievement_progress("u1", "a1", 100)
    assert done.is_completed is True
    assert done.completed_at is not None
    again = storage.update_user_achievement_progress("u1", "a1", 120)
    assert again.completed_at == done.completed_at
    unlocked = storage.unlock_user_achievement(
        UserAchievementCreate(user_id="u1", achievement_id="a2")
    )
    assert unlocked.is_completed is True
    assert {a.achievement_id for a in storage.list_user_achievements("u1")} == {"a1", "a2"}


def test_user_stats_increment(storage):
    storage.create_user_stats(UserStatsCreate(user_id="u1"))
    storage.increment_user_stat("u1", UserStat.TOTAL_LOGINS)
    stats = storage.increment_user_stat("u1", UserStat.TOTAL_POINTS, 25)
    assert stats.total_logins == 1
    assert stats.total_points == 25
    assert stats.level == 1
    assert storage.update_user_stats("u1", UserStatsUpdate(level=3)).total_points == 25
    with pytest.raises(StorageError):
        storage.create_user_stats(UserStatsCreate(user_id="u1"))


# --- Parité entre backends -----------------------------------------------------------------------

_VOLATILE = {"id", "created_at", "updated_at", "subscribed_at", "timestamp", "last_login_at"}


def _scenario(storage):
    """Séquence d'opérations représentative; renvoie les résultats observables."""
    out = []
    ident = storage.create_identity(IdentityCreate(email="p@test.io", first_name="P"))
    out.append(storage.update_identity(ident.id, IdentityUpdate(subscription_tier=Tier.BASIC)))
    out.append(storage.update_identity("nope", IdentityUpdate(first_name="x")))
    out.append(storage.create_user_settings(UserSettingsCreate(user_id=ident.id)))
    out.append(storage.create_ticker(TickerCreate(symbol="BTCUSDT", description="Bitcoin")))
    out.append(storage.create_user_subscription(UserSubscriptionCreate(user_id=ident.id, ticker_symbol="BTCUSDT")))
    out.append(storage.update_portfolio(ident.id, "BTCUSDT", PortfolioUpdate(quantity=Decimal("1.25"))))
    out.append(storage.update_portfolio(ident.id, "BTCUSDT", PortfolioUpdate(pnl=Decimal("-3"))))
    out.append(storage.update_trading_settings(ident.id, TradingSettingsUpdate(stop_loss=Decimal("2"))))
    out.append(storage.create_user_alert(UserAlertCreate(user_id=ident.id, ticker="BTCUSDT", value=Decimal("1"))))
    out.append(storage.save_dashboard_layout(DashboardLayoutCreate(user_id=ident.id, is_default=True)))
    out.append(storage.create_user_stats(UserStatsCreate(user_id=ident.id)))
    out.append(storage.increment_user_stat(ident.id, UserStat.ALERTS_CREATED, 2))
    out.append(storage.get_webhook_secret("none"))
    out.extend(storage.list_tickers())
    out.extend(storage.list_portfolio(ident.id))
    return [None if r is None else r.model_dump(exclude=_VOLATILE) for r in out]


def test_backends_produce_identical_results():
    memory = _scenario(InMemoryStorage(seed=False))
    sql = _scenario(SqlStorage.from_url("sqlite+pysqlite:///:memory:", auto_create=True))
    # Les identifiants diffèrent; on neutralise les clés étrangères vers l'identité.
    for rows in (memory, sql):
        for row in rows:
            if row and "user_id" in row:
                row["user_id"] = "<identity>"
    assert memory == sql


def test_memory_storage_returns_copies(memory_storage):
    created = memory_storage.create_identity(IdentityCreate(email="c@test.io"))
    created.first_name = "mutated"
    assert memory_storage.get_identity(created.id).first_name is None
