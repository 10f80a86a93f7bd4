"""
Backend de stockage en mémoire.

Implémentation complète de `Storage` (pas un mock): chaque collection est une liste protégée par
son propre verrou, ce qui rend atomiques les fusions partielles et le get-or-create par clé
composite. Les enregistrements renvoyés sont des copies: les modifier n'altère pas le stockage.

Les contraintes d'unicité du schéma durable sont reproduites et lèvent `StorageError`.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable
from typing import Any, Generic, TypeVar

import structlog

from backend.core.http_constants import (
    DEFAULT_ADMIN_LOG_LIMIT,
    DEFAULT_OHLC_LIMIT,
    DEFAULT_SIGNAL_LIMIT,
    DEFAULT_TRADE_LIMIT,
)
from backend.domain.entities import (
    Identity,
    IdentityCreate,
    IdentityUpdate,
    SubscriptionUpdate,
    Tier,
)
from backend.domain.errors import StorageError
from backend.domain.models import Record, utcnow
from backend.domain.records import (
    Achievement,
    AchievementCreate,
    AchievementUpdate,
    AdminLogCreate,
    AdminLogEntry,
    AlertSignal,
    AvailableTicker,
    CycleCreate,
    CycleDataPoint,
    DashboardLayout,
    DashboardLayoutCreate,
    DashboardLayoutUpdate,
    ForecastCreate,
    ForecastPoint,
    HeatmapCreate,
    HeatmapPoint,
    OhlcCandle,
    OhlcCreate,
    PortfolioUpdate,
    SignalCreate,
    SubscriptionPlan,
    SubscriptionPlanCreate,
    TickerCreate,
    TickerUpdate,
    TradeCreate,
    TradingSettings,
    TradingSettingsUpdate,
    UserAchievement,
    UserAchievementCreate,
    UserAchievementUpdate,
    UserAlert,
    UserAlertCreate,
    UserAlertUpdate,
    UserPortfolioPosition,
    UserSettings,
    UserSettingsCreate,
    UserSettingsUpdate,
    UserStat,
    UserStats,
    UserStatsCreate,
    UserStatsUpdate,
    UserSubscription,
    UserSubscriptionCreate,
    UserTrade,
    WebhookSecret,
    WebhookSecretCreate,
    WebhookSecretUpdate,
)
from backend.infra.storage.base import Storage, build_record
from backend.infra.storage.seed import demo_records

log = structlog.get_logger(__name__)

R = TypeVar("R", bound=Record)


class _Collection(Generic[R]):
    """Liste d'enregistrements d'un même type, avec verrou et contraintes d'unicité."""

    def __init__(self, name: str, unique: Iterable[tuple[str, ...]] = ()) -> None:
        self.name = name
        self.unique = tuple(unique)
        self.lock = threading.RLock()
        self._rows: list[R] = []

    def __len__(self) -> int:
        return len(self._rows)

    def _check_unique(self, row: R, ignore_id: str | None = None) -> None:
        for fields in self.unique:
            key = tuple(getattr(row, f) for f in fields)
            for other in self._rows:
                if other.id != ignore_id and tuple(getattr(other, f) for f in fields) == key:
                    raise StorageError(
                        f"duplicate key on {self.name}({', '.join(fields)})"
                    )

    def load(self, rows: Iterable[R]) -> None:
        with self.lock:
            for row in rows:
                self._check_unique(row)
                self._rows.append(row)

    def insert(self, row: R) -> R:
        with self.lock:
            self._check_unique(row)
            self._rows.append(row)
            return row.model_copy(deep=True)

    def find(self, predicate: Callable[[R], bool]) -> R | None:
        with self.lock:
            row = next((r for r in self._rows if predicate(r)), None)
            return row.model_copy(deep=True) if row is not None else None

    def select(self, predicate: Callable[[R], bool] | None = None) -> list[R]:
        with self.lock:
            return [
                r.model_copy(deep=True)
                for r in self._rows
                if predicate is None or predicate(r)
            ]

    def update(self, predicate: Callable[[R], bool], changes: dict[str, Any]) -> R | None:
        """Fusionne `changes` dans le premier enregistrement correspondant (None si absent)."""
        with self.lock:
            for index, row in enumerate(self._rows):
                if not predicate(row):
                    continue
                stamps = {"updated_at": utcnow()} if "updated_at" in type(row).model_fields else {}
                merged = row.merged(changes, **stamps)
                self._check_unique(merged, ignore_id=row.id)
                self._rows[index] = merged
                return merged.model_copy(deep=True)
            return None

    def delete(self, predicate: Callable[[R], bool]) -> bool:
        with self.lock:
            for index, row in enumerate(self._rows):
                if predicate(row):
                    del self._rows[index]
                    return True
            return False


def _newest_first(rows: list[R], attr: str, limit: int | None = None) -> list[R]:
    ordered = sorted(rows, key=lambda r: (getattr(r, attr), r.id), reverse=True)
    return ordered if limit is None else ordered[:limit]


def _oldest_first(rows: list[R], attr: str) -> list[R]:
    return sorted(rows, key=lambda r: (getattr(r, attr), r.id))


def _by_id(record_id: str) -> Callable[[Record], bool]:
    return lambda r: r.id == record_id


class InMemoryStorage(Storage):
    """Backend en processus; semé de données de démonstration par défaut."""

    backend_name = "memory"

    def __init__(self, seed: bool = True) -> None:
        self._identities: _Collection[Identity] = _Collection("users", [("email",)])
        self._settings: _Collection[UserSettings] = _Collection("user_settings", [("user_id",)])
        self._tickers: _Collection[AvailableTicker] = _Collection(
            "available_tickers", [("symbol",)]
        )
        self._signals: _Collection[AlertSignal] = _Collection("alert_signals")
        self._ohlc: _Collection[OhlcCandle] = _Collection("ohlc_cache")
        self._heatmap: _Collection[HeatmapPoint] = _Collection("heatmap_data")
        self._cycles: _Collection[CycleDataPoint] = _Collection("cycle_data")
        self._forecasts: _Collection[ForecastPoint] = _Collection("forecast_data")
        self._admin_logs: _Collection[AdminLogEntry] = _Collection("admin_logs")
        self._plans: _Collection[SubscriptionPlan] = _Collection("subscription_plans")
        self._webhook_secrets: _Collection[WebhookSecret] = _Collection(
            "webhook_secrets", [("name",)]
        )
        self._user_subscriptions: _Collection[UserSubscription] = _Collection(
            "user_subscriptions"
        )
        self._trades: _Collection[UserTrade] = _Collection("user_trades")
        self._portfolio: _Collection[UserPortfolioPosition] = _Collection(
            "user_portfolio", [("user_id", "ticker")]
        )
        self._trading_settings: _Collection[TradingSettings] = _Collection(
            "trading_settings", [("user_id",)]
        )
        self._alerts: _Collection[UserAlert] = _Collection("user_alerts")
        self._layouts: _Collection[DashboardLayout] = _Collection("dashboard_layouts")
        self._achievements: _Collection[Achievement] = _Collection("achievements")
        self._user_achievements: _Collection[UserAchievement] = _Collection(
            "user_achievements"
        )
        self._user_stats: _Collection[UserStats] = _Collection("user_stats", [("user_id",)])
        if seed:
            self._seed()

    def _collections(self) -> list[_Collection[Any]]:
        return [v for v in vars(self).values() if isinstance(v, _Collection)]

    def _seed(self) -> None:
        targets = {
            "identities": self._identities,
            "tickers": self._tickers,
            "signals": self._signals,
            "subscription_plans": self._plans,
            "user_subscriptions": self._user_subscriptions,
            "webhook_secrets": self._webhook_secrets,
            "achievements": self._achievements,
            "user_stats": self._user_stats,
        }
        for name, rows in demo_records().items():
            targets[name].load(rows)
        log.info("memory_storage_seeded", identities=len(self._identities))

    def health(self) -> dict[str, Any]:
        return {
            "backend": self.backend_name,
            "collections": {c.name: len(c) for c in self._collections()},
        }

    # --- Identités ---------------------------------------------------------------------------

    def get_identity(self, identity_id: str) -> Identity | None:
        return self._identities.find(_by_id(identity_id))

    def get_identity_by_email(self, email: str) -> Identity | None:
        return self._identities.find(lambda u: u.email == email)

    def create_identity(self, data: IdentityCreate) -> Identity:
        return self._identities.insert(build_record(Identity, data))

    def update_identity(self, identity_id: str, update: IdentityUpdate) -> Identity | None:
        return self._identities.update(_by_id(identity_id), update.changes())

    def update_subscription(
        self, identity_id: str, update: SubscriptionUpdate
    ) -> Identity | None:
        return self._identities.update(_by_id(identity_id), update.changes())

    def record_login(self, identity_id: str) -> None:
        self._identities.update(_by_id(identity_id), {"last_login_at": utcnow()})

    def list_identities(self) -> list[Identity]:
        return _newest_first(self._identities.select(), "created_at")

    # --- Préférences ------------------------------------------------------------------------

    def get_user_settings(self, user_id: str) -> UserSettings | None:
        return self._settings.find(lambda s: s.user_id == user_id)

    def create_user_settings(self, data: UserSettingsCreate) -> UserSettings:
        return self._settings.insert(build_record(UserSettings, data))

    def update_user_settings(
        self, user_id: str, update: UserSettingsUpdate
    ) -> UserSettings | None:
        return self._settings.update(lambda s: s.user_id == user_id, update.changes())

    # --- Tickers ----------------------------------------------------------------------------

    def list_tickers(self) -> list[AvailableTicker]:
        return sorted(self._tickers.select(), key=lambda t: t.symbol)

    def list_enabled_tickers(self) -> list[AvailableTicker]:
        return sorted(self._tickers.select(lambda t: t.is_enabled), key=lambda t: t.symbol)

    def create_ticker(self, data: TickerCreate) -> AvailableTicker:
        return self._tickers.insert(build_record(AvailableTicker, data))

    def update_ticker(self, ticker_id: str, update: TickerUpdate) -> AvailableTicker | None:
        return self._tickers.update(_by_id(ticker_id), update.changes())

    def delete_ticker(self, ticker_id: str) -> bool:
        return self._tickers.delete(_by_id(ticker_id))

    # --- Signaux et données de marché -------------------------------------------------------

    def list_signals(self, limit: int = DEFAULT_SIGNAL_LIMIT) -> list[AlertSignal]:
        return _newest_first(self._signals.select(), "timestamp", limit)

    def list_signals_by_ticker(
        self, ticker: str, limit: int = DEFAULT_SIGNAL_LIMIT
    ) -> list[AlertSignal]:
        return _newest_first(self._signals.select(lambda s: s.ticker == ticker), "timestamp", limit)

    def list_signals_by_user(
        self, user_id: str, limit: int = DEFAULT_SIGNAL_LIMIT
    ) -> list[AlertSignal]:
        return _newest_first(
            self._signals.select(lambda s: s.user_id == user_id), "timestamp", limit
        )

    def create_signal(self, data: SignalCreate) -> AlertSignal:
        return self._signals.insert(
            build_record(AlertSignal, data, timestamp=data.timestamp or utcnow())
        )

    def list_ohlc(
        self, symbol: str, interval: str, limit: int = DEFAULT_OHLC_LIMIT
    ) -> list[OhlcCandle]:
        rows = self._ohlc.select(lambda c: c.symbol == symbol and c.interval == interval)
        return _newest_first(rows, "timestamp", limit)

    def create_ohlc(self, data: OhlcCreate) -> OhlcCandle:
        return self._ohlc.insert(build_record(OhlcCandle, data))

    def list_heatmap(self, ticker: str) -> list[HeatmapPoint]:
        return _newest_first(self._heatmap.select(lambda h: h.ticker == ticker), "week")

    def create_heatmap(self, data: HeatmapCreate) -> HeatmapPoint:
        return self._heatmap.insert(build_record(HeatmapPoint, data))

    def list_cycle_data(self, ticker: str) -> list[CycleDataPoint]:
        return _newest_first(self._cycles.select(lambda c: c.ticker == ticker), "date")

    def create_cycle_data(self, data: CycleCreate) -> CycleDataPoint:
        return self._cycles.insert(build_record(CycleDataPoint, data))

    def list_forecasts(self, ticker: str) -> list[ForecastPoint]:
        return _newest_first(self._forecasts.select(lambda f: f.ticker == ticker), "date")

    def create_forecast(self, data: ForecastCreate) -> ForecastPoint:
        return self._forecasts.insert(build_record(ForecastPoint, data))

    # --- Administration ---------------------------------------------------------------------

    def list_admin_logs(self, limit: int = DEFAULT_ADMIN_LOG_LIMIT) -> list[AdminLogEntry]:
        return _newest_first(self._admin_logs.select(), "timestamp", limit)

    def create_admin_log(self, data: AdminLogCreate) -> AdminLogEntry:
        return self._admin_logs.insert(
            build_record(AdminLogEntry, data, timestamp=data.timestamp or utcnow())
        )

    def list_subscription_plans(self) -> list[SubscriptionPlan]:
        active = self._plans.select(lambda p: p.is_active)
        return sorted(active, key=lambda p: (p.monthly_price, p.id))

    def get_subscription_plan(self, tier: Tier) -> SubscriptionPlan | None:
        return self._plans.find(lambda p: p.tier == tier)

    def create_subscription_plan(self, data: SubscriptionPlanCreate) -> SubscriptionPlan:
        return self._plans.insert(build_record(SubscriptionPlan, data))

    def list_webhook_secrets(self) -> list[WebhookSecret]:
        return _oldest_first(self._webhook_secrets.select(lambda s: s.is_active), "created_at")

    def get_webhook_secret(self, name: str) -> WebhookSecret | None:
        return self._webhook_secrets.find(lambda s: s.name == name and s.is_active)

    def create_webhook_secret(self, data: WebhookSecretCreate) -> WebhookSecret:
        return self._webhook_secrets.insert(build_record(WebhookSecret, data))

    def update_webhook_secret(
        self, secret_id: str, update: WebhookSecretUpdate
    ) -> WebhookSecret | None:
        return self._webhook_secrets.update(_by_id(secret_id), update.changes())

    def delete_webhook_secret(self, secret_id: str) -> bool:
        return self._webhook_secrets.delete(_by_id(secret_id))

    # --- Abonnements aux tickers ------------------------------------------------------------

    def list_user_subscriptions(self, user_id: str) -> list[UserSubscription]:
        rows = self._user_subscriptions.select(lambda s: s.user_id == user_id)
        return _newest_first(rows, "subscribed_at")

    def create_user_subscription(self, data: UserSubscriptionCreate) -> UserSubscription:
        return self._user_subscriptions.insert(
            build_record(UserSubscription, data, subscribed_at=utcnow())
        )

    def delete_user_subscription(self, subscription_id: str) -> bool:
        return self._user_subscriptions.delete(_by_id(subscription_id))

    # --- Trading ----------------------------------------------------------------------------

    def list_trades(self, user_id: str, limit: int = DEFAULT_TRADE_LIMIT) -> list[UserTrade]:
        rows = self._trades.select(lambda t: t.user_id == user_id)
        return _newest_first(rows, "timestamp", limit)

    def create_trade(self, data: TradeCreate) -> UserTrade:
        return self._trades.insert(build_record(UserTrade, data, timestamp=utcnow()))

    def list_portfolio(self, user_id: str) -> list[UserPortfolioPosition]:
        return _newest_first(self._portfolio.select(lambda p: p.user_id == user_id), "created_at")

    def update_portfolio(
        self, user_id: str, ticker: str, update: PortfolioUpdate
    ) -> UserPortfolioPosition:
        changes = update.changes()
        with self._portfolio.lock:
            updated = self._portfolio.update(
                lambda p: p.user_id == user_id and p.ticker == ticker, changes
            )
            if updated is not None:
                return updated
            return self._portfolio.insert(
                build_record(UserPortfolioPosition, changes, user_id=user_id, ticker=ticker)
            )

    def get_trading_settings(self, user_id: str) -> TradingSettings | None:
        return self._trading_settings.find(lambda s: s.user_id == user_id)

    def update_trading_settings(
        self, user_id: str, update: TradingSettingsUpdate
    ) -> TradingSettings:
        changes = update.changes()
        with self._trading_settings.lock:
            updated = self._trading_settings.update(lambda s: s.user_id == user_id, changes)
            if updated is not None:
                return updated
            return self._trading_settings.insert(
                build_record(TradingSettings, changes, user_id=user_id)
            )

    def list_user_alerts(self, user_id: str) -> list[UserAlert]:
        return _newest_first(self._alerts.select(lambda a: a.user_id == user_id), "created_at")

    def create_user_alert(self, data: UserAlertCreate) -> UserAlert:
        return self._alerts.insert(build_record(UserAlert, data))

    def update_user_alert(self, alert_id: str, update: UserAlertUpdate) -> UserAlert | None:
        return self._alerts.update(_by_id(alert_id), update.changes())

    def delete_user_alert(self, alert_id: str) -> bool:
        return self._alerts.delete(_by_id(alert_id))

    def get_dashboard_layout(self, user_id: str) -> DashboardLayout | None:
        return self._layouts.find(lambda d: d.user_id == user_id and d.is_default)

    def save_dashboard_layout(self, data: DashboardLayoutCreate) -> DashboardLayout:
        with self._layouts.lock:
            updated = self._layouts.update(
                lambda d: d.user_id == data.user_id and d.is_default, data.model_dump()
            )
            if updated is not None:
                return updated
            return self._layouts.insert(build_record(DashboardLayout, data))

    def update_dashboard_layout(
        self, layout_id: str, update: DashboardLayoutUpdate
    ) -> DashboardLayout | None:
        return self._layouts.update(_by_id(layout_id), update.changes())

    # --- Gamification -----------------------------------------------------------------------

    def list_achievements(self) -> list[Achievement]:
        return _oldest_first(self._achievements.select(lambda a: a.is_active), "created_at")

    def get_achievement(self, achievement_id: str) -> Achievement | None:
        return self._achievements.find(_by_id(achievement_id))

    def create_achievement(self, data: AchievementCreate) -> Achievement:
        return self._achievements.insert(build_record(Achievement, data))

    def update_achievement(
        self, achievement_id: str, update: AchievementUpdate
    ) -> Achievement | None:
        return self._achievements.update(_by_id(achievement_id), update.changes())

    def delete_achievement(self, achievement_id: str) -> bool:
        return self._achievements.delete(_by_id(achievement_id))

    def list_user_achievements(self, user_id: str) -> list[UserAchievement]:
        rows = self._user_achievements.select(lambda a: a.user_id == user_id)
        return _newest_first(rows, "created_at")

    def get_user_achievement(
        self, user_id: str, achievement_id: str
    ) -> UserAchievement | None:
        return self._user_achievements.find(
            lambda a: a.user_id == user_id and a.achievement_id == achievement_id
        )

    def unlock_user_achievement(self, data: UserAchievementCreate) -> UserAchievement:
        completed = data.progress >= data.target
        return self._user_achievements.insert(
            build_record(
                UserAchievement,
                data,
                is_completed=completed,
                completed_at=utcnow() if completed else None,
            )
        )

    def update_user_achievement(
        self, user_achievement_id: str, update: UserAchievementUpdate
    ) -> UserAchievement | None:
        return self._user_achievements.update(_by_id(user_achievement_id), update.changes())

    def get_user_stats(self, user_id: str) -> UserStats | None:
        return self._user_stats.find(lambda s: s.user_id == user_id)

    def create_user_stats(self, data: UserStatsCreate) -> UserStats:
        return self._user_stats.insert(build_record(UserStats, data))

    def update_user_stats(self, user_id: str, update: UserStatsUpdate) -> UserStats | None:
        return self._user_stats.update(lambda s: s.user_id == user_id, update.changes())

    def increment_user_stat(
        self, user_id: str, stat: UserStat, increment: int = 1
    ) -> UserStats | None:
        field = UserStat(stat).value
        with self._user_stats.lock:
            current = self._user_stats.find(lambda s: s.user_id == user_id)
            if current is None:
                return None
            return self._user_stats.update(
                lambda s: s.user_id == user_id,
                {field: getattr(current, field) + increment},
            )
