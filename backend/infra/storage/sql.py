"""
Backend de stockage durable (SQLAlchemy).

Chaque opération ouvre sa propre session (`session_scope`); toute erreur SQLAlchemy est remontée
en `StorageError`, sans nouvelle tentative. Seules les lectures optionnelles (secrets de webhook,
succès, abonnements aux tickers, cache OHLC, statistiques) tolèrent une table absente: elles
renvoient alors une liste vide ou None et journalisent `optional_table_missing`.

Le get-or-create par clé composite s'exécute en UPDATE puis INSERT conditionnel; une violation
d'unicité due à une course entre deux insertions est rejouée en UPDATE.
"""

from __future__ import annotations

from collections.abc import Callable
from functools import wraps
from typing import Any, TypeVar

import structlog
from sqlalchemy import delete, func, inspect, select, text, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

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
from backend.infra.repo.db import get_engine, get_session_factory, session_scope
from backend.infra.repo.models import (
    AchievementORM,
    AdminLogORM,
    AlertSignalORM,
    AvailableTickerORM,
    Base,
    CycleDataPointORM,
    DashboardLayoutORM,
    ForecastPointORM,
    HeatmapPointORM,
    OhlcCandleORM,
    SubscriptionPlanORM,
    TradingSettingsORM,
    UserAchievementORM,
    UserAlertORM,
    UserORM,
    UserPortfolioORM,
    UserSettingsORM,
    UserStatsORM,
    UserSubscriptionORM,
    UserTradeORM,
    WebhookSecretORM,
)
from backend.infra.storage.base import Storage, build_record

log = structlog.get_logger(__name__)

R = TypeVar("R", bound=Record)
F = TypeVar("F", bound=Callable[..., Any])

_MISSING_TABLE_MARKERS = ("no such table", "does not exist", "undefinedtable")


def is_missing_table(err: BaseException) -> bool:
    """Vrai si l'erreur signale une table absente (SQLite ou PostgreSQL)."""
    orig = getattr(err, "orig", None) or err
    message = f"{type(orig).__name__} {orig}".lower()
    return any(marker in message for marker in _MISSING_TABLE_MARKERS)


def _guarded(fn: F) -> F:
    """Convertit toute erreur SQLAlchemy en `StorageError`."""

    @wraps(fn)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return fn(*args, **kwargs)
        except SQLAlchemyError as err:
            raise StorageError(
                f"{fn.__name__} failed: {type(err).__name__}",
                missing_table=is_missing_table(err),
            ) from err

    return wrapper  # type: ignore[return-value]


def _optional_read(empty: Callable[[], Any]) -> Callable[[F], F]:
    """Lecture optionnelle: une table absente donne `empty()` au lieu d'une erreur."""

    def decorator(fn: F) -> F:
        @wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return fn(*args, **kwargs)
            except SQLAlchemyError as err:
                if is_missing_table(err):
                    log.warning("optional_table_missing", operation=fn.__name__)
                    return empty()
                raise StorageError(
                    f"{fn.__name__} failed: {type(err).__name__}"
                ) from err

        return wrapper  # type: ignore[return-value]

    return decorator


def _none() -> None:
    return None


class SqlStorage(Storage):
    """Backend relationnel; toute base supportée par SQLAlchemy (PostgreSQL, SQLite...)."""

    backend_name = "sql"

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self._factory = get_session_factory(engine)

    @classmethod
    def from_url(cls, url: str, auto_create: bool = False) -> SqlStorage:
        """Crée le backend et vérifie la connexion (`SELECT 1`).

        Raises:
            StorageError: base injoignable, pilote introuvable ou création des tables impossible.
        """
        try:
            engine = get_engine(url)
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            if auto_create:
                Base.metadata.create_all(engine)
        except (SQLAlchemyError, ImportError) as err:
            # ImportError: pilote DBAPI absent (ex. psycopg2 sans l'extra `postgres`)
            raise StorageError(f"database unavailable: {type(err).__name__}") from err
        return cls(engine)

    @property
    def engine(self) -> Engine:
        return self._engine

    @_guarded
    def health(self) -> dict[str, Any]:
        present = set(inspect(self._engine).get_table_names())
        tables: dict[str, dict[str, Any]] = {}
        with session_scope(self._factory) as s:
            for table in Base.metadata.sorted_tables:
                if table.name not in present:
                    tables[table.name] = {"present": False, "rows": 0}
                    continue
                count = s.execute(select(func.count()).select_from(table)).scalar_one()
                tables[table.name] = {"present": True, "rows": count}
        return {"backend": self.backend_name, "tables": tables}

    # --- Primitives -------------------------------------------------------------------------

    def _insert(self, orm: type, record: R) -> R:
        with session_scope(self._factory) as s:
            s.add(orm(**record.model_dump()))
        return record

    def _one(self, orm: type, model: type[R], *criteria: Any) -> R | None:
        with session_scope(self._factory) as s:
            row = s.execute(select(orm).where(*criteria).limit(1)).scalars().first()
            return model.model_validate(row) if row is not None else None

    def _many(
        self,
        orm: type,
        model: type[R],
        *criteria: Any,
        order_by: tuple[Any, ...] = (),
        limit: int | None = None,
    ) -> list[R]:
        stmt = select(orm).where(*criteria).order_by(*order_by)
        if limit is not None:
            stmt = stmt.limit(limit)
        with session_scope(self._factory) as s:
            return [model.model_validate(row) for row in s.execute(stmt).scalars()]

    def _update(
        self, orm: type, model: type[R], changes: dict[str, Any], *criteria: Any
    ) -> R | None:
        """Fusion partielle: seules les colonnes fournies (et `updated_at`) sont écrites."""
        with session_scope(self._factory) as s:
            row = s.execute(select(orm).where(*criteria).limit(1)).scalars().first()
            if row is None:
                return None
            stamps = {"updated_at": utcnow()} if hasattr(orm, "updated_at") else {}
            merged = model.model_validate(row).merged(changes, **stamps)
            values = merged.model_dump()
            for key in (*changes, *stamps):
                setattr(row, key, values[key])
        return merged

    def _delete(self, orm: type, record_id: str) -> bool:
        with session_scope(self._factory) as s:
            result = s.execute(delete(orm).where(orm.id == record_id))
            return bool(result.rowcount)

    def _update_or_insert(
        self, orm: type, model: type[R], keys: dict[str, Any], changes: dict[str, Any]
    ) -> R:
        criteria = [getattr(orm, k) == v for k, v in keys.items()]
        with session_scope(self._factory) as s:
            result = s.execute(
                update(orm).where(*criteria).values(**changes, updated_at=utcnow())
            )
            if result.rowcount:
                row = s.execute(select(orm).where(*criteria)).scalars().one()
                return model.model_validate(row)
            record = build_record(model, changes, **keys)
            s.add(orm(**record.model_dump()))
        return record

    def _get_or_create(
        self, orm: type, model: type[R], keys: dict[str, Any], changes: dict[str, Any]
    ) -> R:
        try:
            return self._update_or_insert(orm, model, keys, changes)
        except IntegrityError:
            # Insertion concurrente sur la même clé: la ligne existe désormais.
            log.info("get_or_create_retry", table=orm.__tablename__)
            criteria = [getattr(orm, k) == v for k, v in keys.items()]
            updated = self._update(orm, model, changes, *criteria)
            if updated is None:
                raise
            return updated

    # --- Identités ---------------------------------------------------------------------------

    @_guarded
    def get_identity(self, identity_id: str) -> Identity | None:
        return self._one(UserORM, Identity, UserORM.id == identity_id)

    @_guarded
    def get_identity_by_email(self, email: str) -> Identity | None:
        return self._one(UserORM, Identity, UserORM.email == email)

    @_guarded
    def create_identity(self, data: IdentityCreate) -> Identity:
        return self._insert(UserORM, build_record(Identity, data))

    @_guarded
    def update_identity(self, identity_id: str, update: IdentityUpdate) -> Identity | None:
        return self._update(UserORM, Identity, update.changes(), UserORM.id == identity_id)

    @_guarded
    def update_subscription(
        self, identity_id: str, update: SubscriptionUpdate
    ) -> Identity | None:
        return self._update(UserORM, Identity, update.changes(), UserORM.id == identity_id)

    @_guarded
    def record_login(self, identity_id: str) -> None:
        self._update(UserORM, Identity, {"last_login_at": utcnow()}, UserORM.id == identity_id)

    @_guarded
    def list_identities(self) -> list[Identity]:
        return self._many(
            UserORM, Identity, order_by=(UserORM.created_at.desc(), UserORM.id.desc())
        )

    # --- Préférences ------------------------------------------------------------------------

    @_guarded
    def get_user_settings(self, user_id: str) -> UserSettings | None:
        return self._one(UserSettingsORM, UserSettings, UserSettingsORM.user_id == user_id)

    @_guarded
    def create_user_settings(self, data: UserSettingsCreate) -> UserSettings:
        return self._insert(UserSettingsORM, build_record(UserSettings, data))

    @_guarded
    def update_user_settings(
        self, user_id: str, update: UserSettingsUpdate
    ) -> UserSettings | None:
        return self._update(
            UserSettingsORM, UserSettings, update.changes(), UserSettingsORM.user_id == user_id
        )

    # --- Tickers ----------------------------------------------------------------------------

    @_guarded
    def list_tickers(self) -> list[AvailableTicker]:
        return self._many(
            AvailableTickerORM, AvailableTicker, order_by=(AvailableTickerORM.symbol.asc(),)
        )

    @_guarded
    def list_enabled_tickers(self) -> list[AvailableTicker]:
        return self._many(
            AvailableTickerORM,
            AvailableTicker,
            AvailableTickerORM.is_enabled.is_(True),
            order_by=(AvailableTickerORM.symbol.asc(),),
        )

    @_guarded
    def create_ticker(self, data: TickerCreate) -> AvailableTicker:
        return self._insert(AvailableTickerORM, build_record(AvailableTicker, data))

    @_guarded
    def update_ticker(self, ticker_id: str, update: TickerUpdate) -> AvailableTicker | None:
        return self._update(
            AvailableTickerORM, AvailableTicker, update.changes(), AvailableTickerORM.id == ticker_id
        )

    @_guarded
    def delete_ticker(self, ticker_id: str) -> bool:
        return self._delete(AvailableTickerORM, ticker_id)

    # --- Signaux et données de marché -------------------------------------------------------

    def _signals(self, *criteria: Any, limit: int) -> list[AlertSignal]:
        return self._many(
            AlertSignalORM,
            AlertSignal,
            *criteria,
            order_by=(AlertSignalORM.timestamp.desc(), AlertSignalORM.id.desc()),
            limit=limit,
        )

    @_guarded
    def list_signals(self, limit: int = DEFAULT_SIGNAL_LIMIT) -> list[AlertSignal]:
        return self._signals(limit=limit)

    @_guarded
    def list_signals_by_ticker(
        self, ticker: str, limit: int = DEFAULT_SIGNAL_LIMIT
    ) -> list[AlertSignal]:
        return self._signals(AlertSignalORM.ticker == ticker, limit=limit)

    @_guarded
    def list_signals_by_user(
        self, user_id: str, limit: int = DEFAULT_SIGNAL_LIMIT
    ) -> list[AlertSignal]:
        return self._signals(AlertSignalORM.user_id == user_id, limit=limit)

    @_guarded
    def create_signal(self, data: SignalCreate) -> AlertSignal:
        record = build_record(AlertSignal, data, timestamp=data.timestamp or utcnow())
        return self._insert(AlertSignalORM, record)

    @_optional_read(list)
    def list_ohlc(
        self, symbol: str, interval: str, limit: int = DEFAULT_OHLC_LIMIT
    ) -> list[OhlcCandle]:
        return self._many(
            OhlcCandleORM,
            OhlcCandle,
            OhlcCandleORM.symbol == symbol,
            OhlcCandleORM.interval == interval,
            order_by=(OhlcCandleORM.timestamp.desc(), OhlcCandleORM.id.desc()),
            limit=limit,
        )

    @_guarded
    def create_ohlc(self, data: OhlcCreate) -> OhlcCandle:
        return self._insert(OhlcCandleORM, build_record(OhlcCandle, data))

    @_guarded
    def list_heatmap(self, ticker: str) -> list[HeatmapPoint]:
        return self._many(
            HeatmapPointORM,
            HeatmapPoint,
            HeatmapPointORM.ticker == ticker,
            order_by=(HeatmapPointORM.week.desc(), HeatmapPointORM.id.desc()),
        )

    @_guarded
    def create_heatmap(self, data: HeatmapCreate) -> HeatmapPoint:
        return self._insert(HeatmapPointORM, build_record(HeatmapPoint, data))

    @_guarded
    def list_cycle_data(self, ticker: str) -> list[CycleDataPoint]:
        return self._many(
            CycleDataPointORM,
            CycleDataPoint,
            CycleDataPointORM.ticker == ticker,
            order_by=(CycleDataPointORM.date.desc(), CycleDataPointORM.id.desc()),
        )

    @_guarded
    def create_cycle_data(self, data: CycleCreate) -> CycleDataPoint:
        return self._insert(CycleDataPointORM, build_record(CycleDataPoint, data))

    @_guarded
    def list_forecasts(self, ticker: str) -> list[ForecastPoint]:
        return self._many(
            ForecastPointORM,
            ForecastPoint,
            ForecastPointORM.ticker == ticker,
            order_by=(ForecastPointORM.date.desc(), ForecastPointORM.id.desc()),
        )

    @_guarded
    def create_forecast(self, data: ForecastCreate) -> ForecastPoint:
        return self._insert(ForecastPointORM, build_record(ForecastPoint, data))

    # --- Administration ---------------------------------------------------------------------

    @_guarded
    def list_admin_logs(self, limit: int = DEFAULT_ADMIN_LOG_LIMIT) -> list[AdminLogEntry]:
        return self._many(
            AdminLogORM,
            AdminLogEntry,
            order_by=(AdminLogORM.timestamp.desc(), AdminLogORM.id.desc()),
            limit=limit,
        )

    @_guarded
    def create_admin_log(self, data: AdminLogCreate) -> AdminLogEntry:
        record = build_record(AdminLogEntry, data, timestamp=data.timestamp or utcnow())
        return self._insert(AdminLogORM, record)

    @_guarded
    def list_subscription_plans(self) -> list[SubscriptionPlan]:
        return self._many(
            SubscriptionPlanORM,
            SubscriptionPlan,
            SubscriptionPlanORM.is_active.is_(True),
            order_by=(SubscriptionPlanORM.monthly_price.asc(), SubscriptionPlanORM.id.asc()),
        )

    @_guarded
    def get_subscription_plan(self, tier: Tier) -> SubscriptionPlan | None:
        return self._one(
            SubscriptionPlanORM, SubscriptionPlan, SubscriptionPlanORM.tier == Tier(tier).value
        )

    @_guarded
    def create_subscription_plan(self, data: SubscriptionPlanCreate) -> SubscriptionPlan:
        return self._insert(SubscriptionPlanORM, build_record(SubscriptionPlan, data))

    @_optional_read(list)
    def list_webhook_secrets(self) -> list[WebhookSecret]:
        return self._many(
            WebhookSecretORM,
            WebhookSecret,
            WebhookSecretORM.is_active.is_(True),
            order_by=(WebhookSecretORM.created_at.asc(), WebhookSecretORM.id.asc()),
        )

    @_optional_read(_none)
    def get_webhook_secret(self, name: str) -> WebhookSecret | None:
        return self._one(
            WebhookSecretORM,
            WebhookSecret,
            WebhookSecretORM.name == name,
            WebhookSecretORM.is_active.is_(True),
        )

    @_guarded
    def create_webhook_secret(self, data: WebhookSecretCreate) -> WebhookSecret:
        return self._insert(WebhookSecretORM, build_record(WebhookSecret, data))

    @_guarded
    def update_webhook_secret(
        self, secret_id: str, update: WebhookSecretUpdate
    ) -> WebhookSecret | None:
        return self._update(
            WebhookSecretORM, WebhookSecret, update.changes(), WebhookSecretORM.id == secret_id
        )

    @_guarded
    def delete_webhook_secret(self, secret_id: str) -> bool:
        return self._delete(WebhookSecretORM, secret_id)

    # --- Abonnements aux tickers ------------------------------------------------------------

    @_optional_read(list)
    def list_user_subscriptions(self, user_id: str) -> list[UserSubscription]:
        return self._many(
            UserSubscriptionORM,
            UserSubscription,
            UserSubscriptionORM.user_id == user_id,
            order_by=(UserSubscriptionORM.subscribed_at.desc(), UserSubscriptionORM.id.desc()),
        )

    @_guarded
    def create_user_subscription(self, data: UserSubscriptionCreate) -> UserSubscription:
        record = build_record(UserSubscription, data, subscribed_at=utcnow())
        return self._insert(UserSubscriptionORM, record)

    @_guarded
    def delete_user_subscription(self, subscription_id: str) -> bool:
        return self._delete(UserSubscriptionORM, subscription_id)

    # --- Trading ----------------------------------------------------------------------------

    @_guarded
    def list_trades(self, user_id: str, limit: int = DEFAULT_TRADE_LIMIT) -> list[UserTrade]:
        return self._many(
            UserTradeORM,
            UserTrade,
            UserTradeORM.user_id == user_id,
            order_by=(UserTradeORM.timestamp.desc(), UserTradeORM.id.desc()),
            limit=limit,
        )

    @_guarded
    def create_trade(self, data: TradeCreate) -> UserTrade:
        return self._insert(UserTradeORM, build_record(UserTrade, data, timestamp=utcnow()))

    @_guarded
    def list_portfolio(self, user_id: str) -> list[UserPortfolioPosition]:
        return self._many(
            UserPortfolioORM,
            UserPortfolioPosition,
            UserPortfolioORM.user_id == user_id,
            order_by=(UserPortfolioORM.created_at.desc(), UserPortfolioORM.id.desc()),
        )

    @_guarded
    def update_portfolio(
        self, user_id: str, ticker: str, update: PortfolioUpdate
    ) -> UserPortfolioPosition:
        return self._get_or_create(
            UserPortfolioORM,
            UserPortfolioPosition,
            {"user_id": user_id, "ticker": ticker},
            update.changes(),
        )

    @_guarded
    def get_trading_settings(self, user_id: str) -> TradingSettings | None:
        return self._one(
            TradingSettingsORM, TradingSettings, TradingSettingsORM.user_id == user_id
        )

    @_guarded
    def update_trading_settings(
        self, user_id: str, update: TradingSettingsUpdate
    ) -> TradingSettings:
        return self._get_or_create(
            TradingSettingsORM, TradingSettings, {"user_id": user_id}, update.changes()
        )

    @_guarded
    def list_user_alerts(self, user_id: str) -> list[UserAlert]:
        return self._many(
            UserAlertORM,
            UserAlert,
            UserAlertORM.user_id == user_id,
            order_by=(UserAlertORM.created_at.desc(), UserAlertORM.id.desc()),
        )

    @_guarded
    def create_user_alert(self, data: UserAlertCreate) -> UserAlert:
        return self._insert(UserAlertORM, build_record(UserAlert, data))

    @_guarded
    def update_user_alert(self, alert_id: str, update: UserAlertUpdate) -> UserAlert | None:
        return self._update(UserAlertORM, UserAlert, update.changes(), UserAlertORM.id == alert_id)

    @_guarded
    def delete_user_alert(self, alert_id: str) -> bool:
        return self._delete(UserAlertORM, alert_id)

    @_guarded
    def get_dashboard_layout(self, user_id: str) -> DashboardLayout | None:
        return self._one(
            DashboardLayoutORM,
            DashboardLayout,
            DashboardLayoutORM.user_id == user_id,
            DashboardLayoutORM.is_default.is_(True),
        )

    @_guarded
    def save_dashboard_layout(self, data: DashboardLayoutCreate) -> DashboardLayout:
        updated = self._update(
            DashboardLayoutORM,
            DashboardLayout,
            data.model_dump(),
            DashboardLayoutORM.user_id == data.user_id,
            DashboardLayoutORM.is_default.is_(True),
        )
        if updated is not None:
            return updated
        return self._insert(DashboardLayoutORM, build_record(DashboardLayout, data))

    @_guarded
    def update_dashboard_layout(
        self, layout_id: str, update: DashboardLayoutUpdate
    ) -> DashboardLayout | None:
        return self._update(
            DashboardLayoutORM, DashboardLayout, update.changes(), DashboardLayoutORM.id == layout_id
        )

    # --- Gamification -----------------------------------------------------------------------

    @_optional_read(list)
    def list_achievements(self) -> list[Achievement]:
        return self._many(
            AchievementORM,
            Achievement,
            AchievementORM.is_active.is_(True),
            order_by=(AchievementORM.created_at.asc(), AchievementORM.id.asc()),
        )

    @_optional_read(_none)
    def get_achievement(self, achievement_id: str) -> Achievement | None:
        return self._one(AchievementORM, Achievement, AchievementORM.id == achievement_id)

    @_guarded
    def create_achievement(self, data: AchievementCreate) -> Achievement:
        return self._insert(AchievementORM, build_record(Achievement, data))

    @_guarded
    def update_achievement(
        self, achievement_id: str, update: AchievementUpdate
    ) -> Achievement | None:
        return self._update(
            AchievementORM, Achievement, update.changes(), AchievementORM.id == achievement_id
        )

    @_guarded
    def delete_achievement(self, achievement_id: str) -> bool:
        return self._delete(AchievementORM, achievement_id)

    @_optional_read(list)
    def list_user_achievements(self, user_id: str) -> list[UserAchievement]:
        return self._many(
            UserAchievementORM,
            UserAchievement,
            UserAchievementORM.user_id == user_id,
            order_by=(UserAchievementORM.created_at.desc(), UserAchievementORM.id.desc()),
        )

    @_optional_read(_none)
    def get_user_achievement(
        self, user_id: str, achievement_id: str
    ) -> UserAchievement | None:
        return self._one(
            UserAchievementORM,
            UserAchievement,
            UserAchievementORM.user_id == user_id,
            UserAchievementORM.achievement_id == achievement_id,
        )

    @_guarded
    def unlock_user_achievement(self, data: UserAchievementCreate) -> UserAchievement:
        completed = data.progress >= data.target
        record = build_record(
            UserAchievement,
            data,
            is_completed=completed,
            completed_at=utcnow() if completed else None,
        )
        return self._insert(UserAchievementORM, record)

    @_guarded
    def update_user_achievement(
        self, user_achievement_id: str, update: UserAchievementUpdate
    ) -> UserAchievement | None:
        return self._update(
            UserAchievementORM,
            UserAchievement,
            update.changes(),
            UserAchievementORM.id == user_achievement_id,
        )

    @_optional_read(_none)
    def get_user_stats(self, user_id: str) -> UserStats | None:
        return self._one(UserStatsORM, UserStats, UserStatsORM.user_id == user_id)

    @_guarded
    def create_user_stats(self, data: UserStatsCreate) -> UserStats:
        return self._insert(UserStatsORM, build_record(UserStats, data))

    @_guarded
    def update_user_stats(self, user_id: str, update: UserStatsUpdate) -> UserStats | None:
        return self._update(
            UserStatsORM, UserStats, update.changes(), UserStatsORM.user_id == user_id
        )

    @_guarded
    def increment_user_stat(
        self, user_id: str, stat: UserStat, increment: int = 1
    ) -> UserStats | None:
        column = getattr(UserStatsORM, UserStat(stat).value)
        criteria = UserStatsORM.user_id == user_id
        with session_scope(self._factory) as s:
            result = s.execute(
                update(UserStatsORM)
                .where(criteria)
                .values({column: column + increment, UserStatsORM.updated_at: utcnow()})
            )
            if not result.rowcount:
                return None
            row = s.execute(select(UserStatsORM).where(criteria)).scalars().one()
            return UserStats.model_validate(row)
