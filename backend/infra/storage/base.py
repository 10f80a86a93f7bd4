"""Interface de base du stockage.

Ce module définit l'abstraction unique sur toutes les entités persistées. Deux implémentations
(`SqlStorage` durable, `InMemoryStorage` en processus) doivent avoir un comportement observable
identique:

- les valeurs par défaut documentées sont appliquées à la création;
- `update_*` sur une clé absente retourne None, ne lève pas et ne crée rien;
- le get-or-create par clé composite (portefeuille, réglages de trading) est atomique;
- les horodatages sont assignés par le stockage, sauf `timestamp` des signaux et journaux admin,
  fourni par l'appelant ou « maintenant » par défaut;
- les lectures marquées *optionnelles* tolèrent une table absente côté durable (liste vide / None).

Les listes sont triées de la plus récente à la plus ancienne sauf mention contraire; à horodatage
égal, l'identifiant décroissant départage.
"""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from typing import Any, TypeVar

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
from backend.domain.models import CreateModel, Record, utcnow

R = TypeVar("R", bound=Record)


def new_id() -> str:
    """Identifiant opaque d'un nouvel enregistrement."""
    return str(uuid.uuid4())


def build_record(model: type[R], data: CreateModel | dict[str, Any], **fields: Any) -> R:
    """Construit un enregistrement neuf avec ses valeurs par défaut.

    L'identifiant et les horodatages sont assignés ici, jamais repris de l'appelant; `fields`
    complète ou remplace la charge (clé composite, `timestamp` par défaut...).
    """
    now = utcnow()
    payload = data.model_dump() if isinstance(data, CreateModel) else dict(data)
    return model.model_validate(
        {**payload, **fields, "id": new_id(), "created_at": now, "updated_at": now}
    )


class Storage(ABC):
    """Interface abstraite du stockage, partagée par les backends durable et mémoire."""

    backend_name: str = "abstract"

    @abstractmethod
    def health(self) -> dict[str, Any]:
        """Diagnostic du backend (tables présentes / tailles des collections)."""
        raise NotImplementedError

    # --- Identités ---------------------------------------------------------------------------

    @abstractmethod
    def get_identity(self, identity_id: str) -> Identity | None:
        raise NotImplementedError

    @abstractmethod
    def get_identity_by_email(self, email: str) -> Identity | None:
        raise NotImplementedError

    @abstractmethod
    def create_identity(self, data: IdentityCreate) -> Identity:
        """Crée une identité (rôle user, palier free et compte actif par défaut)."""
        raise NotImplementedError

    @abstractmethod
    def update_identity(self, identity_id: str, update: IdentityUpdate) -> Identity | None:
        """Fusionne les champs fournis et rafraîchit `updated_at`."""
        raise NotImplementedError

    @abstractmethod
    def update_subscription(
        self, identity_id: str, update: SubscriptionUpdate
    ) -> Identity | None:
        """Écrit l'état de facturation (palier, statut, échéance, identifiants fournisseur)."""
        raise NotImplementedError

    @abstractmethod
    def record_login(self, identity_id: str) -> None:
        """Horodate la dernière connexion; sans effet si l'identité est absente."""
        raise NotImplementedError

    @abstractmethod
    def list_identities(self) -> list[Identity]:
        raise NotImplementedError

    # --- Préférences ------------------------------------------------------------------------

    @abstractmethod
    def get_user_settings(self, user_id: str) -> UserSettings | None:
        raise NotImplementedError

    @abstractmethod
    def create_user_settings(self, data: UserSettingsCreate) -> UserSettings:
        raise NotImplementedError

    @abstractmethod
    def update_user_settings(
        self, user_id: str, update: UserSettingsUpdate
    ) -> UserSettings | None:
        raise NotImplementedError

    # --- Tickers ----------------------------------------------------------------------------

    @abstractmethod
    def list_tickers(self) -> list[AvailableTicker]:
        """Tous les tickers, par ordre alphabétique de symbole."""
        raise NotImplementedError

    @abstractmethod
    def list_enabled_tickers(self) -> list[AvailableTicker]:
        raise NotImplementedError

    @abstractmethod
    def create_ticker(self, data: TickerCreate) -> AvailableTicker:
        raise NotImplementedError

    @abstractmethod
    def update_ticker(self, ticker_id: str, update: TickerUpdate) -> AvailableTicker | None:
        raise NotImplementedError

    @abstractmethod
    def delete_ticker(self, ticker_id: str) -> bool:
        raise NotImplementedError

    # --- Signaux et données de marché -------------------------------------------------------

    @abstractmethod
    def list_signals(self, limit: int = DEFAULT_SIGNAL_LIMIT) -> list[AlertSignal]:
        raise NotImplementedError

    @abstractmethod
    def list_signals_by_ticker(
        self, ticker: str, limit: int = DEFAULT_SIGNAL_LIMIT
    ) -> list[AlertSignal]:
        raise NotImplementedError

    @abstractmethod
    def list_signals_by_user(
        self, user_id: str, limit: int = DEFAULT_SIGNAL_LIMIT
    ) -> list[AlertSignal]:
        raise NotImplementedError

    @abstractmethod
    def create_signal(self, data: SignalCreate) -> AlertSignal:
        """Ajoute un signal; `timestamp` vaut « maintenant » s'il n'est pas fourni."""
        raise NotImplementedError

    @abstractmethod
    def list_ohlc(
        self, symbol: str, interval: str, limit: int = DEFAULT_OHLC_LIMIT
    ) -> list[OhlcCandle]:
        """Lecture optionnelle du cache OHLC."""
        raise NotImplementedError

    @abstractmethod
    def create_ohlc(self, data: OhlcCreate) -> OhlcCandle:
        raise NotImplementedError

    @abstractmethod
    def list_heatmap(self, ticker: str) -> list[HeatmapPoint]:
        """Points par semaine décroissante."""
        raise NotImplementedError

    @abstractmethod
    def create_heatmap(self, data: HeatmapCreate) -> HeatmapPoint:
        raise NotImplementedError

    @abstractmethod
    def list_cycle_data(self, ticker: str) -> list[CycleDataPoint]:
        raise NotImplementedError

    @abstractmethod
    def create_cycle_data(self, data: CycleCreate) -> CycleDataPoint:
        raise NotImplementedError

    @abstractmethod
    def list_forecasts(self, ticker: str) -> list[ForecastPoint]:
        raise NotImplementedError

    @abstractmethod
    def create_forecast(self, data: ForecastCreate) -> ForecastPoint:
        raise NotImplementedError

    # --- Administration ---------------------------------------------------------------------

    @abstractmethod
    def list_admin_logs(self, limit: int = DEFAULT_ADMIN_LOG_LIMIT) -> list[AdminLogEntry]:
        raise NotImplementedError

    @abstractmethod
    def create_admin_log(self, data: AdminLogCreate) -> AdminLogEntry:
        raise NotImplementedError

    @abstractmethod
    def list_subscription_plans(self) -> list[SubscriptionPlan]:
        """Plans actifs, par prix mensuel croissant."""
        raise NotImplementedError

    @abstractmethod
    def get_subscription_plan(self, tier: Tier) -> SubscriptionPlan | None:
        raise NotImplementedError

    @abstractmethod
    def create_subscription_plan(self, data: SubscriptionPlanCreate) -> SubscriptionPlan:
        raise NotImplementedError

    @abstractmethod
    def list_webhook_secrets(self) -> list[WebhookSecret]:
        """Lecture optionnelle: secrets actifs, du plus ancien au plus récent."""
        raise NotImplementedError

    @abstractmethod
    def get_webhook_secret(self, name: str) -> WebhookSecret | None:
        """Lecture optionnelle: secret actif portant ce nom."""
        raise NotImplementedError

    @abstractmethod
    def create_webhook_secret(self, data: WebhookSecretCreate) -> WebhookSecret:
        raise NotImplementedError

    @abstractmethod
    def update_webhook_secret(
        self, secret_id: str, update: WebhookSecretUpdate
    ) -> WebhookSecret | None:
        raise NotImplementedError

    @abstractmethod
    def delete_webhook_secret(self, secret_id: str) -> bool:
        raise NotImplementedError

    # --- Abonnements aux tickers ------------------------------------------------------------

    @abstractmethod
    def list_user_subscriptions(self, user_id: str) -> list[UserSubscription]:
        """Lecture optionnelle. Les doublons (même utilisateur, même ticker) sont conservés."""
        raise NotImplementedError

    @abstractmethod
    def create_user_subscription(self, data: UserSubscriptionCreate) -> UserSubscription:
        raise NotImplementedError

    @abstractmethod
    def delete_user_subscription(self, subscription_id: str) -> bool:
        raise NotImplementedError

    # --- Trading ----------------------------------------------------------------------------

    @abstractmethod
    def list_trades(self, user_id: str, limit: int = DEFAULT_TRADE_LIMIT) -> list[UserTrade]:
        raise NotImplementedError

    @abstractmethod
    def create_trade(self, data: TradeCreate) -> UserTrade:
        raise NotImplementedError

    @abstractmethod
    def list_portfolio(self, user_id: str) -> list[UserPortfolioPosition]:
        raise NotImplementedError

    @abstractmethod
    def update_portfolio(
        self, user_id: str, ticker: str, update: PortfolioUpdate
    ) -> UserPortfolioPosition:
        """Get-or-create atomique sur (user_id, ticker); valeurs numériques à zéro par défaut."""
        raise NotImplementedError

    @abstractmethod
    def get_trading_settings(self, user_id: str) -> TradingSettings | None:
        raise NotImplementedError

    @abstractmethod
    def update_trading_settings(
        self, user_id: str, update: TradingSettingsUpdate
    ) -> TradingSettings:
        """Get-or-create atomique sur user_id."""
        raise NotImplementedError

    @abstractmethod
    def list_user_alerts(self, user_id: str) -> list[UserAlert]:
        raise NotImplementedError

    @abstractmethod
    def create_user_alert(self, data: UserAlertCreate) -> UserAlert:
        raise NotImplementedError

    @abstractmethod
    def update_user_alert(self, alert_id: str, update: UserAlertUpdate) -> UserAlert | None:
        raise NotImplementedError

    @abstractmethod
    def delete_user_alert(self, alert_id: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def get_dashboard_layout(self, user_id: str) -> DashboardLayout | None:
        """Disposition par défaut de l'utilisateur."""
        raise NotImplementedError

    @abstractmethod
    def save_dashboard_layout(self, data: DashboardLayoutCreate) -> DashboardLayout:
        """Remplace la disposition par défaut existante, sinon en crée une."""
        raise NotImplementedError

    @abstractmethod
    def update_dashboard_layout(
        self, layout_id: str, update: DashboardLayoutUpdate
    ) -> DashboardLayout | None:
        raise NotImplementedError

    # --- Gamification -----------------------------------------------------------------------

    @abstractmethod
    def list_achievements(self) -> list[Achievement]:
        """Lecture optionnelle: succès actifs, du plus ancien au plus récent."""
        raise NotImplementedError

    @abstractmethod
    def get_achievement(self, achievement_id: str) -> Achievement | None:
        """Lecture optionnelle."""
        raise NotImplementedError

    @abstractmethod
    def create_achievement(self, data: AchievementCreate) -> Achievement:
        raise NotImplementedError

    @abstractmethod
    def update_achievement(
        self, achievement_id: str, update: AchievementUpdate
    ) -> Achievement | None:
        raise NotImplementedError

    @abstractmethod
    def delete_achievement(self, achievement_id: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def list_user_achievements(self, user_id: str) -> list[UserAchievement]:
        """Lecture optionnelle."""
        raise NotImplementedError

    @abstractmethod
    def get_user_achievement(
        self, user_id: str, achievement_id: str
    ) -> UserAchievement | None:
        """Lecture optionnelle."""
        raise NotImplementedError

    @abstractmethod
    def unlock_user_achievement(self, data: UserAchievementCreate) -> UserAchievement:
        """Enregistre la progression; complété dès que `progress >= target`."""
        raise NotImplementedError

    @abstractmethod
    def update_user_achievement(
        self, user_achievement_id: str, update: UserAchievementUpdate
    ) -> UserAchievement | None:
        raise NotImplementedError

    def update_user_achievement_progress(
        self, user_id: str, achievement_id: str, progress: int
    ) -> UserAchievement | None:
        """Met à jour la progression et l'état de complétion par rapport à la cible."""
        current = self.get_user_achievement(user_id, achievement_id)
        if current is None:
            return None
        completed = progress >= current.target
        return self.update_user_achievement(
            current.id,
            UserAchievementUpdate(
                progress=progress,
                is_completed=completed,
                completed_at=(current.completed_at or utcnow()) if completed else None,
            ),
        )

    @abstractmethod
    def get_user_stats(self, user_id: str) -> UserStats | None:
        """Lecture optionnelle."""
        raise NotImplementedError

    @abstractmethod
    def create_user_stats(self, data: UserStatsCreate) -> UserStats:
        raise NotImplementedError

    @abstractmethod
    def update_user_stats(self, user_id: str, update: UserStatsUpdate) -> UserStats | None:
        raise NotImplementedError

    @abstractmethod
    def increment_user_stat(
        self, user_id: str, stat: UserStat, increment: int = 1
    ) -> UserStats | None:
        """Incrémente atomiquement un compteur; None si les statistiques n'existent pas."""
        raise NotImplementedError
