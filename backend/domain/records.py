"""
Enregistrements persistés autres que l'identité.

Chaque entité existe sous trois formes:
- l'enregistrement (`Record`) tel que renvoyé par le stockage;
- la charge de création (`*Create`), dont les champs optionnels portent les valeurs par défaut
  documentées;
- la mise à jour partielle (`*Update`) pour les entités modifiables.

Ces entités sont CRUD pour le cœur d'autorisation; leur sémantique métier appartient à
l'application qui les consomme.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import StrEnum
from typing import Any

from pydantic import Field

from backend.domain.entities import Tier
from backend.domain.models import CreateModel, PartialUpdate, Record

ZERO = Decimal("0")


# --- Préférences utilisateur -------------------------------------------------------------------


class UserSettings(Record):
    """Préférences d'un utilisateur (1:1 avec l'identité)."""

    user_id: str
    notification_email: bool = True
    notification_sms: bool = False
    notification_push: bool = True
    notification_telegram: bool = False
    email_frequency: str = "realtime"
    quiet_hours_start: str | None = "22:00"
    quiet_hours_end: str | None = "08:00"
    weekend_notifications: bool = True
    phone_number: str | None = None
    telegram_chat_id: str | None = None
    price_alerts: bool = True
    volume_alerts: bool = False
    news_alerts: bool = True
    technical_alerts: bool = True
    whale_alerts: bool = False
    theme: str = "dark"
    language: str = "en"
    timezone: str = "UTC"
    currency: str = "USD"
    default_chart_type: str = "candlestick"
    default_timeframe: str = "15m"
    show_volume: bool = True
    chart_refresh_interval: int = 30
    enable_paper_trading: bool = True
    paper_trading_balance: Decimal = Decimal("10000.00")
    risk_percentage: Decimal = Decimal("2.00")
    default_dashboard: str = "overview"
    max_dashboard_items: int = 20
    profile_visibility: str = "private"
    two_factor_enabled: bool = False
    session_timeout: int = 1440
    api_access_enabled: bool = False
    updated_at: datetime


class UserSettingsCreate(CreateModel):
    user_id: str
    notification_email: bool = True
    notification_sms: bool = False
    notification_push: bool = True
    notification_telegram: bool = False
    email_frequency: str = "realtime"
    quiet_hours_start: str | None = "22:00"
    quiet_hours_end: str | None = "08:00"
    weekend_notifications: bool = True
    phone_number: str | None = None
    telegram_chat_id: str | None = None
    price_alerts: bool = True
    volume_alerts: bool = False
    news_alerts: bool = True
    technical_alerts: bool = True
    whale_alerts: bool = False
    theme: str = "dark"
    language: str = "en"
    timezone: str = "UTC"
    currency: str = "USD"
    default_chart_type: str = "candlestick"
    default_timeframe: str = "15m"
    show_volume: bool = True
    chart_refresh_interval: int = 30
    enable_paper_trading: bool = True
    paper_trading_balance: Decimal = Decimal("10000.00")
    risk_percentage: Decimal = Decimal("2.00")
    default_dashboard: str = "overview"
    max_dashboard_items: int = 20
    profile_visibility: str = "private"
    two_factor_enabled: bool = False
    session_timeout: int = 1440
    api_access_enabled: bool = False


class UserSettingsUpdate(PartialUpdate):
    notification_email: bool | None = None
    notification_sms: bool | None = None
    notification_push: bool | None = None
    notification_telegram: bool | None = None
    email_frequency: str | None = None
    quiet_hours_start: str | None = None
    quiet_hours_end: str | None = None
    weekend_notifications: bool | None = None
    phone_number: str | None = None
    telegram_chat_id: str | None = None
    price_alerts: bool | None = None
    volume_alerts: bool | None = None
    news_alerts: bool | None = None
    technical_alerts: bool | None = None
    whale_alerts: bool | None = None
    theme: str | None = None
    language: str | None = None
    timezone: str | None = None
    currency: str | None = None
    default_chart_type: str | None = None
    default_timeframe: str | None = None
    show_volume: bool | None = None
    chart_refresh_interval: int | None = None
    enable_paper_trading: bool | None = None
    paper_trading_balance: Decimal | None = None
    risk_percentage: Decimal | None = None
    default_dashboard: str | None = None
    max_dashboard_items: int | None = None
    profile_visibility: str | None = None
    two_factor_enabled: bool | None = None
    session_timeout: int | None = None
    api_access_enabled: bool | None = None


# --- Marché ------------------------------------------------------------------------------------


class AvailableTicker(Record):
    symbol: str
    description: str
    category: str = "other"
    market_cap: int = 999
    is_enabled: bool = True
    updated_at: datetime


class TickerCreate(CreateModel):
    symbol: str
    description: str
    category: str = "other"
    market_cap: int = 999
    is_enabled: bool = True


class TickerUpdate(PartialUpdate):
    symbol: str | None = None
    description: str | None = None
    category: str | None = None
    market_cap: int | None = None
    is_enabled: bool | None = None


class AlertSignal(Record):
    """Signal de trading reçu (append-only, horodatage fourni par l'émetteur)."""

    user_id: str | None = None
    ticker: str
    signal_type: str
    price: Decimal
    timestamp: datetime
    timeframe: str | None = None
    source: str = "webhook"
    note: str | None = None
    updated_at: datetime


class SignalCreate(CreateModel):
    user_id: str | None = None
    ticker: str
    signal_type: str
    price: Decimal
    timestamp: datetime | None = None
    timeframe: str | None = None
    source: str = "webhook"
    note: str | None = None


class OhlcCandle(Record):
    symbol: str
    interval: str
    timestamp: datetime
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: Decimal = ZERO
    updated_at: datetime


class OhlcCreate(CreateModel):
    symbol: str
    interval: str
    timestamp: datetime
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: Decimal = ZERO


class HeatmapPoint(Record):
    ticker: str
    week: date
    sma_200w: Decimal
    deviation_percent: Decimal
    price: Decimal


class HeatmapCreate(CreateModel):
    ticker: str
    week: date
    sma_200w: Decimal
    deviation_percent: Decimal
    price: Decimal


class CycleDataPoint(Record):
    ticker: str
    date: date
    ma_2y: Decimal
    deviation: Decimal
    harmonic_cycle: Decimal | None = None
    fibonacci_level: Decimal | None = None
    cycle_momentum: Decimal | None = None
    cycle_phase: str | None = None
    strength_score: Decimal | None = None


class CycleCreate(CreateModel):
    ticker: str
    date: date
    ma_2y: Decimal
    deviation: Decimal
    harmonic_cycle: Decimal | None = None
    fibonacci_level: Decimal | None = None
    cycle_momentum: Decimal | None = None
    cycle_phase: str | None = None
    strength_score: Decimal | None = None


class ForecastPoint(Record):
    ticker: str
    date: date
    predicted_price: Decimal
    confidence_low: Decimal
    confidence_high: Decimal
    cycle_phase: str | None = None
    model_type: str | None = None
    market_regime: str | None = None
    trend_strength: Decimal | None = None


class ForecastCreate(CreateModel):
    ticker: str
    date: date
    predicted_price: Decimal
    confidence_low: Decimal
    confidence_high: Decimal
    cycle_phase: str | None = None
    model_type: str | None = None
    market_regime: str | None = None
    trend_strength: Decimal | None = None


# --- Administration ----------------------------------------------------------------------------


class AdminLogEntry(Record):
    admin_id: str
    action: str
    timestamp: datetime
    target_table: str | None = None
    target_id: str | None = None
    notes: str | None = None


class AdminLogCreate(CreateModel):
    admin_id: str
    action: str
    timestamp: datetime | None = None
    target_table: str | None = None
    target_id: str | None = None
    notes: str | None = None


class SubscriptionPlan(Record):
    name: str
    tier: Tier
    stripe_price_id: str
    monthly_price: int
    yearly_price: int | None = None
    features: list[str] | None = None
    max_signals: int | None = None
    max_tickers: int | None = None
    is_active: bool = True
    updated_at: datetime


class SubscriptionPlanCreate(CreateModel):
    name: str
    tier: Tier
    stripe_price_id: str
    monthly_price: int
    yearly_price: int | None = None
    features: list[str] | None = None
    max_signals: int | None = None
    max_tickers: int | None = None
    is_active: bool = True


class WebhookSecret(Record):
    name: str
    secret: str
    description: str | None = None
    is_active: bool = True
    allowed_sources: list[str] = Field(default_factory=list)
    last_used: datetime | None = None
    usage_count: int = 0
    updated_at: datetime


class WebhookSecretCreate(CreateModel):
    name: str
    secret: str
    description: str | None = None
    is_active: bool = True
    allowed_sources: list[str] = Field(default_factory=list)


class WebhookSecretUpdate(PartialUpdate):
    name: str | None = None
    secret: str | None = None
    description: str | None = None
    is_active: bool | None = None
    allowed_sources: list[str] | None = None
    last_used: datetime | None = None
    usage_count: int | None = None


# --- Abonnements aux tickers (notifications, distincts du palier de facturation) ---------------


class UserSubscription(Record):
    user_id: str
    ticker_symbol: str
    is_active: bool = True
    max_alerts_per_day: int = 50
    alert_types: list[str] = Field(default_factory=list)
    delivery_methods: list[str] = Field(default_factory=list)
    price_thresholds: dict[str, Any] | None = None
    custom_webhook: str | None = None
    telegram_chat_id: str | None = None
    notes: str | None = None
    subscribed_at: datetime
    updated_at: datetime


class UserSubscriptionCreate(CreateModel):
    user_id: str
    ticker_symbol: str
    is_active: bool = True
    max_alerts_per_day: int = 50
    alert_types: list[str] = Field(default_factory=list)
    delivery_methods: list[str] = Field(default_factory=list)
    price_thresholds: dict[str, Any] | None = None
    custom_webhook: str | None = None
    telegram_chat_id: str | None = None
    notes: str | None = None


# --- Trading -----------------------------------------------------------------------------------


class UserTrade(Record):
    user_id: str
    ticker: str
    type: str
    amount: Decimal
    price: Decimal
    total: Decimal
    signal_id: str | None = None
    status: str = "EXECUTED"
    mode: str = "paper"
    pnl: Decimal | None = None
    timestamp: datetime


class TradeCreate(CreateModel):
    user_id: str
    ticker: str
    type: str
    amount: Decimal
    price: Decimal
    total: Decimal
    signal_id: str | None = None
    status: str = "EXECUTED"
    mode: str = "paper"
    pnl: Decimal | None = None


class UserPortfolioPosition(Record):
    """Position par (utilisateur, ticker); clé composite unique."""

    user_id: str
    ticker: str
    quantity: Decimal = ZERO
    average_price: Decimal = ZERO
    current_value: Decimal = ZERO
    pnl: Decimal = ZERO
    pnl_percentage: Decimal = ZERO
    updated_at: datetime


class PortfolioUpdate(PartialUpdate):
    quantity: Decimal | None = None
    average_price: Decimal | None = None
    current_value: Decimal | None = None
    pnl: Decimal | None = None
    pnl_percentage: Decimal | None = None


class TradingSettings(Record):
    user_id: str
    risk_level: str = "moderate"
    max_trade_amount: Decimal = Decimal("1000")
    auto_trading: bool = False
    stop_loss: Decimal = Decimal("5")
    take_profit: Decimal = Decimal("10")
    updated_at: datetime


class TradingSettingsUpdate(PartialUpdate):
    risk_level: str | None = None
    max_trade_amount: Decimal | None = None
    auto_trading: bool | None = None
    stop_loss: Decimal | None = None
    take_profit: Decimal | None = None


class UserAlert(Record):
    user_id: str
    ticker: str
    alert_type: str = "price"
    condition: str = "above"
    value: Decimal
    channels: list[str] = Field(default_factory=lambda: ["email"])
    enabled: bool = True
    trigger_count: int = 0
    last_triggered: datetime | None = None
    updated_at: datetime


class UserAlertCreate(CreateModel):
    user_id: str
    ticker: str
    alert_type: str = "price"
    condition: str = "above"
    value: Decimal
    channels: list[str] = Field(default_factory=lambda: ["email"])
    enabled: bool = True


class UserAlertUpdate(PartialUpdate):
    ticker: str | None = None
    alert_type: str | None = None
    condition: str | None = None
    value: Decimal | None = None
    channels: list[str] | None = None
    enabled: bool | None = None
    trigger_count: int | None = None
    last_triggered: datetime | None = None


class DashboardLayout(Record):
    user_id: str
    name: str = "default"
    layout_config: dict[str, Any] = Field(default_factory=dict)
    is_default: bool = False
    updated_at: datetime


class DashboardLayoutCreate(CreateModel):
    user_id: str
    name: str = "default"
    layout_config: dict[str, Any] = Field(default_factory=dict)
    is_default: bool = False


class DashboardLayoutUpdate(PartialUpdate):
    name: str | None = None
    layout_config: dict[str, Any] | None = None
    is_default: bool | None = None


# --- Gamification ------------------------------------------------------------------------------


class Achievement(Record):
    name: str
    description: str
    category: str
    icon_type: str = "star"
    icon_color: str = "gold"
    points: int = 0
    requirement: dict[str, Any] = Field(default_factory=dict)
    is_active: bool = True
    rarity: str = "common"
    updated_at: datetime


class AchievementCreate(CreateModel):
    name: str
    description: str
    category: str
    icon_type: str = "star"
    icon_color: str = "gold"
    points: int = 0
    requirement: dict[str, Any] = Field(default_factory=dict)
    is_active: bool = True
    rarity: str = "common"


class AchievementUpdate(PartialUpdate):
    name: str | None = None
    description: str | None = None
    category: str | None = None
    icon_type: str | None = None
    icon_color: str | None = None
    points: int | None = None
    requirement: dict[str, Any] | None = None
    is_active: bool | None = None
    rarity: str | None = None


class UserAchievement(Record):
    """Progression d'un utilisateur vers un succès."""

    user_id: str
    achievement_id: str
    progress: int = 0
    target: int = 100
    is_completed: bool = False
    completed_at: datetime | None = None
    updated_at: datetime


class UserAchievementCreate(CreateModel):
    user_id: str
    achievement_id: str
    progress: int = 100
    target: int = 100


class UserAchievementUpdate(PartialUpdate):
    progress: int | None = None
    target: int | None = None
    is_completed: bool | None = None
    completed_at: datetime | None = None


class UserStat(StrEnum):
    """Compteurs incrémentables de `UserStats`."""

    TOTAL_LOGINS = "total_logins"
    LOGIN_STREAK = "login_streak"
    SIGNALS_RECEIVED = "signals_received"
    ALERTS_CREATED = "alerts_created"
    DASHBOARD_VIEWS = "dashboard_views"
    TOTAL_POINTS = "total_points"
    LEVEL = "level"


class UserStats(Record):
    user_id: str
    total_logins: int = 0
    login_streak: int = 0
    last_login_date: datetime | None = None
    signals_received: int = 0
    alerts_created: int = 0
    dashboard_views: int = 0
    total_points: int = 0
    level: int = 1
    updated_at: datetime


class UserStatsCreate(CreateModel):
    user_id: str
    total_logins: int = 0
    login_streak: int = 0
    last_login_date: datetime | None = None
    signals_received: int = 0
    alerts_created: int = 0
    dashboard_views: int = 0
    total_points: int = 0
    level: int = 1


class UserStatsUpdate(PartialUpdate):
    total_logins: int | None = None
    login_streak: int | None = None
    last_login_date: datetime | None = None
    signals_received: int | None = None
    alerts_created: int | None = None
    dashboard_views: int | None = None
    total_points: int | None = None
    level: int | None = None
