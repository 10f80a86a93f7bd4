"""SQLAlchemy models for the durable storage backend."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Integer,
    MetaData,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase


def _uuid() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(UTC)


def _money() -> Numeric:
    return Numeric(20, 8)


class Base(DeclarativeBase):
    """Classe de base pour tous les modèles SQLAlchemy."""

    metadata = MetaData()


class _Timestamps:
    id = Column(String(36), primary_key=True, default=_uuid)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now)


class UserORM(_Timestamps, Base):
    """Identités (rôle, palier et statut d'abonnement)."""

    __tablename__ = "users"

    email = Column(String(255), nullable=False)
    hashed_password = Column(String(255), nullable=True)
    role = Column(String(20), nullable=False, default="user")
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    stripe_customer_id = Column(String(255), nullable=True)
    stripe_subscription_id = Column(String(255), nullable=True)
    subscription_tier = Column(String(20), nullable=True, default="free")
    subscription_status = Column(String(20), nullable=True)
    subscription_ends_at = Column(DateTime(timezone=True), nullable=True)
    last_login_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (UniqueConstraint("email", name="uq_users_email"),)


class UserSettingsORM(_Timestamps, Base):
    __tablename__ = "user_settings"

    user_id = Column(String(36), nullable=False)
    notification_email = Column(Boolean, nullable=False, default=True)
    notification_sms = Column(Boolean, nullable=False, default=False)
    notification_push = Column(Boolean, nullable=False, default=True)
    notification_telegram = Column(Boolean, nullable=False, default=False)
    email_frequency = Column(String(20), nullable=False, default="realtime")
    quiet_hours_start = Column(String(5), nullable=True)
    quiet_hours_end = Column(String(5), nullable=True)
    weekend_notifications = Column(Boolean, nullable=False, default=True)
    phone_number = Column(String(32), nullable=True)
    telegram_chat_id = Column(String(64), nullable=True)
    price_alerts = Column(Boolean, nullable=False, default=True)
    volume_alerts = Column(Boolean, nullable=False, default=False)
    news_alerts = Column(Boolean, nullable=False, default=True)
    technical_alerts = Column(Boolean, nullable=False, default=True)
    whale_alerts = Column(Boolean, nullable=False, default=False)
    theme = Column(String(20), nullable=False, default="dark")
    language = Column(String(10), nullable=False, default="en")
    timezone = Column(String(64), nullable=False, default="UTC")
    currency = Column(String(10), nullable=False, default="USD")
    default_chart_type = Column(String(20), nullable=False, default="candlestick")
    default_timeframe = Column(String(10), nullable=False, default="15m")
    show_volume = Column(Boolean, nullable=False, default=True)
    chart_refresh_interval = Column(Integer, nullable=False, default=30)
    enable_paper_trading = Column(Boolean, nullable=False, default=True)
    paper_trading_balance = Column(_money(), nullable=False, default=10000)
    risk_percentage = Column(_money(), nullable=False, default=2)
    default_dashboard = Column(String(32), nullable=False, default="overview")
    max_dashboard_items = Column(Integer, nullable=False, default=20)
    profile_visibility = Column(String(20), nullable=False, default="private")
    two_factor_enabled = Column(Boolean, nullable=False, default=False)
    session_timeout = Column(Integer, nullable=False, default=1440)
    api_access_enabled = Column(Boolean, nullable=False, default=False)

    __table_args__ = (UniqueConstraint("user_id", name="uq_user_settings_user"),)


class AvailableTickerORM(_Timestamps, Base):
    __tablename__ = "available_tickers"

    symbol = Column(String(32), nullable=False)
    description = Column(Text, nullable=False)
    category = Column(String(32), nullable=False, default="other")
    market_cap = Column(Integer, nullable=False, default=999)
    is_enabled = Column(Boolean, nullable=False, default=True)

    __table_args__ = (UniqueConstraint("symbol", name="uq_available_tickers_symbol"),)


class AlertSignalORM(_Timestamps, Base):
    __tablename__ = "alert_signals"

    user_id = Column(String(36), nullable=True)
    ticker = Column(String(32), nullable=False, index=True)
    signal_type = Column(String(16), nullable=False)
    price = Column(_money(), nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=_now)
    timeframe = Column(String(8), nullable=True)
    source = Column(String(32), nullable=False, default="webhook")
    note = Column(Text, nullable=True)


class OhlcCandleORM(_Timestamps, Base):
    __tablename__ = "ohlc_cache"

    symbol = Column(String(32), nullable=False)
    interval = Column(String(8), nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False)
    open = Column(_money(), nullable=False)
    high = Column(_money(), nullable=False)
    low = Column(_money(), nullable=False)
    close = Column(_money(), nullable=False)
    volume = Column(_money(), nullable=False, default=0)


class HeatmapPointORM(Base):
    __tablename__ = "heatmap_data"

    id = Column(String(36), primary_key=True, default=_uuid)
    ticker = Column(String(32), nullable=False)
    week = Column(Date, nullable=False)
    sma_200w = Column(_money(), nullable=False)
    deviation_percent = Column(_money(), nullable=False)
    price = Column(_money(), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)


class CycleDataPointORM(Base):
    __tablename__ = "cycle_data"

    id = Column(String(36), primary_key=True, default=_uuid)
    ticker = Column(String(32), nullable=False)
    date = Column(Date, nullable=False)
    ma_2y = Column(_money(), nullable=False)
    deviation = Column(_money(), nullable=False)
    harmonic_cycle = Column(_money(), nullable=True)
    fibonacci_level = Column(_money(), nullable=True)
    cycle_momentum = Column(_money(), nullable=True)
    cycle_phase = Column(String(32), nullable=True)
    strength_score = Column(_money(), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)


class ForecastPointORM(Base):
    __tablename__ = "forecast_data"

    id = Column(String(36), primary_key=True, default=_uuid)
    ticker = Column(String(32), nullable=False)
    date = Column(Date, nullable=False)
    predicted_price = Column(_money(), nullable=False)
    confidence_low = Column(_money(), nullable=False)
    confidence_high = Column(_money(), nullable=False)
    cycle_phase = Column(String(32), nullable=True)
    model_type = Column(String(32), nullable=True)
    market_regime = Column(String(32), nullable=True)
    trend_strength = Column(_money(), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)


class AdminLogORM(Base):
    __tablename__ = "admin_logs"

    id = Column(String(36), primary_key=True, default=_uuid)
    admin_id = Column(String(36), nullable=False)
    action = Column(Text, nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=_now)
    target_table = Column(String(64), nullable=True)
    target_id = Column(String(36), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)


class SubscriptionPlanORM(_Timestamps, Base):
    __tablename__ = "subscription_plans"

    name = Column(String(64), nullable=False)
    tier = Column(String(20), nullable=False)
    stripe_price_id = Column(String(255), nullable=False)
    monthly_price = Column(Integer, nullable=False)
    yearly_price = Column(Integer, nullable=True)
    features = Column(JSON, nullable=True)
    max_signals = Column(Integer, nullable=True)
    max_tickers = Column(Integer, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)


class WebhookSecretORM(_Timestamps, Base):
    __tablename__ = "webhook_secrets"

    name = Column(String(64), nullable=False)
    secret = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    allowed_sources = Column(JSON, nullable=False, default=list)
    last_used = Column(DateTime(timezone=True), nullable=True)
    usage_count = Column(Integer, nullable=False, default=0)

    __table_args__ = (UniqueConstraint("name", name="uq_webhook_secrets_name"),)


class UserSubscriptionORM(_Timestamps, Base):
    """Abonnements aux tickers; pas d'unicité sur (user_id, ticker_symbol)."""

    __tablename__ = "user_subscriptions"

    user_id = Column(String(36), nullable=False, index=True)
    ticker_symbol = Column(String(32), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    max_alerts_per_day = Column(Integer, nullable=False, default=50)
    alert_types = Column(JSON, nullable=False, default=list)
    delivery_methods = Column(JSON, nullable=False, default=list)
    price_thresholds = Column(JSON, nullable=True)
    custom_webhook = Column(Text, nullable=True)
    telegram_chat_id = Column(String(64), nullable=True)
    notes = Column(Text, nullable=True)
    subscribed_at = Column(DateTime(timezone=True), nullable=False, default=_now)


class UserTradeORM(Base):
    __tablename__ = "user_trades"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), nullable=False, index=True)
    ticker = Column(String(32), nullable=False)
    type = Column(String(8), nullable=False)
    amount = Column(_money(), nullable=False)
    price = Column(_money(), nullable=False)
    total = Column(_money(), nullable=False)
    signal_id = Column(String(36), nullable=True)
    status = Column(String(16), nullable=False, default="EXECUTED")
    mode = Column(String(8), nullable=False, default="paper")
    pnl = Column(_money(), nullable=True)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=_now)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)


class UserPortfolioORM(_Timestamps, Base):
    __tablename__ = "user_portfolio"

    user_id = Column(String(36), nullable=False)
    ticker = Column(String(32), nullable=False)
    quantity = Column(_money(), nullable=False, default=0)
    average_price = Column(_money(), nullable=False, default=0)
    current_value = Column(_money(), nullable=False, default=0)
    pnl = Column(_money(), nullable=False, default=0)
    pnl_percentage = Column(_money(), nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("user_id", "ticker", name="uq_user_portfolio_user_ticker"),
    )


class TradingSettingsORM(_Timestamps, Base):
    __tablename__ = "trading_settings"

    user_id = Column(String(36), nullable=False)
    risk_level = Column(String(16), nullable=False, default="moderate")
    max_trade_amount = Column(_money(), nullable=False, default=1000)
    auto_trading = Column(Boolean, nullable=False, default=False)
    stop_loss = Column(_money(), nullable=False, default=5)
    take_profit = Column(_money(), nullable=False, default=10)

    __table_args__ = (UniqueConstraint("user_id", name="uq_trading_settings_user"),)


class UserAlertORM(_Timestamps, Base):
    __tablename__ = "user_alerts"

    user_id = Column(String(36), nullable=False, index=True)
    ticker = Column(String(32), nullable=False)
    alert_type = Column(String(16), nullable=False, default="price")
    condition = Column(String(16), nullable=False, default="above")
    value = Column(_money(), nullable=False)
    channels = Column(JSON, nullable=False, default=lambda: ["email"])
    enabled = Column(Boolean, nullable=False, default=True)
    trigger_count = Column(Integer, nullable=False, default=0)
    last_triggered = Column(DateTime(timezone=True), nullable=True)


class DashboardLayoutORM(_Timestamps, Base):
    __tablename__ = "dashboard_layouts"

    user_id = Column(String(36), nullable=False, index=True)
    name = Column(String(64), nullable=False, default="default")
    layout_config = Column(JSON, nullable=False, default=dict)
    is_default = Column(Boolean, nullable=False, default=False)


class AchievementORM(_Timestamps, Base):
    __tablename__ = "achievements"

    name = Column(String(64), nullable=False)
    description = Column(Text, nullable=False)
    category = Column(String(32), nullable=False)
    icon_type = Column(String(32), nullable=False, default="star")
    icon_color = Column(String(32), nullable=False, default="gold")
    points = Column(Integer, nullable=False, default=0)
    requirement = Column(JSON, nullable=False, default=dict)
    is_active = Column(Boolean, nullable=False, default=True)
    rarity = Column(String(16), nullable=False, default="common")


class UserAchievementORM(_Timestamps, Base):
    __tablename__ = "user_achievements"

    user_id = Column(String(36), nullable=False, index=True)
    achievement_id = Column(String(36), nullable=False)
    progress = Column(Integer, nullable=False, default=0)
    target = Column(Integer, nullable=False, default=100)
    is_completed = Column(Boolean, nullable=False, default=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)


class UserStatsORM(_Timestamps, Base):
    __tablename__ = "user_stats"

    user_id = Column(String(36), nullable=False)
    total_logins = Column(Integer, nullable=False, default=0)
    login_streak = Column(Integer, nullable=False, default=0)
    last_login_date = Column(DateTime(timezone=True), nullable=True)
    signals_received = Column(Integer, nullable=False, default=0)
    alerts_created = Column(Integer, nullable=False, default=0)
    dashboard_views = Column(Integer, nullable=False, default=0)
    total_points = Column(Integer, nullable=False, default=0)
    level = Column(Integer, nullable=False, default=1)

    __table_args__ = (UniqueConstraint("user_id", name="uq_user_stats_user"),)
