# mypy: ignore-errors
"""
Migration Alembic initiale du schéma de stockage durable.

Crée les tables des identités, paramètres utilisateur, données de marché, abonnements aux tickers,
trading, tableaux de bord, succès et statistiques. Les colonnes reprennent exactement les champs
des enregistrements du domaine.
"""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None

_TABLES = (
    "user_stats",
    "user_achievements",
    "achievements",
    "dashboard_layouts",
    "user_alerts",
    "trading_settings",
    "user_portfolio",
    "user_trades",
    "user_subscriptions",
    "webhook_secrets",
    "subscription_plans",
    "admin_logs",
    "forecast_data",
    "cycle_data",
    "heatmap_data",
    "ohlc_cache",
    "alert_signals",
    "available_tickers",
    "user_settings",
    "users",
)


def _money() -> sa.Numeric:
    return sa.Numeric(20, 8)


def _id() -> sa.Column:
    return sa.Column("id", sa.String(length=36), primary_key=True)


def _created() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), nullable=False)


def _updated() -> sa.Column:
    return sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False)


def upgrade() -> None:
    """
    Applique la migration: crée toutes les tables du schéma.

    Les contraintes d'unicité (email, symbole, nom de secret, clés par utilisateur) sont déclarées
    ici; les valeurs par défaut sont appliquées par l'application.
    """
    op.create_table(
        "users",
        _id(),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("hashed_password", sa.String(length=255), nullable=True),
        sa.Column("role", sa.String(length=20), nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=True),
        sa.Column("last_name", sa.String(length=100), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("stripe_customer_id", sa.String(length=255), nullable=True),
        sa.Column("stripe_subscription_id", sa.String(length=255), nullable=True),
        sa.Column("subscription_tier", sa.String(length=20), nullable=True),
        sa.Column("subscription_status", sa.String(length=20), nullable=True),
        sa.Column("subscription_ends_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        _created(),
        _updated(),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )
    op.create_table(
        "user_settings",
        _id(),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("notification_email", sa.Boolean(), nullable=False),
        sa.Column("notification_sms", sa.Boolean(), nullable=False),
        sa.Column("notification_push", sa.Boolean(), nullable=False),
        sa.Column("notification_telegram", sa.Boolean(), nullable=False),
        sa.Column("email_frequency", sa.String(length=20), nullable=False),
        sa.Column("quiet_hours_start", sa.String(length=5), nullable=True),
        sa.Column("quiet_hours_end", sa.String(length=5), nullable=True),
        sa.Column("weekend_notifications", sa.Boolean(), nullable=False),
        sa.Column("phone_number", sa.String(length=32), nullable=True),
        sa.Column("telegram_chat_id", sa.String(length=64), nullable=True),
        sa.Column("price_alerts", sa.Boolean(), nullable=False),
        sa.Column("volume_alerts", sa.Boolean(), nullable=False),
        sa.Column("news_alerts", sa.Boolean(), nullable=False),
        sa.Column("technical_alerts", sa.Boolean(), nullable=False),
        sa.Column("whale_alerts", sa.Boolean(), nullable=False),
        sa.Column("theme", sa.String(length=20), nullable=False),
        sa.Column("language", sa.String(length=10), nullable=False),
        sa.Column("timezone", sa.String(length=64), nullable=False),
        sa.Column("currency", sa.String(length=10), nullable=False),
        sa.Column("default_chart_type", sa.String(length=20), nullable=False),
        sa.Column("default_timeframe", sa.String(length=10), nullable=False),
        sa.Column("show_volume", sa.Boolean(), nullable=False),
        sa.Column("chart_refresh_interval", sa.Integer(), nullable=False),
        sa.Column("enable_paper_trading", sa.Boolean(), nullable=False),
        sa.Column("paper_trading_balance", _money(), nullable=False),
        sa.Column("risk_percentage", _money(), nullable=False),
        sa.Column("default_dashboard", sa.String(length=32), nullable=False),
        sa.Column("max_dashboard_items", sa.Integer(), nullable=False),
        sa.Column("profile_visibility", sa.String(length=20), nullable=False),
        sa.Column("two_factor_enabled", sa.Boolean(), nullable=False),
        sa.Column("session_timeout", sa.Integer(), nullable=False),
        sa.Column("api_access_enabled", sa.Boolean(), nullable=False),
        _created(),
        _updated(),
        sa.UniqueConstraint("user_id", name="uq_user_settings_user"),
    )
    op.create_table(
        "available_tickers",
        _id(),
        sa.Column("symbol", sa.String(length=32), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("category", sa.String(length=32), nullable=False),
        sa.Column("market_cap", sa.Integer(), nullable=False),
        sa.Column("is_enabled", sa.Boolean(), nullable=False),
        _created(),
        _updated(),
        sa.UniqueConstraint("symbol", name="uq_available_tickers_symbol"),
    )
    op.create_table(
        "alert_signals",
        _id(),
        sa.Column("user_id", sa.String(length=36), nullable=True),
        sa.Column("ticker", sa.String(length=32), nullable=False),
        sa.Column("signal_type", sa.String(length=16), nullable=False),
        sa.Column("price", _money(), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("timeframe", sa.String(length=8), nullable=True),
        sa.Column("source", sa.String(length=32), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        _created(),
        _updated(),
    )
    op.create_index("ix_alert_signals_ticker", "alert_signals", ["ticker"])
    op.create_table(
        "ohlc_cache",
        _id(),
        sa.Column("symbol", sa.String(length=32), nullable=False),
        sa.Column("interval", sa.String(length=8), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("open", _money(), nullable=False),
        sa.Column("high", _money(), nullable=False),
        sa.Column("low", _money(), nullable=False),
        sa.Column("close", _money(), nullable=False),
        sa.Column("volume", _money(), nullable=False),
        _created(),
        _updated(),
    )
    op.create_table(
        "heatmap_data",
        _id(),
        sa.Column("ticker", sa.String(length=32), nullable=False),
        sa.Column("week", sa.Date(), nullable=False),
        sa.Column("sma_200w", _money(), nullable=False),
        sa.Column("deviation_percent", _money(), nullable=False),
        sa.Column("price", _money(), nullable=False),
        _created(),
    )
    op.create_table(
        "cycle_data",
        _id(),
        sa.Column("ticker", sa.String(length=32), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("ma_2y", _money(), nullable=False),
        sa.Column("deviation", _money(), nullable=False),
        sa.Column("harmonic_cycle", _money(), nullable=True),
        sa.Column("fibonacci_level", _money(), nullable=True),
        sa.Column("cycle_momentum", _money(), nullable=True),
        sa.Column("cycle_phase", sa.String(length=32), nullable=True),
        sa.Column("strength_score", _money(), nullable=True),
        _created(),
    )
    op.create_table(
        "forecast_data",
        _id(),
        sa.Column("ticker", sa.String(length=32), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("predicted_price", _money(), nullable=False),
        sa.Column("confidence_low", _money(), nullable=False),
        sa.Column("confidence_high", _money(), nullable=False),
        sa.Column("cycle_phase", sa.String(length=32), nullable=True),
        sa.Column("model_type", sa.String(length=32), nullable=True),
        sa.Column("market_regime", sa.String(length=32), nullable=True),
        sa.Column("trend_strength", _money(), nullable=True),
        _created(),
    )
    op.create_table(
        "admin_logs",
        _id(),
        sa.Column("admin_id", sa.String(length=36), nullable=False),
        sa.Column("action", sa.Text(), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("target_table", sa.String(length=64), nullable=True),
        sa.Column("target_id", sa.String(length=36), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        _created(),
    )
    op.create_table(
        "subscription_plans",
        _id(),
        sa.Column("name", sa.String(length=64), nullable=False),
        sa.Column("tier", sa.String(length=20), nullable=False),
        sa.Column("stripe_price_id", sa.String(length=255), nullable=False),
        sa.Column("monthly_price", sa.Integer(), nullable=False),
        sa.Column("yearly_price", sa.Integer(), nullable=True),
        sa.Column("features", sa.JSON(), nullable=True),
        sa.Column("max_signals", sa.Integer(), nullable=True),
        sa.Column("max_tickers", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        _created(),
        _updated(),
    )
    op.create_table(
        "webhook_secrets",
        _id(),
        sa.Column("name", sa.String(length=64), nullable=False),
        sa.Column("secret", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("allowed_sources", sa.JSON(), nullable=False),
        sa.Column("last_used", sa.DateTime(timezone=True), nullable=True),
        sa.Column("usage_count", sa.Integer(), nullable=False),
        _created(),
        _updated(),
        sa.UniqueConstraint("name", name="uq_webhook_secrets_name"),
    )
    op.create_table(
        "user_subscriptions",
        _id(),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("ticker_symbol", sa.String(length=32), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("max_alerts_per_day", sa.Integer(), nullable=False),
        sa.Column("alert_types", sa.JSON(), nullable=False),
        sa.Column("delivery_methods", sa.JSON(), nullable=False),
        sa.Column("price_thresholds", sa.JSON(), nullable=True),
        sa.Column("custom_webhook", sa.Text(), nullable=True),
        sa.Column("telegram_chat_id", sa.String(length=64), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("subscribed_at", sa.DateTime(timezone=True), nullable=False),
        _created(),
        _updated(),
    )
    op.create_index("ix_user_subscriptions_user_id", "user_subscriptions", ["user_id"])
    op.create_table(
        "user_trades",
        _id(),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("ticker", sa.String(length=32), nullable=False),
        sa.Column("type", sa.String(length=8), nullable=False),
        sa.Column("amount", _money(), nullable=False),
        sa.Column("price", _money(), nullable=False),
        sa.Column("total", _money(), nullable=False),
        sa.Column("signal_id", sa.String(length=36), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("mode", sa.String(length=8), nullable=False),
        sa.Column("pnl", _money(), nullable=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        _created(),
    )
    op.create_index("ix_user_trades_user_id", "user_trades", ["user_id"])
    op.create_table(
        "user_portfolio",
        _id(),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("ticker", sa.String(length=32), nullable=False),
        sa.Column("quantity", _money(), nullable=False),
        sa.Column("average_price", _money(), nullable=False),
        sa.Column("current_value", _money(), nullable=False),
        sa.Column("pnl", _money(), nullable=False),
        sa.Column("pnl_percentage", _money(), nullable=False),
        _created(),
        _updated(),
        sa.UniqueConstraint("user_id", "ticker", name="uq_user_portfolio_user_ticker"),
    )
    op.create_table(
        "trading_settings",
        _id(),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("risk_level", sa.String(length=16), nullable=False),
        sa.Column("max_trade_amount", _money(), nullable=False),
        sa.Column("auto_trading", sa.Boolean(), nullable=False),
        sa.Column("stop_loss", _money(), nullable=False),
        sa.Column("take_profit", _money(), nullable=False),
        _created(),
        _updated(),
        sa.UniqueConstraint("user_id", name="uq_trading_settings_user"),
    )
    op.create_table(
        "user_alerts",
        _id(),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("ticker", sa.String(length=32), nullable=False),
        sa.Column("alert_type", sa.String(length=16), nullable=False),
        sa.Column("condition", sa.String(length=16), nullable=False),
        sa.Column("value", _money(), nullable=False),
        sa.Column("channels", sa.JSON(), nullable=False),
        sa.Column("enabled", sa.Boolean(), nullable=False),
        sa.Column("trigger_count", sa.Integer(), nullable=False),
        sa.Column("last_triggered", sa.DateTime(timezone=True), nullable=True),
        _created(),
        _updated(),
    )
    op.create_index("ix_user_alerts_user_id", "user_alerts", ["user_id"])
    op.create_table(
        "dashboard_layouts",
        _id(),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=64), nullable=False),
        sa.Column("layout_config", sa.JSON(), nullable=False),
        sa.Column("is_default", sa.Boolean(), nullable=False),
        _created(),
        _updated(),
    )
    op.create_index("ix_dashboard_layouts_user_id", "dashboard_layouts", ["user_id"])
    op.create_table(
        "achievements",
        _id(),
        sa.Column("name", sa.String(length=64), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("category", sa.String(length=32), nullable=False),
        sa.Column("icon_type", sa.String(length=32), nullable=False),
        sa.Column("icon_color", sa.String(length=32), nullable=False),
        sa.Column("points", sa.Integer(), nullable=False),
        sa.Column("requirement", sa.JSON(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("rarity", sa.String(length=16), nullable=False),
        _created(),
        _updated(),
    )
    op.create_table(
        "user_achievements",
        _id(),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("achievement_id", sa.String(length=36), nullable=False),
        sa.Column("progress", sa.Integer(), nullable=False),
        sa.Column("target", sa.Integer(), nullable=False),
        sa.Column("is_completed", sa.Boolean(), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        _created(),
        _updated(),
    )
    op.create_index("ix_user_achievements_user_id", "user_achievements", ["user_id"])
    op.create_table(
        "user_stats",
        _id(),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("total_logins", sa.Integer(), nullable=False),
        sa.Column("login_streak", sa.Integer(), nullable=False),
        sa.Column("last_login_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("signals_received", sa.Integer(), nullable=False),
        sa.Column("alerts_created", sa.Integer(), nullable=False),
        sa.Column("dashboard_views", sa.Integer(), nullable=False),
        sa.Column("total_points", sa.Integer(), nullable=False),
        sa.Column("level", sa.Integer(), nullable=False),
        _created(),
        _updated(),
        sa.UniqueConstraint("user_id", name="uq_user_stats_user"),
    )


def downgrade() -> None:
    """
    Annule la migration en supprimant toutes les tables créées par `upgrade`.
    """
    for table in _TABLES:
        op.drop_table(table)
