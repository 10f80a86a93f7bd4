"""
Routes de données de marché protégées par la passerelle d'autorisation.

Chaque endpoint déclare son exigence (palier minimal, fonctionnalité, paiement ou rôle admin)
via une dépendance `requires_*`; la passerelle rejette la requête avant l'exécution du handler.
"""

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query

from backend.api.deps import get_storage
from backend.api.schemas import IdentityOut, PortfolioPayload, TickerSubscriptionPayload
from backend.apigw.gate import (
    requires,
    requires_admin,
    requires_feature,
    requires_payment,
    requires_tier,
)
from backend.core.http_constants import (
    DEFAULT_ADMIN_LOG_LIMIT,
    DEFAULT_OHLC_LIMIT,
    DEFAULT_SIGNAL_LIMIT,
    DEFAULT_TRADE_LIMIT,
    HTTP_CREATED,
    HTTP_NOT_FOUND,
    HTTP_NO_CONTENT,
)
from backend.domain.entities import Identity, Tier
from backend.domain.records import (
    AdminLogEntry,
    AlertSignal,
    AvailableTicker,
    CycleDataPoint,
    ForecastPoint,
    HeatmapPoint,
    OhlcCandle,
    PortfolioUpdate,
    SubscriptionPlan,
    UserPortfolioPosition,
    UserSubscription,
    UserSubscriptionCreate,
    UserTrade,
)
from backend.infra.storage.base import Storage

router = APIRouter(prefix="/api", tags=["market"])

log = structlog.get_logger(__name__)


@router.get("/plans", response_model=list[SubscriptionPlan])
def plans(storage: Storage = Depends(get_storage)):
    """Catalogue public des offres d'abonnement (prix mensuel croissant)."""
    return storage.list_subscription_plans()


@router.get("/tickers", response_model=list[AvailableTicker])
def tickers(
    _: Identity = Depends(requires()),
    storage: Storage = Depends(get_storage),
):
    """Tickers activés (toute identité authentifiée)."""
    return storage.list_enabled_tickers()


@router.get("/signals", response_model=list[AlertSignal])
def signals(
    ticker: str | None = None,
    limit: int = Query(DEFAULT_SIGNAL_LIMIT, ge=1, le=DEFAULT_OHLC_LIMIT),
    _: Identity = Depends(requires_feature("basicSignals")),
    storage: Storage = Depends(get_storage),
):
    """Signaux récents, éventuellement filtrés par ticker."""
    if ticker:
        return storage.list_signals_by_ticker(ticker, limit=limit)
    return storage.list_signals(limit=limit)


@router.get("/signals/mine", response_model=list[AlertSignal])
def my_signals(
    limit: int = Query(DEFAULT_SIGNAL_LIMIT, ge=1, le=DEFAULT_OHLC_LIMIT),
    identity: Identity = Depends(requires_feature("basicSignals")),
    storage: Storage = Depends(get_storage),
):
    return storage.list_signals_by_user(identity.id, limit=limit)


@router.get("/ohlc/{symbol}", response_model=list[OhlcCandle])
def ohlc(
    symbol: str,
    interval: str = "1h",
    limit: int = Query(DEFAULT_OHLC_LIMIT, ge=1, le=DEFAULT_OHLC_LIMIT),
    _: Identity = Depends(requires_feature("basicCharts")),
    storage: Storage = Depends(get_storage),
):
    """Bougies OHLC (vide si la table de cache n'existe pas)."""
    return storage.list_ohlc(symbol, interval, limit=limit)


@router.get("/heatmap/{ticker}", response_model=list[HeatmapPoint])
def heatmap(
    ticker: str,
    _: Identity = Depends(requires_feature("heatmap")),
    storage: Storage = Depends(get_storage),
):
    return storage.list_heatmap(ticker)


@router.get("/cycles/{ticker}", response_model=list[CycleDataPoint])
def cycles(
    ticker: str,
    _: Identity = Depends(requires_feature("cycleAnalysis")),
    storage: Storage = Depends(get_storage),
):
    return storage.list_cycle_data(ticker)


@router.get("/forecast/{ticker}", response_model=list[ForecastPoint])
def forecast(
    ticker: str,
    _: Identity = Depends(requires_feature("forecasting")),
    storage: Storage = Depends(get_storage),
):
    """Prévisions du ticker (palier premium et plus)."""
    return storage.list_forecasts(ticker)


@router.get("/subscriptions", response_model=list[UserSubscription])
def list_ticker_subscriptions(
    identity: Identity = Depends(requires_feature("alerts")),
    storage: Storage = Depends(get_storage),
):
    """Abonnements aux alertes de l'utilisateur courant."""
    return storage.list_user_subscriptions(identity.id)


@router.post("/subscriptions", status_code=HTTP_CREATED, response_model=UserSubscription)
def create_ticker_subscription(
    p: TickerSubscriptionPayload,
    identity: Identity = Depends(requires_feature("alerts")),
    storage: Storage = Depends(get_storage),
):
    data = UserSubscriptionCreate(user_id=identity.id, **p.model_dump(exclude_none=True))
    subscription = storage.create_user_subscription(data)
    log.info(
        "ticker_subscription_created",
        user_id=identity.id,
        ticker=subscription.ticker_symbol,
    )
    return subscription


@router.delete("/subscriptions/{subscription_id}", status_code=HTTP_NO_CONTENT)
def delete_ticker_subscription(
    subscription_id: str,
    identity: Identity = Depends(requires_feature("alerts")),
    storage: Storage = Depends(get_storage),
):
    """Supprime un abonnement de l'utilisateur courant (404 s'il ne lui appartient pas)."""
    owned = {s.id for s in storage.list_user_subscriptions(identity.id)}
    if subscription_id not in owned or not storage.delete_user_subscription(subscription_id):
        raise HTTPException(status_code=HTTP_NOT_FOUND, detail="Subscription not found")


@router.get("/portfolio", response_model=list[UserPortfolioPosition])
def portfolio(
    identity: Identity = Depends(requires_feature("portfolioManagement")),
    storage: Storage = Depends(get_storage),
):
    return storage.list_portfolio(identity.id)


@router.put("/portfolio/{ticker}", response_model=UserPortfolioPosition)
def update_portfolio(
    ticker: str,
    p: PortfolioPayload,
    identity: Identity = Depends(requires_feature("portfolioManagement")),
    storage: Storage = Depends(get_storage),
):
    """Crée ou met à jour la position (utilisateur, ticker)."""
    update = PortfolioUpdate(**p.model_dump(exclude_unset=True))
    return storage.update_portfolio(identity.id, ticker, update)


@router.get("/trades", response_model=list[UserTrade])
def trades(
    limit: int = Query(DEFAULT_TRADE_LIMIT, ge=1, le=DEFAULT_OHLC_LIMIT),
    identity: Identity = Depends(requires_feature("tradingPlayground")),
    storage: Storage = Depends(get_storage),
):
    return storage.list_trades(identity.id, limit=limit)


@router.get("/members")
def members_area(identity: Identity = Depends(requires_payment())):
    """Espace membres: tout palier payant avec un abonnement actif."""
    return {
        "tier": identity.subscription_tier,
        "status": identity.subscription_status,
        "ends_at": identity.subscription_ends_at,
    }


@router.get("/analytics/advanced")
def advanced_analytics(
    identity: Identity = Depends(requires_tier(Tier.PRO)),
    storage: Storage = Depends(get_storage),
):
    """Résumé analytique de l'utilisateur (palier pro minimum)."""
    stats = storage.get_user_stats(identity.id)
    positions = storage.list_portfolio(identity.id)
    return {
        "stats": stats.model_dump(mode="json") if stats else None,
        "positions": len(positions),
    }


@router.get("/admin/logs", response_model=list[AdminLogEntry])
def admin_logs(
    limit: int = Query(DEFAULT_ADMIN_LOG_LIMIT, ge=1, le=DEFAULT_OHLC_LIMIT),
    _: Identity = Depends(requires_admin()),
    storage: Storage = Depends(get_storage),
):
    return storage.list_admin_logs(limit=limit)


@router.get("/admin/users", response_model=list[IdentityOut])
def admin_users(
    _: Identity = Depends(requires_admin()),
    storage: Storage = Depends(get_storage),
):
    """Liste des identités (profil public uniquement)."""
    return [IdentityOut.model_validate(i) for i in storage.list_identities()]
