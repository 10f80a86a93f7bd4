"""
Application principale FastAPI.

Ce module assemble tous les composants de l'application : conteneur, middlewares,
gestionnaires d'erreurs, routes et métriques.

Responsabilités du module:
- Initialiser le logging structuré
- Construire (ou recevoir) le `Container` et l'exposer via `app.state`
- Ajouter les middlewares (request id, métriques Prometheus)
- Monter les routers (santé, authentification, marché, métriques)

Pas d'instance au niveau module: lancer avec `uvicorn backend.app.main:create_app --factory`.
"""

from __future__ import annotations

from fastapi import FastAPI

from backend.api.routes_auth import router as auth_router
from backend.api.routes_health import router as health_router
from backend.api.routes_market import router as market_router
from backend.apigw.errors import register_error_handlers
from backend.app.metrics import PrometheusMiddleware, metrics_router
from backend.core.container import Container
from backend.core.logging import setup_logging
from backend.middlewares.request_id import RequestIDMiddleware


def create_app(container: Container | None = None) -> FastAPI:
    """
    Construit et retourne l'application FastAPI prête à l'usage.

    Étapes:
    - Construit le conteneur si aucun n'est fourni (lecture de la configuration, sélection
      du stockage)
    - Configure le logging structuré (structlog)
    - Ajoute les middlewares utiles au debug/traçabilité
    - Publie les routes
    """
    container = container or Container()
    settings = container.settings
    setup_logging(settings.LOG_LEVEL, json_logs=settings.LOG_JSON)
    app = FastAPI(title=settings.APP_NAME, debug=settings.APP_DEBUG)
    app.state.container = container
    app.state.gate = container.gate
    app.add_middleware(PrometheusMiddleware)
    app.add_middleware(RequestIDMiddleware)
    register_error_handlers(app)
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(market_router)
    app.include_router(metrics_router)
    return app
