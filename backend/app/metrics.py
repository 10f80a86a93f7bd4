"""
Métriques Prometheus pour l'application.

Ce module définit les métriques HTTP et les métriques de la passerelle d'autorisation, ainsi que
l'endpoint `/metrics` et le middleware de mesure des requêtes.
"""

import time

from fastapi import APIRouter, Request
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

metrics_router = APIRouter()

REQUEST_COUNT = Counter(
    "http_requests_total", "Total HTTP requests", ["method", "route", "status"]
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds", "Latency of HTTP requests", ["route"]
)

# Passerelle d'autorisation
ENTITLEMENT_DECISIONS = Counter(
    "entitlement_decisions_total",
    "Entitlement decisions by requirement and outcome",
    ["requirement", "outcome"],
)
AUTHENTICATION_FAILURES = Counter(
    "authentication_failures_total",
    "Rejected credentials by reason code",
    ["code"],
)


@metrics_router.get("/metrics")
def metrics():
    """
    Expose les métriques Prometheus au format texte.

    Returns:
        Response: Réponse HTTP contenant les métriques au format Prometheus.
    """
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


class PrometheusMiddleware(BaseHTTPMiddleware):
    """
    Middleware Prometheus pour mesurer les métriques HTTP.

    Le label `route` est le gabarit de la route (`/items/{id}`) quand il est connu, pour borner la
    cardinalité.
    """

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        response: Response = await call_next(request)
        route = getattr(request.scope.get("route"), "path", None) or request.scope.get(
            "path", "unknown"
        )
        REQUEST_COUNT.labels(request.method, route, str(response.status_code)).inc()
        REQUEST_LATENCY.labels(route).observe(time.perf_counter() - start)
        return response
