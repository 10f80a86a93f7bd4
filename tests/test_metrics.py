"""Tests pour les métriques Prometheus.

Ce module teste que les métriques HTTP et celles de la passerelle d'autorisation sont exposées via
l'endpoint /metrics.
"""

from prometheus_client import REGISTRY

from backend.core.http_constants import HTTP_OK
from backend.domain.entities import Tier


def _sample(name: str, labels: dict[str, str]) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


def test_metrics_exposed(client):
    """Teste que l'endpoint /metrics expose les métriques Prometheus."""
    client.get("/health")
    r = client.get("/metrics")
    assert r.status_code == HTTP_OK
    assert b"http_requests_total" in r.content
    assert b"http_request_duration_seconds" in r.content


def test_gate_metrics_recorded(client, make_identity, auth_headers):
    """Les refus de la passerelle incrémentent les compteurs, quel que soit l'ordre des labels."""
    no_token = {"code": "NO_TOKEN"}
    denied = {"requirement": "feature:basicSignals", "outcome": "SUBSCRIPTION_INSUFFICIENT"}
    before_auth = _sample("authentication_failures_total", no_token)
    before_denied = _sample("entitlement_decisions_total", denied)

    client.get("/auth/me")
    client.get("/api/signals", headers=auth_headers(make_identity(tier=Tier.FREE)))

    assert _sample("authentication_failures_total", no_token) == before_auth + 1
    assert _sample("entitlement_decisions_total", denied) == before_denied + 1
    body = client.get("/metrics").text
    assert "entitlement_decisions_total{" in body
    assert "authentication_failures_total{" in body


def test_route_label_uses_template(client, make_identity, auth_headers):
    headers = auth_headers(make_identity(tier=Tier.PREMIUM))
    client.get("/api/forecast/ETHUSDT", headers=headers)
    body = client.get("/metrics").text
    assert 'route="/api/forecast/{ticker}"' in body
