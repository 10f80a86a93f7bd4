"""Tests du middleware d'identifiant de requête."""

from backend.middlewares.request_id import MAX_REQUEST_ID_LENGTH


def test_request_id_generated(client):
    r = client.get("/health")
    assert r.headers["X-Request-ID"]


def test_request_id_propagated(client):
    r = client.get("/health", headers={"X-Request-ID": "abc-123"})
    assert r.headers["X-Request-ID"] == "abc-123"


def test_oversized_request_id_replaced(client):
    incoming = "x" * (MAX_REQUEST_ID_LENGTH + 1)
    r = client.get("/health", headers={"X-Request-ID": incoming})
    assert r.headers["X-Request-ID"] != incoming


def test_request_id_on_gate_rejection(client):
    r = client.get("/auth/me", headers={"X-Request-ID": "denied-1"})
    assert r.status_code == 401
    assert r.headers["X-Request-ID"] == "denied-1"
