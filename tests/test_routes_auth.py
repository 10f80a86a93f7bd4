"""Tests des routes d'authentification (inscription, connexion, profil)."""

from __future__ import annotations

from backend.core.http_constants import (
    HTTP_CONFLICT,
    HTTP_CREATED,
    HTTP_OK,
    HTTP_UNAUTHORIZED,
    HTTP_UNPROCESSABLE_ENTITY,
)


def _signup(client, email="new@test.io", password="secret123"):
    return client.post(
        "/auth/signup",
        json={"email": email, "password": password, "first_name": "New"},
    )


def test_signup_creates_free_identity(client, container):
    r = _signup(client)
    assert r.status_code == HTTP_CREATED
    body = r.json()
    assert body["token_type"] == "bearer"
    assert body["user"]["subscription_tier"] == "free"
    assert body["user"]["role"] == "user"
    stored = container.storage.get_identity_by_email("new@test.io")
    assert stored is not None
    assert stored.hashed_password != "secret123"
    assert container.verifier.verify(body["access_token"]) == stored.id


def test_duplicate_signup_409(client):
    assert _signup(client).status_code == HTTP_CREATED
    r = _signup(client)
    assert r.status_code == HTTP_CONFLICT
    assert r.json()["code"] == "CONFLICT"


def test_signup_validates_payload(client):
    r = client.post("/auth/signup", json={"email": "not-an-email", "password": "secret123"})
    assert r.status_code == HTTP_UNPROCESSABLE_ENTITY


def test_login_returns_token_and_records_login(client, container):
    _signup(client, email="login@test.io")
    r = client.post("/auth/login", json={"email": "login@test.io", "password": "secret123"})
    assert r.status_code == HTTP_OK
    token = r.json()["access_token"]
    assert r.json()["user"]["last_login_at"] is not None
    me = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == HTTP_OK
    assert me.json()["email"] == "login@test.io"


def test_login_wrong_password(client):
    _signup(client, email="wrong@test.io")
    r = client.post("/auth/login", json={"email": "wrong@test.io", "password": "nope"})
    assert r.status_code == HTTP_UNAUTHORIZED
    assert r.json()["code"] == "INVALID_CREDENTIALS"
    assert r.headers["WWW-Authenticate"] == "Bearer"


def test_login_unknown_email(client):
    r = client.post("/auth/login", json={"email": "ghost@test.io", "password": "secret123"})
    assert r.status_code == HTTP_UNAUTHORIZED


def test_login_deactivated_account(client, make_identity):
    identity = make_identity(is_active=False, password="secret123")
    r = client.post("/auth/login", json={"email": identity.email, "password": "secret123"})
    assert r.status_code == HTTP_UNAUTHORIZED
