"""Tests du chargement de la configuration."""

import pytest

from backend.core.settings import get_settings
from backend.domain.errors import ConfigurationError


def test_missing_jwt_secret_is_fatal(monkeypatch):
    """Sans secret de signature, la configuration est refusée au démarrage."""
    monkeypatch.delenv("JWT_SECRET", raising=False)
    with pytest.raises(ConfigurationError) as exc:
        get_settings(_env_file=None)
    assert "JWT_SECRET" in str(exc.value)


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("JWT_SECRET", "env-secret")
    monkeypatch.setenv("DATABASE_URL", "sqlite:///./x.db")
    monkeypatch.setenv("UNKNOWN_FEATURE_POLICY", "deny")
    s = get_settings(_env_file=None)
    assert s.JWT_SECRET == "env-secret"
    assert s.DATABASE_URL == "sqlite:///./x.db"
    assert s.UNKNOWN_FEATURE_POLICY == "deny"
    assert s.JWT_ALG == "HS256"


def test_empty_database_url_means_no_database(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "")
    s = get_settings(JWT_SECRET="s", _env_file=None)
    assert s.DATABASE_URL is None


def test_invalid_policy_rejected():
    with pytest.raises(ConfigurationError):
        get_settings(JWT_SECRET="s", UNKNOWN_FEATURE_POLICY="maybe", _env_file=None)


@pytest.mark.parametrize("secret", ["", "   "])
def test_blank_jwt_secret_is_fatal(secret):
    with pytest.raises(ConfigurationError) as exc:
        get_settings(JWT_SECRET=secret, _env_file=None)
    assert "JWT_SECRET" in str(exc.value)


def test_jwt_secret_is_stripped():
    assert get_settings(JWT_SECRET="  s3cret ", _env_file=None).JWT_SECRET == "s3cret"
