"""Définition et chargement des paramètres de configuration applicative.

Objectif du module
------------------
- Centraliser les paramètres (env/.env) via Pydantic Settings
- Résoudre le fichier `.env` à utiliser selon la stratégie: ENV_FILE > .env.{APP_ENV} > .env
- Refuser de démarrer sans secret de signature des jetons
"""

import os
from pathlib import Path
from typing import Annotated, Literal

from pydantic import StringConstraints, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from backend.domain.errors import ConfigurationError


def _resolve_env_file() -> Path:
    """Fichier .env retenu: ENV_FILE explicite, sinon .env.{APP_ENV} s'il existe, sinon .env."""
    explicit = os.getenv("ENV_FILE")
    if explicit:
        return Path(explicit)
    specific = Path.cwd() / f".env.{os.getenv('APP_ENV', 'dev')}"
    return specific if specific.exists() else Path.cwd() / ".env"


class Settings(BaseSettings):
    """Modèle de configuration chargé depuis l'environnement et .env."""

    model_config = SettingsConfigDict(
        env_file=_resolve_env_file(),
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=False,
        extra="ignore",
    )
    APP_NAME: str = "signals-backend"
    APP_ENV: str = "dev"
    APP_DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    # JWT/Auth (pas de valeur par défaut: absent ou vide => erreur de démarrage)
    JWT_SECRET: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
    JWT_ALG: str = "HS256"
    JWT_EXPIRES_MIN: int = 60 * 24 * 7

    # Stockage durable (optionnel: absent => backend mémoire)
    DATABASE_URL: str | None = None
    DATABASE_AUTO_CREATE: bool = False
    REQUIRE_DATABASE: bool = False
    SEED_DEMO_DATA: bool = True

    # Politique pour les noms de fonctionnalité inconnus
    UNKNOWN_FEATURE_POLICY: Literal["allow", "deny"] = "allow"


def get_settings(**overrides) -> Settings:
    """Construit et retourne la configuration de l'application.

    Raises:
        ConfigurationError: si la configuration est invalide (secret JWT manquant, etc.).
    """
    try:
        return Settings(**overrides)
    except ValidationError as err:
        missing = [".".join(str(p) for p in e["loc"]) for e in err.errors()]
        raise ConfigurationError(
            f"invalid configuration, check: {', '.join(missing)}"
        ) from err
