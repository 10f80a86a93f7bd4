"""
Exceptions du domaine.

Erreurs levées par le vérificateur de jetons, le résolveur d'identité et la couche de stockage.
Leur traduction en réponses HTTP est faite par `backend.apigw.errors`.
"""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """Configuration invalide détectée au démarrage (fatale pour le processus)."""


class AuthenticationError(Exception):
    """Échec d'authentification: jeton absent, invalide, expiré ou identité inconnue."""

    def __init__(self, code: str, message: str) -> None:
        """Conserve le code machine et le message lisible."""
        super().__init__(message)
        self.code = code
        self.message = message


class StorageError(Exception):
    """Échec du stockage durable (connexion, requête, contrainte).

    `missing_table` indique que l'échec vient d'une table absente du schéma, ce que les
    lectures optionnelles tolèrent.
    """

    def __init__(self, message: str, *, missing_table: bool = False) -> None:
        super().__init__(message)
        self.missing_table = missing_table
