"""
Résolution d'identité pour la requête en cours.

Charge l'enregistrement complet (rôle, palier, statut) d'un sujet via l'abstraction de stockage.
Sans état: une instance est partagée par toutes les requêtes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from backend.domain.entities import Identity
from backend.domain.errors import AuthenticationError

if TYPE_CHECKING:
    from backend.infra.storage.base import Storage

INVALID_USER = "INVALID_USER"
ACCOUNT_INACTIVE = "ACCOUNT_INACTIVE"


class IdentityResolver:
    """Résout un identifiant de sujet en `Identity`."""

    def __init__(self, storage: Storage) -> None:
        self._storage = storage

    def resolve(self, subject_id: str) -> Identity:
        """Retourne l'identité du sujet.

        Raises:
            AuthenticationError: sujet inconnu ou compte désactivé.
            StorageError: propagée telle quelle si le stockage échoue.
        """
        identity = self._storage.get_identity(subject_id)
        if identity is None:
            raise AuthenticationError(INVALID_USER, "Invalid authentication token")
        if not identity.is_active:
            raise AuthenticationError(ACCOUNT_INACTIVE, "Account is deactivated")
        return identity
