"""Dépendances partagées pour les routes de l'API.

But du module
-------------
- Donner aux endpoints l'accès aux composants du `Container` de l'application (stockage,
  configuration) sans état global: le conteneur est lu dans `request.app.state`.
"""

from fastapi import Request

from backend.core.container import Container
from backend.infra.storage.base import Storage


def get_container(request: Request) -> Container:
    """Conteneur de l'application courante."""
    return request.app.state.container


def get_storage(request: Request) -> Storage:
    """Backend de stockage sélectionné au démarrage."""
    return get_container(request).storage
