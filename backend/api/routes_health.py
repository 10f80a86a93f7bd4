"""
Endpoints de santé pour vérifier la disponibilité de l'API et du backend.

`/health` est public et indique le backend de stockage sélectionné au démarrage;
`/health/storage` (administrateurs) détaille les tables présentes et leur volumétrie.
"""

from fastapi import APIRouter, Depends

from backend.api.deps import get_container
from backend.apigw.gate import requires_admin
from backend.core.container import Container

router = APIRouter(tags=["health"])


@router.get("/health")
def health(container: Container = Depends(get_container)):
    """Vérifie la disponibilité de l'API et le backend de stockage."""
    return {
        "status": "ok",
        "storage": container.storage_backend,
        "database_url": bool(container.settings.DATABASE_URL),
    }


@router.get("/health/storage", dependencies=[Depends(requires_admin())])
def storage_health(container: Container = Depends(get_container)):
    """Diagnostic détaillé du stockage (réservé aux administrateurs)."""
    return container.storage.health()
