"""
Routes d'authentification pour l'API.

Ce module fournit les endpoints d'inscription, de connexion et de profil courant. Les comptes
créés ici démarrent au palier free, sans abonnement.
"""

import structlog
from fastapi import APIRouter, Depends, HTTPException

from backend.api.deps import get_container
from backend.api.schemas import IdentityOut, LoginPayload, SignupPayload, TokenResponse
from backend.apigw.errors import APIError, error_payload
from backend.apigw.gate import requires
from backend.core.container import Container
from backend.core.http_constants import HTTP_CONFLICT, HTTP_CREATED, HTTP_UNAUTHORIZED
from backend.domain.auth import hash_password, verify_password
from backend.domain.entities import Identity, IdentityCreate

router = APIRouter(prefix="/auth", tags=["auth"])

log = structlog.get_logger(__name__)

INVALID_CREDENTIALS = "INVALID_CREDENTIALS"


@router.post("/signup", status_code=HTTP_CREATED, response_model=TokenResponse)
def signup(p: SignupPayload, container: Container = Depends(get_container)):
    """Inscrit un nouvel utilisateur et retourne un token d'accès."""
    storage = container.storage
    if storage.get_identity_by_email(str(p.email)):
        raise HTTPException(status_code=HTTP_CONFLICT, detail="Email already registered")
    identity = storage.create_identity(
        IdentityCreate(
            email=str(p.email),
            hashed_password=hash_password(p.password),
            first_name=p.first_name,
            last_name=p.last_name,
        )
    )
    log.info("identity_created", user_id=identity.id)
    return TokenResponse(
        access_token=container.issue_token(identity),
        user=IdentityOut.model_validate(identity),
    )


@router.post("/login", response_model=TokenResponse)
def login(p: LoginPayload, container: Container = Depends(get_container)):
    """Authentifie un utilisateur et retourne un token d'accès."""
    storage = container.storage
    identity = storage.get_identity_by_email(str(p.email))
    if (
        identity is None
        or not identity.is_active
        or not verify_password(p.password, identity.hashed_password)
    ):
        raise APIError(
            HTTP_UNAUTHORIZED,
            error_payload(INVALID_CREDENTIALS, "Invalid email or password"),
            headers={"WWW-Authenticate": "Bearer"},
        )
    storage.record_login(identity.id)
    identity = storage.get_identity(identity.id) or identity
    return TokenResponse(
        access_token=container.issue_token(identity),
        user=IdentityOut.model_validate(identity),
    )


@router.get("/me", response_model=IdentityOut)
def me(identity: Identity = Depends(requires())):
    """Profil de l'identité authentifiée."""
    return IdentityOut.model_validate(identity)
