"""
Module d'authentification et de gestion des tokens.

Ce module fournit le hachage des mots de passe, l'émission des tokens JWT et le vérificateur de
jetons utilisé par la passerelle d'autorisation. La vérification est une fonction pure de
(jeton, secret): aucun accès au stockage.
"""

from datetime import UTC, datetime, timedelta
from typing import Any

import jwt
import structlog
from jwt import InvalidTokenError
from passlib.context import CryptContext
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from backend.domain.errors import AuthenticationError

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

log = structlog.get_logger(__name__)

TOKEN_MISSING = "NO_TOKEN"
TOKEN_INVALID = "TOKEN_INVALID"


class TokenClaims(BaseModel):
    """Claims attendus dans un token d'accès.

    Le sujet est lu depuis `sub`, ou depuis `userId` pour les tokens émis par l'ancien service.
    """

    model_config = ConfigDict(extra="ignore")

    sub: str = Field(validation_alias=AliasChoices("sub", "userId"), min_length=1)
    email: str | None = None
    role: str | None = None
    exp: int | None = None
    iat: int | None = None


def hash_password(p: str) -> str:
    """Hache un mot de passe en utilisant PBKDF2."""
    return pwd_context.hash(p)


def verify_password(p: str, h: str | None) -> bool:
    """Vérifie un mot de passe contre son hash (faux si aucun hash n'est enregistré)."""
    if not h:
        return False
    try:
        return pwd_context.verify(p, h)
    except ValueError:
        return False


def create_access_token(
    secret: str, alg: str, expires_min: int, payload: dict[str, Any]
) -> str:
    """Crée un token JWT d'accès avec expiration."""
    now = datetime.now(UTC)
    to_encode = payload.copy()
    to_encode.update({"iat": now, "exp": now + timedelta(minutes=expires_min)})
    return jwt.encode(to_encode, secret, algorithm=alg)


class CredentialVerifier:
    """Valide un bearer token signé et en extrait l'identifiant du sujet.

    Le secret est chargé une fois au démarrage; le changer invalide tous les tokens en cours.
    """

    def __init__(self, secret: str, algorithm: str = "HS256") -> None:
        if not secret:
            raise ValueError("token secret must not be empty")
        self._secret = secret
        self._algorithm = algorithm

    def decode(self, token: str | None) -> TokenClaims:
        """Décode et valide le token, puis retourne ses claims typés.

        Raises:
            AuthenticationError: jeton absent, signature invalide, expiré ou malformé.
        """
        if not token:
            raise AuthenticationError(TOKEN_MISSING, "Authentication required")
        try:
            data = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["exp"]},
            )
            return TokenClaims.model_validate(data)
        except (InvalidTokenError, ValidationError) as err:
            log.info("token_rejected", reason=type(err).__name__)
            raise AuthenticationError(
                TOKEN_INVALID, "Invalid authentication token"
            ) from err

    def verify(self, token: str | None) -> str:
        """Retourne l'identifiant du sujet porté par un token valide."""
        return self.decode(token).sub

    def issue(self, subject: str, expires_min: int, **claims: Any) -> str:
        """Émet un token signé pour `subject` avec les claims additionnels fournis."""
        return create_access_token(
            secret=self._secret,
            alg=self._algorithm,
            expires_min=expires_min,
            payload={"sub": subject, **claims},
        )
