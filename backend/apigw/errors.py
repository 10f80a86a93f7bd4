"""Gestion standardisée des erreurs API.

Ce module définit l'enveloppe d'erreur renvoyée par la passerelle d'autorisation et les handlers
FastAPI associés. Forme de l'enveloppe (clés absentes quand non pertinentes):

    {"error", "code", "requiredTier", "feature", "currentTier", "subscriptionStatus",
     "currentRole", "message"}

Correspondance des statuts: erreurs d'authentification → 401 (avec `WWW-Authenticate: Bearer`),
`PAYMENT_REQUIRED` → 402, autres refus d'autorisation → 403, `STORAGE_ERROR` → 500.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from backend.core.http_constants import (
    HTTP_FORBIDDEN,
    HTTP_INTERNAL_SERVER_ERROR,
    HTTP_PAYMENT_REQUIRED,
    HTTP_UNAUTHORIZED,
)
from backend.domain.entitlements import Decision, ReasonCode
from backend.domain.errors import AuthenticationError, StorageError

log = structlog.get_logger(__name__)

STORAGE_ERROR = "STORAGE_ERROR"

_HTTP_ERROR_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    422: "VALIDATION_ERROR",
    500: "INTERNAL_ERROR",
}


def error_payload(code: str, error: str, **fields: Any) -> dict[str, Any]:
    """Construit l'enveloppe d'erreur; les champs à None sont omis."""
    payload: dict[str, Any] = {"error": error, "code": code}
    payload.update({k: v for k, v in fields.items() if v is not None})
    return payload


class APIError(HTTPException):
    """Erreur API portant une enveloppe standard."""

    def __init__(
        self,
        status_code: int,
        payload: dict[str, Any],
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(status_code=status_code, detail=payload["error"], headers=headers)
        self.payload = payload

    @property
    def code(self) -> str:
        return self.payload["code"]


class GateRejection(APIError):
    """Refus de la passerelle: authentification (401) ou autorisation (402/403)."""

    @classmethod
    def unauthenticated(cls, err: AuthenticationError) -> GateRejection:
        return cls(
            HTTP_UNAUTHORIZED,
            error_payload(err.code, err.message),
            headers={"WWW-Authenticate": "Bearer"},
        )

    @classmethod
    def from_decision(cls, decision: Decision) -> GateRejection:
        """Traduit un refus de l'évaluateur en réponse HTTP."""
        reason = decision.reason or ReasonCode.NOT_AUTHENTICATED
        status = decision.subscription_status
        payload = error_payload(
            reason.value,
            decision.error or "Access denied",
            requiredTier=decision.required_tier.value if decision.required_tier else None,
            feature=decision.feature,
            currentTier=decision.current_tier.value if decision.current_tier else None,
            subscriptionStatus=(
                (status.value if status else "inactive") if decision.current_tier else None
            ),
            currentRole=decision.current_role.value if decision.current_role else None,
            message=decision.message,
        )
        if reason is ReasonCode.NOT_AUTHENTICATED:
            return cls(HTTP_UNAUTHORIZED, payload, headers={"WWW-Authenticate": "Bearer"})
        if reason is ReasonCode.PAYMENT_REQUIRED:
            return cls(HTTP_PAYMENT_REQUIRED, payload)
        return cls(HTTP_FORBIDDEN, payload)


def extract_request_id(request: Request) -> str | None:
    """Identifiant de requête posé par le middleware, s'il existe."""
    return getattr(request.state, "request_id", None)


def handle_api_error(request: Request, exc: APIError) -> JSONResponse:
    """Rend une `APIError` avec son enveloppe."""
    log.info(
        "api_error",
        code=exc.code,
        status_code=exc.status_code,
        path=request.url.path,
        request_id=extract_request_id(request),
    )
    return JSONResponse(status_code=exc.status_code, content=exc.payload, headers=exc.headers)


def handle_storage_error(request: Request, exc: StorageError) -> JSONResponse:
    """Échec du stockage: fatal pour la requête (500), sans repli sur un autre backend."""
    log.error(
        "storage_error",
        error=str(exc),
        missing_table=exc.missing_table,
        path=request.url.path,
        request_id=extract_request_id(request),
    )
    return JSONResponse(
        status_code=HTTP_INTERNAL_SERVER_ERROR,
        content=error_payload(STORAGE_ERROR, "Storage unavailable"),
    )


def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Rend une `HTTPException` (routage, 404, 409...) dans la même enveloppe."""
    code = _HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_payload(code, str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


def register_error_handlers(app: FastAPI) -> None:
    """Enregistre les handlers d'erreurs sur l'application."""
    app.add_exception_handler(APIError, handle_api_error)
    app.add_exception_handler(StorageError, handle_storage_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
