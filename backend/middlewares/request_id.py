"""Middleware Starlette pour ajouter et propager un identifiant de requête.

L'identifiant (en-tête `X-Request-ID` entrant, sinon généré) est exposé dans `request.state`,
lié aux contextvars structlog pour toute la durée de la requête et renvoyé dans la réponse. Les
journaux de la passerelle (`entitlement_denied`, `storage_error`...) le portent donc sans qu'il
soit passé explicitement.
"""

from collections.abc import Callable
from uuid import uuid4

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

MAX_REQUEST_ID_LENGTH = 128


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Middleware pour ajouter et propager un identifiant de requête."""

    def __init__(self, app: ASGIApp, header_name: str = "X-Request-ID") -> None:
        super().__init__(app)
        self.header_name = header_name

    def _incoming(self, request) -> str | None:
        value = (request.headers.get(self.header_name) or "").strip()
        if not value or len(value) > MAX_REQUEST_ID_LENGTH:
            return None
        return value

    async def dispatch(self, request, call_next: Callable):
        """Lie l'identifiant au contexte de log puis le renvoie dans l'en-tête de réponse."""
        request_id = self._incoming(request) or str(uuid4())
        request.state.request_id = request_id
        with structlog.contextvars.bound_contextvars(request_id=request_id):
            response = await call_next(request)
        response.headers[self.header_name] = request_id
        return response
