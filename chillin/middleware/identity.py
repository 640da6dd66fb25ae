"""Bearer-token identity middleware.

Decodes an optional ``Authorization: Bearer <jwt>`` header and sets
``request.state.auth`` to the principal the token names.  Requests without
a token pass through with no identity; the sync engine then reports
NO_ACCOUNT.  Issuing tokens is the identity provider's job.
"""

from __future__ import annotations

import logging
from typing import Any

import jwt as pyjwt
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from chillin.config import Settings, get_settings
from chillin.dependencies import AuthContext

logger = logging.getLogger("chillin.identity")

_BEARER = "Bearer "


def _unauthorized(detail: str) -> Response:
    return JSONResponse({"detail": detail}, status_code=401)


class IdentityMiddleware(BaseHTTPMiddleware):
    """Populate request.state.auth from a signed bearer token."""

    def __init__(self, app: Any, settings: Settings | None = None) -> None:
        super().__init__(app)
        self._settings = settings or get_settings()

    def _decode(self, token: str) -> dict[str, Any]:
        return pyjwt.decode(
            token,
            self._settings.jwt_secret,
            algorithms=[self._settings.jwt_algorithm],
            options={"verify_aud": False},
        )

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request.state.auth = None

        header = request.headers.get("Authorization")
        if header is None:
            return await call_next(request)
        if not header.startswith(_BEARER):
            return _unauthorized("Invalid Authorization header")

        try:
            claims = self._decode(header[len(_BEARER):].strip())
        except pyjwt.ExpiredSignatureError:
            return _unauthorized("Token expired")
        except pyjwt.InvalidTokenError as exc:
            logger.warning("Rejected bearer token: %s", exc)
            return _unauthorized("Invalid token")

        request.state.auth = AuthContext(
            subject=claims.get("sub", ""), email=claims.get("email")
        )
        return await call_next(request)
