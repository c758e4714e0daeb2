"""Identity-provider JWT verification middleware for FastAPI.

Validates the Bearer token on every request (except public routes),
checks the signature against the provider's JWKS, and sets
``request.state.auth`` with the caller's identity for ``get_current_user``.
Tokens whose ``email_verified`` claim is false are refused with 403 when
``auth_require_verified_email`` is on.
"""

from __future__ import annotations

import logging
from typing import Any

import jwt as pyjwt
from fastapi import Request, Response
from jwt import PyJWKClient
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from heartlink.config import Settings, get_settings
from heartlink.dependencies import AuthContext

logger = logging.getLogger("heartlink.auth")

# Paths that do not require authentication
PUBLIC_PATHS: set[str] = {
    "/health",
    "/docs",
    "/openapi.json",
    "/redoc",
}


def _is_public(path: str) -> bool:
    return path in PUBLIC_PATHS or path.startswith("/docs") or path.startswith("/redoc")


def _error(status_code: int, detail: str) -> Response:
    return Response(
        content=f'{{"detail":"{detail}"}}',
        status_code=status_code,
        media_type="application/json",
    )


class JWTAuthMiddleware(BaseHTTPMiddleware):
    """Verify identity-provider JWTs and populate request.state.auth."""

    def __init__(
        self,
        app: Any,
        settings: Settings | None = None,
        jwks_client: PyJWKClient | None = None,
    ) -> None:
        super().__init__(app)
        self._settings = settings or get_settings()
        self._jwks_client = jwks_client or PyJWKClient(
            self._settings.auth_jwks_url,
            cache_keys=True,
            lifespan=3600,
        )

    def _decode(self, token: str) -> dict[str, Any]:
        s = self._settings
        signing_key = self._jwks_client.get_signing_key_from_jwt(token)
        return pyjwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256"],
            audience=s.auth_audience,
            issuer=s.auth_issuer,
            options={"verify_aud": s.auth_audience is not None},
        )

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if _is_public(request.url.path):
            return await call_next(request)

        # OPTIONS requests pass through (CORS preflight)
        if request.method == "OPTIONS":
            return await call_next(request)

        auth_header = request.headers.get("Authorization")
        if not auth_header or not auth_header.startswith("Bearer "):
            return _error(401, "Missing or invalid Authorization header")

        token = auth_header.removeprefix("Bearer ").strip()

        try:
            payload = self._decode(token)
        except pyjwt.ExpiredSignatureError:
            return _error(401, "Token expired")
        except pyjwt.PyJWTError as exc:
            logger.warning("JWT validation failed: %s", exc)
            return _error(401, "Invalid token")

        user_id: str = payload.get("sub", "")
        if not user_id:
            return _error(401, "Token has no subject")

        email_verified = bool(payload.get("email_verified", False))
        if self._settings.auth_require_verified_email and not email_verified:
            return _error(403, "Email address not verified")

        request.state.auth = AuthContext(
            user_id=user_id,
            email=payload.get("email"),
            email_verified=email_verified,
            session_id=payload.get("sid") or payload.get("session_id"),
        )

        return await call_next(request)
