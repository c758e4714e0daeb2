"""Response headers for an API that serves personal health data.

Every response is marked non-cacheable; HSTS is only sent outside
development so local plain-HTTP setups keep working.
"""

from __future__ import annotations

from typing import Any

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from heartlink.config import Settings, get_settings

BASE_HEADERS: dict[str, str] = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Cache-Control": "no-store",
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'",
}

HSTS_HEADER = ("Strict-Transport-Security", "max-age=63072000; includeSubDomains")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: Any, settings: Settings | None = None) -> None:
        super().__init__(app)
        s = settings or get_settings()
        self._headers = dict(BASE_HEADERS)
        if s.environment != "development":
            self._headers[HSTS_HEADER[0]] = HSTS_HEADER[1]

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        response = await call_next(request)
        # /docs needs its own CSP to load the Swagger UI assets
        if request.url.path.startswith(("/docs", "/redoc")):
            headers = {k: v for k, v in self._headers.items() if k != "Content-Security-Policy"}
        else:
            headers = self._headers
        for header, value in headers.items():
            response.headers.setdefault(header, value)
        return response
