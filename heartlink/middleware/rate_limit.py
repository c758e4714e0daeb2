"""In-memory sliding-window rate limiter.

Authenticated requests are counted per user id, anonymous ones per client
IP.  State lives in the process, so limits are per instance.
"""

from __future__ import annotations

import time
from collections import defaultdict
from typing import Any

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from heartlink.config import Settings, get_settings

# Long-lived streams would hold a slot for their whole lifetime
EXEMPT_PATHS: set[str] = {"/health", "/api/v1/messages/stream"}


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Per-identity sliding window rate limiter."""

    def __init__(
        self,
        app: Any,
        settings: Settings | None = None,
        window_seconds: int = 60,
    ) -> None:
        super().__init__(app)
        s = settings or get_settings()
        self._max_requests = s.rate_limit_per_minute
        self._window_seconds = window_seconds
        # key -> list of timestamps
        self._requests: dict[str, list[float]] = defaultdict(list)
        self._last_sweep = time.monotonic()

    def _client_key(self, request: Request) -> str:
        auth = getattr(request.state, "auth", None)
        if auth is not None:
            return f"user:{auth.user_id}"
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            return f"ip:{forwarded.split(',')[0].strip()}"
        return f"ip:{request.client.host if request.client else 'unknown'}"

    def _prune(self, key: str, now: float) -> list[float]:
        cutoff = now - self._window_seconds
        hits = [t for t in self._requests[key] if t > cutoff]
        if hits:
            self._requests[key] = hits
        else:
            self._requests.pop(key, None)
        return hits

    def _sweep(self, now: float) -> None:
        """Drop every key with no hits inside the window."""
        for key in list(self._requests):
            self._prune(key, now)
        self._last_sweep = now

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in EXEMPT_PATHS or request.method == "OPTIONS":
            return await call_next(request)

        key = self._client_key(request)
        now = time.monotonic()
        if now - self._last_sweep >= self._window_seconds:
            self._sweep(now)
        hits = self._prune(key, now)

        if len(hits) >= self._max_requests:
            retry_after = int(self._window_seconds - (now - hits[0]))
            return Response(
                content='{"detail":"Rate limit exceeded"}',
                status_code=429,
                media_type="application/json",
                headers={"Retry-After": str(max(retry_after, 1))},
            )

        self._requests[key].append(now)
        response = await call_next(request)

        remaining = self._max_requests - len(self._requests[key])
        response.headers["X-RateLimit-Limit"] = str(self._max_requests)
        response.headers["X-RateLimit-Remaining"] = str(max(remaining, 0))
        return response
