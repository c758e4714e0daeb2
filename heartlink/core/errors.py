"""Domain errors raised by the service layer.

Routers let these propagate; the handler registered by
``register_error_handlers`` turns them into ``{"detail", "code"}`` JSON
with the error's HTTP status.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger("heartlink.errors")


class HeartLinkError(Exception):
    """Base exception for all domain failures."""

    code = "error"
    http_status = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_response(self) -> dict:
        return {"detail": self.message, "code": self.code}


class NotFoundError(HeartLinkError):
    """Row absent, or not visible to the caller (e.g. an already used invite)."""

    code = "not_found"
    http_status = 404


class InvalidOperationError(HeartLinkError):
    """The request is well-formed but breaks a product rule."""

    code = "invalid_operation"
    http_status = 400


class UsageLimitExceededError(HeartLinkError):
    """A non-subscribed profile has used up its free record quota."""

    code = "usage_limit_exceeded"
    http_status = 402

    def __init__(self, limit: int) -> None:
        super().__init__(
            f"Free usage limit of {limit} records reached; subscribe to keep recording"
        )
        self.limit = limit


class AIProviderError(HeartLinkError):
    """The text-generation API failed or returned an unusable response."""

    code = "ai_provider_error"
    http_status = 502


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(HeartLinkError)
    async def heartlink_error_handler(request: Request, exc: HeartLinkError) -> JSONResponse:
        logger.info(
            "%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message
        )
        return JSONResponse(status_code=exc.http_status, content=exc.to_response())
