"""Shared FastAPI dependencies injected into route handlers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request

from heartlink.config import Settings, get_settings


@dataclass(frozen=True)
class AuthContext:
    """Authenticated user context extracted from the identity provider JWT."""

    user_id: str  # JWT ``sub``; also the primary key of ``profiles``
    email: str | None = None
    email_verified: bool = False
    session_id: str | None = None


async def get_current_user(request: Request) -> AuthContext:
    """Extract the authenticated user from the request state.

    The auth middleware sets ``request.state.auth`` before routes run.
    """
    auth: AuthContext | None = getattr(request.state, "auth", None)
    if auth is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return auth


async def get_ai_api_key(
    settings: Annotated[Settings, Depends(get_settings)],
    x_ai_api_key: Annotated[str | None, Header()] = None,
) -> str:
    """Caller-supplied text-generation key, falling back to the server default."""
    key = (x_ai_api_key or "").strip() or settings.ai_api_key
    if not key:
        raise HTTPException(status_code=400, detail="Missing X-AI-Api-Key header")
    return key


# Annotated shortcuts for route signatures
CurrentUser = Annotated[AuthContext, Depends(get_current_user)]
AppSettings = Annotated[Settings, Depends(get_settings)]
AIApiKey = Annotated[str, Depends(get_ai_api_key)]
