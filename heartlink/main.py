"""HeartLink API: FastAPI application entry point.

Run locally:
    uvicorn heartlink.main:app --reload --port 8000
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from heartlink.config import get_settings
from heartlink.core.errors import register_error_handlers
from heartlink.middleware.auth import JWTAuthMiddleware
from heartlink.middleware.rate_limit import RateLimitMiddleware
from heartlink.middleware.security import SecurityHeadersMiddleware
from heartlink.routers import (
    consultations,
    health,
    messages,
    partners,
    profiles,
    records,
)
from heartlink.services.database import close_pool, init_pool
from heartlink.services.realtime import get_hub

# ---------- Logging ----------

logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s %(levelname)-8s %(name)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    stream=sys.stdout,
)
logger = logging.getLogger("heartlink")


# ---------- Lifespan ----------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup / shutdown hooks."""
    settings = get_settings()
    logger.info(
        "Starting HeartLink API v%s [%s]",
        settings.app_version,
        settings.environment,
    )
    await init_pool(settings)
    hub = get_hub()
    if settings.realtime_enabled:
        await hub.start(settings.supabase_realtime_db_url or settings.supabase_db_url)
    yield
    await hub.stop()
    await close_pool()
    logger.info("HeartLink API shut down")


# ---------- App factory ----------

def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title="HeartLink API",
        description=(
            "Cycle tracking shared with a partner: daily records, cycle "
            "predictions, partner chat, and AI consultation."
        ),
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    register_error_handlers(app)

    # ---------- Middleware (last added runs outermost) ----------

    app.add_middleware(SecurityHeadersMiddleware, settings=settings)

    # Keyed by user id, so it must sit inside the auth middleware
    app.add_middleware(RateLimitMiddleware, settings=settings)

    app.add_middleware(JWTAuthMiddleware, settings=settings)

    # CORS: outermost so it can answer preflight before auth
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-RateLimit-Limit", "X-RateLimit-Remaining", "Retry-After"],
    )

    # ---------- Health check (outside v1 prefix, always at /health) ----------
    app.include_router(health.router)

    # ---------- API v1 routes ----------
    v1_prefix = "/api/v1"

    app.include_router(profiles.router, prefix=v1_prefix)
    app.include_router(partners.router, prefix=v1_prefix)
    app.include_router(records.router, prefix=v1_prefix)
    app.include_router(messages.router, prefix=v1_prefix)
    app.include_router(consultations.router, prefix=v1_prefix)

    return app


app = create_app()
