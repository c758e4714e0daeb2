"""App and client fixtures for router tests.

Routers are mounted on a bare app with the domain error handlers and no
middleware.  The caller is fixed through ``dependency_overrides`` and every
router's ``get_connection`` yields the shared ``conn`` double.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from unittest.mock import MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from heartlink.config import Settings, get_settings
from heartlink.core.errors import register_error_handlers
from heartlink.dependencies import AuthContext, get_current_user
from heartlink.routers import consultations, health, messages, partners, profiles, records
from heartlink.services.tests.conftest import FEMALE_ID

DB_ROUTERS = (consultations, messages, partners, profiles, records)


def as_user(app: FastAPI, user_id: str, email: str | None = None) -> None:
    """Make every request on ``app`` come from ``user_id``."""
    context = AuthContext(user_id=user_id, email=email, email_verified=True)
    app.dependency_overrides[get_current_user] = lambda: context


@pytest.fixture
def app(conn: MagicMock, settings: Settings, monkeypatch: pytest.MonkeyPatch) -> FastAPI:
    @asynccontextmanager
    async def fake_connection(user_id: str | None = None):
        yield conn

    for module in DB_ROUTERS:
        monkeypatch.setattr(module, "get_connection", fake_connection)

    app = FastAPI()
    register_error_handlers(app)
    app.include_router(health.router)
    for module in DB_ROUTERS:
        app.include_router(module.router, prefix="/api/v1")

    app.dependency_overrides[get_settings] = lambda: settings
    as_user(app, FEMALE_ID, email="mei@example.test")
    return app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)
