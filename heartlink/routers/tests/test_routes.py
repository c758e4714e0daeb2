"""HTTP-level tests: routing, error bodies, and response serialization."""

from __future__ import annotations

from datetime import date
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from heartlink.config import Settings
from heartlink.core.errors import AIProviderError
from heartlink.models.profiles import INT4_MAX
from heartlink.routers import health
from heartlink.routers.tests.conftest import as_user
from heartlink.services.ai_client import FALLBACK_ANSWER, ChatCompletionClient
from heartlink.services.tests.conftest import (
    FEMALE_ID,
    MALE_ID,
    NOW,
    invite_row,
    message_row,
    profile_row,
    record_row,
)

# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------


class TestProfileRoutes:
    def test_get_missing_profile(self, client: TestClient) -> None:
        response = client.get("/api/v1/profiles/me")
        assert response.status_code == 404
        assert response.json() == {
            "detail": "Profile not found; initialize it first",
            "code": "not_found",
        }

    def test_get_serializes_stored_row(self, client: TestClient, conn: MagicMock) -> None:
        conn.fetchrow.return_value = profile_row()

        response = client.get("/api/v1/profiles/me")

        assert response.status_code == 200
        body = response.json()
        assert body["email"] == "uid-female-0001@example.test"
        assert body["linked_partners"] == []

    def test_initialize_uses_token_email(self, client: TestClient, conn: MagicMock) -> None:
        conn.fetchrow.side_effect = [{"id": FEMALE_ID}, profile_row(email="mei@example.test")]

        response = client.post("/api/v1/profiles/me", json={"nickname": "Mei"})

        assert response.status_code == 200
        assert conn.fetchrow.call_args_list[0].args[2] == "mei@example.test"
        assert response.json()["email"] == "mei@example.test"

    def test_patch_updates_cycle_length(self, client: TestClient, conn: MagicMock) -> None:
        conn.fetchrow.side_effect = [{"id": FEMALE_ID}, profile_row(cycle_length=30)]

        response = client.patch("/api/v1/profiles/me", json={"cycle_length": 30})

        assert response.status_code == 200
        assert response.json()["cycle_length"] == 30

    @pytest.mark.parametrize("field", ["nickname", "gender", "cycle_length", "period_length"])
    def test_patch_rejects_null(self, client: TestClient, conn: MagicMock, field: str) -> None:
        response = client.patch("/api/v1/profiles/me", json={field: None})

        assert response.status_code == 400
        assert response.json()["detail"] == f"{field} cannot be null"
        conn.fetchrow.assert_not_awaited()

    def test_patch_last_period_may_be_cleared(self, client: TestClient, conn: MagicMock) -> None:
        conn.fetchrow.side_effect = [{"id": FEMALE_ID}, profile_row()]

        response = client.patch("/api/v1/profiles/me", json={"last_period_date": None})

        assert response.status_code == 200
        assert conn.fetchrow.call_args_list[0].args[1:] == (FEMALE_ID, None)

    def test_patch_empty_body(self, client: TestClient) -> None:
        response = client.patch("/api/v1/profiles/me", json={})
        assert response.status_code == 400
        assert response.json()["detail"] == "No fields to update"

    def test_patch_length_beyond_integer_column(self, client: TestClient, conn: MagicMock) -> None:
        response = client.patch("/api/v1/profiles/me", json={"cycle_length": INT4_MAX + 1})
        assert response.status_code == 422
        conn.fetchrow.assert_not_awaited()

    def test_prediction_with_out_of_range_length(self, client: TestClient, conn: MagicMock) -> None:
        conn.fetchrow.return_value = profile_row(
            cycle_length=INT4_MAX, last_period_date=date(2024, 1, 1)
        )

        response = client.get("/api/v1/profiles/me/prediction", params={"as_of": "2024-01-03"})

        assert response.status_code == 200
        [prediction] = response.json()
        assert prediction["next_period_date"] == "9999-12-31"
        assert prediction["current_cycle_day"] == 3

    def test_prediction_reference_example(self, client: TestClient, conn: MagicMock) -> None:
        conn.fetchrow.return_value = profile_row(last_period_date=date(2024, 1, 1))

        response = client.get("/api/v1/profiles/me/prediction", params={"as_of": "2024-01-03"})

        [prediction] = response.json()
        assert prediction["next_period_date"] == "2024-01-29"
        assert prediction["ovulation_date"] == "2024-01-15"


# ---------------------------------------------------------------------------
# Partners
# ---------------------------------------------------------------------------


class TestPartnerRoutes:
    def test_redeem_used_code(self, app: FastAPI, client: TestClient) -> None:
        as_user(app, MALE_ID)

        response = client.post("/api/v1/partners/redeem", json={"code": "ab12cd"})

        assert response.status_code == 404
        assert response.json() == {
            "detail": "Invite code not found or already used",
            "code": "not_found",
        }

    def test_redeem_own_code(self, client: TestClient, conn: MagicMock) -> None:
        conn.fetchrow.return_value = invite_row(creator_id=FEMALE_ID)

        response = client.post("/api/v1/partners/redeem", json={"code": "AB12CD"})

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_operation"

    def test_unlink_without_link(self, client: TestClient, conn: MagicMock) -> None:
        conn.execute.return_value = "DELETE 0"
        response = client.delete(f"/api/v1/partners/{MALE_ID}")
        assert response.status_code == 404


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


class TestRecordRoutes:
    def test_save_at_quota(self, client: TestClient, conn: MagicMock) -> None:
        conn.fetchrow.return_value = profile_row(usage_count=100)

        response = client.put(
            "/api/v1/records", json={"record_date": "2026-02-23", "flow": "light"}
        )

        assert response.status_code == 402
        assert response.json() == {
            "detail": "Free usage limit of 100 records reached; subscribe to keep recording",
            "code": "usage_limit_exceeded",
        }
        assert conn.fetchrow.await_count == 1
        conn.fetchval.assert_not_awaited()

    def test_save_counts_usage(self, client: TestClient, conn: MagicMock) -> None:
        conn.fetchrow.side_effect = [profile_row(usage_count=99), record_row()]
        conn.fetchval.return_value = 100

        response = client.put(
            "/api/v1/records",
            json={"record_date": "2026-02-23", "flow": "medium", "emotions": ["calm", "calm"]},
        )

        assert response.status_code == 200
        body = response.json()
        assert (body["usage_count"], body["usage_limit"]) == (100, 100)
        assert body["record"]["emotions"] == ["calm"]

    def test_symptoms_alone_rejected(self, client: TestClient, conn: MagicMock) -> None:
        response = client.put(
            "/api/v1/records", json={"record_date": "2026-02-23", "symptoms": ["cramps"]}
        )
        assert response.status_code == 422
        conn.fetchrow.assert_not_awaited()

    def test_male_cannot_save(self, app: FastAPI, client: TestClient, conn: MagicMock) -> None:
        as_user(app, MALE_ID)
        conn.fetchrow.return_value = profile_row(MALE_ID, gender="male")

        response = client.put(
            "/api/v1/records", json={"record_date": "2026-02-23", "notes": "hi"}
        )

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_operation"


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


class TestMessageRoutes:
    def test_send_without_partner(self, client: TestClient, conn: MagicMock) -> None:
        conn.fetchrow.return_value = message_row(receiver_id=None)

        response = client.post("/api/v1/messages", json={"content": "Thinking of you"})

        assert response.status_code == 201
        assert response.json()["receiver_id"] is None

    def test_delete_many(self, client: TestClient, conn: MagicMock) -> None:
        conn.execute.return_value = "DELETE 2"

        response = client.request("DELETE", "/api/v1/messages", json={"ids": [1, 2]})

        assert response.status_code == 200
        assert response.json() == {"deleted": 2}

    def test_delete_needs_ids(self, client: TestClient) -> None:
        response = client.request("DELETE", "/api/v1/messages", json={"ids": []})
        assert response.status_code == 422


# ---------------------------------------------------------------------------
# Consultations
# ---------------------------------------------------------------------------


class TestConsultationRoutes:
    def test_provider_failure_returns_apology(
        self, client: TestClient, conn: MagicMock, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        conn.fetchrow.return_value = profile_row()
        complete = AsyncMock(side_effect=AIProviderError("AI provider returned HTTP 503"))
        monkeypatch.setattr(ChatCompletionClient, "complete", complete)

        response = client.post(
            "/api/v1/consultations",
            json={"question": "Why am I so tired?"},
            headers={"X-AI-Api-Key": "sk-user"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["saved"] is False
        assert body["id"] is None
        assert body["answer"] == FALLBACK_ANSWER
        # Only the profile lookup touched the database
        assert conn.fetchrow.await_count == 1
        assert complete.await_args.args[0] == "sk-user"

    def test_missing_api_key(self, client: TestClient, conn: MagicMock) -> None:
        response = client.post("/api/v1/consultations", json={"question": "Hello?"})

        assert response.status_code == 400
        assert response.json()["detail"] == "Missing X-AI-Api-Key header"
        conn.fetchrow.assert_not_awaited()

    def test_server_key_and_saved_answer(
        self,
        client: TestClient,
        conn: MagicMock,
        settings: Settings,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        settings.ai_api_key = "sk-server"
        conn.fetchrow.side_effect = [
            profile_row(),
            {
                "id": 3,
                "user_id": FEMALE_ID,
                "question": "Hello?",
                "answer": "Be gentle.",
                "created_at": NOW,
            },
        ]
        complete = AsyncMock(return_value="Be gentle.")
        monkeypatch.setattr(ChatCompletionClient, "complete", complete)

        response = client.post("/api/v1/consultations", json={"question": "Hello?"})

        assert response.status_code == 200
        assert response.json()["saved"] is True
        assert response.json()["id"] == 3
        assert complete.await_args.args[0] == "sk-server"


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


class TestHealth:
    def test_degraded_without_pool(
        self, client: TestClient, settings: Settings, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def no_pool():
            raise RuntimeError("Database pool not initialized")

        monkeypatch.setattr(health, "get_settings", lambda: settings)
        monkeypatch.setattr(health, "get_pool", no_pool)

        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "degraded"
        assert response.json()["database"] == "unreachable"
