"""AI consultation endpoints."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Query

from heartlink.dependencies import AIApiKey, AppSettings, CurrentUser
from heartlink.models.consultations import ConsultationAnswer, ConsultationAsk, ConsultationRead
from heartlink.services import consultations, profiles
from heartlink.services.ai_client import ChatCompletionClient
from heartlink.services.database import get_connection

router = APIRouter(prefix="/consultations", tags=["consultations"])


@router.get("", response_model=list[ConsultationRead])
async def list_consultations(
    user: CurrentUser,
    limit: int = Query(default=100, ge=1, le=500),
) -> Any:
    """Question/answer history, newest first."""
    async with get_connection(user_id=user.user_id) as conn:
        return await consultations.list_consultations(conn, user.user_id, limit=limit)


@router.post("", response_model=ConsultationAnswer)
async def ask(
    user: CurrentUser, body: ConsultationAsk, api_key: AIApiKey, settings: AppSettings
) -> Any:
    """One AI round-trip.

    The database connection is released while the model answers.  When the
    provider fails the reply is an apology with ``saved: false``.
    """
    async with get_connection(user_id=user.user_id) as conn:
        profile = await profiles.get_profile(conn, user.user_id)

    answer, ok = await consultations.ask(
        ChatCompletionClient(settings=settings),
        api_key,
        body.question,
        profile.get("gender"),
        profile.get("nickname"),
    )
    if not ok:
        return {
            "question": body.question,
            "answer": answer,
            "saved": False,
            "created_at": datetime.now(timezone.utc),
        }

    async with get_connection(user_id=user.user_id) as conn:
        row = await consultations.save_consultation(conn, user.user_id, body.question, answer)
    return {
        "id": row["id"],
        "question": row["question"],
        "answer": row["answer"],
        "saved": True,
        "created_at": row["created_at"],
    }


@router.delete("/{consultation_id}", status_code=204)
async def delete_consultation(consultation_id: int, user: CurrentUser) -> None:
    """Deletes the question and its answer together."""
    async with get_connection(user_id=user.user_id) as conn:
        await consultations.delete_consultation(conn, user.user_id, consultation_id)
