"""AI consultation round-trips and their stored history."""

from __future__ import annotations

import logging
from typing import Any

import asyncpg

from heartlink.core.errors import AIProviderError, NotFoundError
from heartlink.services.ai_client import FALLBACK_ANSWER, ChatCompletionClient, build_prompt

logger = logging.getLogger("heartlink.consultations")


async def ask(
    client: ChatCompletionClient,
    api_key: str,
    question: str,
    gender: str | None,
    nickname: str | None,
) -> tuple[str, bool]:
    """Ask the model; returns ``(answer, ok)``.

    Provider failures do not propagate: the caller gets the fallback
    apology with ``ok=False`` and should not store it.
    """
    try:
        answer = await client.complete(api_key, build_prompt(question, gender, nickname))
    except AIProviderError as exc:
        logger.warning("Consultation fell back to apology: %s", exc.message)
        return FALLBACK_ANSWER, False
    return answer, True


async def save_consultation(
    conn: asyncpg.Connection, user_id: str, question: str, answer: str
) -> dict[str, Any]:
    row = await conn.fetchrow(
        """
        INSERT INTO ai_consultations (user_id, question, answer)
        VALUES ($1, $2, $3)
        RETURNING *
        """,
        user_id,
        question,
        answer,
    )
    return dict(row)


async def list_consultations(
    conn: asyncpg.Connection, user_id: str, limit: int = 100
) -> list[dict[str, Any]]:
    rows = await conn.fetch(
        """
        SELECT * FROM ai_consultations WHERE user_id = $1
        ORDER BY created_at DESC, id DESC LIMIT $2
        """,
        user_id,
        limit,
    )
    return [dict(r) for r in rows]


async def delete_consultation(conn: asyncpg.Connection, user_id: str, consultation_id: int) -> None:
    result = await conn.execute(
        "DELETE FROM ai_consultations WHERE id = $1 AND user_id = $2",
        consultation_id,
        user_id,
    )
    if result == "DELETE 0":
        raise NotFoundError("Consultation not found")
