"""Daily records: quota-checked upsert, partner-visible listing, delete."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

import asyncpg

from heartlink.core.errors import InvalidOperationError, NotFoundError, UsageLimitExceededError
from heartlink.models.records import RecordUpsert
from heartlink.services.partners import partner_ids

logger = logging.getLogger("heartlink.records")


async def save_record(
    conn: asyncpg.Connection,
    user_id: str,
    body: RecordUpsert,
    free_usage_limit: int,
) -> dict[str, Any]:
    """Insert or replace the caller's record for ``body.record_date``.

    Non-subscribed profiles are charged one unit of usage per save and are
    refused once ``usage_count`` has reached ``free_usage_limit``.  The
    profile row stays locked until the surrounding transaction ends, so
    concurrent saves cannot overshoot the limit.
    """
    profile = await conn.fetchrow(
        "SELECT id, gender, is_subscribed, usage_count FROM profiles WHERE id = $1 FOR UPDATE",
        user_id,
    )
    if profile is None:
        raise NotFoundError("Profile not found; initialize it first")
    if profile["gender"] == "male":
        raise InvalidOperationError("Partner accounts can view records but not edit them")

    subscribed: bool = profile["is_subscribed"]
    usage: int = profile["usage_count"] or 0
    if not subscribed and usage >= free_usage_limit:
        logger.info("Usage limit reached for user=%s (%d)", user_id, usage)
        raise UsageLimitExceededError(free_usage_limit)

    row = await conn.fetchrow(
        """
        INSERT INTO records (user_id, record_date, flow, emotions, symptoms, notes)
        VALUES ($1, $2, $3, $4, $5, $6)
        ON CONFLICT (user_id, record_date) DO UPDATE SET
            flow = EXCLUDED.flow,
            emotions = EXCLUDED.emotions,
            symptoms = EXCLUDED.symptoms,
            notes = EXCLUDED.notes,
            updated_at = NOW()
        RETURNING *
        """,
        user_id,
        body.record_date,
        body.flow.value if body.flow else None,
        body.emotions,
        body.symptoms,
        body.notes,
    )

    if not subscribed:
        usage = await conn.fetchval(
            """
            UPDATE profiles SET usage_count = usage_count + 1, updated_at = NOW()
            WHERE id = $1 RETURNING usage_count
            """,
            user_id,
        )

    return {
        "record": dict(row),
        "usage_count": usage,
        "usage_limit": None if subscribed else free_usage_limit,
    }


def _like_pattern(query: str) -> str:
    escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


async def list_records(
    conn: asyncpg.Connection,
    user_id: str,
    start_date: date | None = None,
    end_date: date | None = None,
    query: str | None = None,
    limit: int = 366,
) -> list[dict[str, Any]]:
    """Records of the caller and every currently linked partner.

    Partner visibility is resolved on each call, so after an unlink the
    former partner's records drop out immediately.  ``query`` matches
    case-insensitively against notes, flow, emotion and symptom tags.
    """
    owners = [user_id, *await partner_ids(conn, user_id)]

    conditions = ["user_id = ANY($1::text[])"]
    params: list[Any] = [owners]
    idx = 2

    if start_date:
        conditions.append(f"record_date >= ${idx}")
        params.append(start_date)
        idx += 1
    if end_date:
        conditions.append(f"record_date <= ${idx}")
        params.append(end_date)
        idx += 1
    if query and query.strip():
        conditions.append(
            f"""(
                notes ILIKE ${idx}
                OR flow ILIKE ${idx}
                OR EXISTS (SELECT 1 FROM unnest(emotions) AS e WHERE e ILIKE ${idx})
                OR EXISTS (SELECT 1 FROM unnest(symptoms) AS s WHERE s ILIKE ${idx})
            )"""
        )
        params.append(_like_pattern(query.strip()))
        idx += 1

    where = " AND ".join(conditions)
    rows = await conn.fetch(
        f"SELECT * FROM records WHERE {where} ORDER BY record_date DESC, user_id LIMIT ${idx}",
        *params, limit,
    )
    return [dict(r) for r in rows]


async def delete_record(conn: asyncpg.Connection, user_id: str, record_id: int) -> None:
    result = await conn.execute(
        "DELETE FROM records WHERE id = $1 AND user_id = $2", record_id, user_id
    )
    if result == "DELETE 0":
        raise NotFoundError("Record not found")
