"""Profile reads/writes and per-profile cycle predictions."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

import asyncpg

from heartlink.core.errors import NotFoundError
from heartlink.cycle.predictor import DEFAULT_CYCLE_LENGTH, DEFAULT_PERIOD_LENGTH, predict_cycle
from heartlink.services.partners import list_partners

logger = logging.getLogger("heartlink.profiles")

# Columns a profile owner may change through PATCH /profiles/me
UPDATABLE_FIELDS = frozenset(
    {"nickname", "gender", "cycle_length", "period_length", "last_period_date"}
)

DEFAULT_NICKNAME = "New user"


async def get_profile(conn: asyncpg.Connection, user_id: str) -> dict[str, Any]:
    """Load the caller's profile together with their linked partners."""
    row = await conn.fetchrow("SELECT * FROM profiles WHERE id = $1", user_id)
    if row is None:
        raise NotFoundError("Profile not found; initialize it first")
    profile = dict(row)
    profile["linked_partners"] = await list_partners(conn, user_id)
    return profile


async def initialize_profile(
    conn: asyncpg.Connection,
    user_id: str,
    email: str | None,
    nickname: str | None,
    gender: str,
) -> dict[str, Any]:
    """Create the profile row with product defaults.

    Idempotent: an existing profile is returned untouched, so repeating
    the call never resets the usage counter or cycle settings.
    """
    created = await conn.fetchrow(
        """
        INSERT INTO profiles (
            id, email, nickname, gender, usage_count, is_subscribed,
            cycle_length, period_length, last_period_date
        ) VALUES ($1, $2, $3, $4, 0, false, $5, $6, NULL)
        ON CONFLICT (id) DO NOTHING
        RETURNING id
        """,
        user_id,
        email,
        nickname or DEFAULT_NICKNAME,
        gender,
        DEFAULT_CYCLE_LENGTH,
        DEFAULT_PERIOD_LENGTH,
    )
    if created:
        logger.info("Initialized profile id=%s gender=%s", user_id, gender)
    return await get_profile(conn, user_id)


async def update_profile(
    conn: asyncpg.Connection, user_id: str, updates: dict[str, Any]
) -> dict[str, Any]:
    unknown = set(updates) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Fields not updatable: {sorted(unknown)}")

    set_clauses = []
    params: list[Any] = []
    for i, (key, value) in enumerate(updates.items(), start=2):
        set_clauses.append(f"{key} = ${i}")
        params.append(value)
    set_clauses.append("updated_at = NOW()")

    row = await conn.fetchrow(
        f"UPDATE profiles SET {', '.join(set_clauses)} WHERE id = $1 RETURNING id",
        user_id, *params,
    )
    if row is None:
        raise NotFoundError("Profile not found; initialize it first")
    return await get_profile(conn, user_id)


async def predictions_for(
    conn: asyncpg.Connection, profile: dict[str, Any], as_of: date | None = None
) -> list[dict[str, Any]]:
    """Cycle predictions visible to ``profile``.

    A female (or unset) profile sees her own prediction; a male profile
    sees one prediction per linked female partner.  Profiles without a
    ``last_period_date`` contribute nothing.
    """
    if profile.get("gender") == "male":
        partner_ids = [p["id"] for p in profile.get("linked_partners", [])]
        if not partner_ids:
            return []
        rows = await conn.fetch(
            """
            SELECT id, nickname, cycle_length, period_length, last_period_date
            FROM profiles WHERE id = ANY($1::text[]) AND gender = 'female'
            ORDER BY id
            """,
            partner_ids,
        )
        sources = [dict(r) for r in rows]
    else:
        sources = [profile]

    predictions = []
    for source in sources:
        prediction = predict_cycle(
            source.get("last_period_date"),
            source.get("cycle_length"),
            source.get("period_length"),
            as_of=as_of,
        )
        if prediction is None:
            continue
        predictions.append(
            {
                "profile_id": source["id"],
                "nickname": source.get("nickname"),
                "last_period_date": prediction.last_period_date,
                "cycle_length": prediction.cycle_length,
                "next_period_date": prediction.next_period_date,
                "period_end_date": prediction.period_end_date,
                "ovulation_date": prediction.ovulation_date,
                "current_cycle_day": prediction.current_cycle_day,
            }
        )
    return predictions
