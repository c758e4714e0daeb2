"""Partner chat messages."""

from __future__ import annotations

import logging
from typing import Any

import asyncpg

from heartlink.core.errors import InvalidOperationError, NotFoundError
from heartlink.services.partners import partner_ids
from heartlink.services.realtime import notify_message

logger = logging.getLogger("heartlink.messages")


async def send_message(
    conn: asyncpg.Connection,
    user_id: str,
    content: str,
    receiver_id: str | None = None,
) -> dict[str, Any]:
    """Store a message from ``user_id`` and announce it on the realtime channel.

    Without an explicit ``receiver_id`` the message goes to the only linked
    partner.  A user with no partner yet may still write: the message is
    kept with no receiver and shows up in their own conversation.
    """
    partners = await partner_ids(conn, user_id)
    if receiver_id is None:
        if len(partners) > 1:
            raise InvalidOperationError("Several partners are linked; choose a receiver_id")
        receiver_id = partners[0] if partners else None
    elif receiver_id not in partners:
        raise InvalidOperationError("You can only message linked partners")

    row = await conn.fetchrow(
        """
        INSERT INTO messages (sender_id, receiver_id, content)
        VALUES ($1, $2, $3)
        RETURNING *
        """,
        user_id,
        receiver_id,
        content,
    )
    message = dict(row)
    await notify_message(conn, message)
    return message


async def list_messages(
    conn: asyncpg.Connection, user_id: str, limit: int = 500
) -> list[dict[str, Any]]:
    """The newest ``limit`` messages the user sent or received, oldest first."""
    rows = await conn.fetch(
        """
        SELECT * FROM (
            SELECT * FROM messages
            WHERE sender_id = $1 OR receiver_id = $1
            ORDER BY created_at DESC, id DESC
            LIMIT $2
        ) recent
        ORDER BY created_at ASC, id ASC
        """,
        user_id,
        limit,
    )
    return [dict(r) for r in rows]


async def delete_messages(conn: asyncpg.Connection, user_id: str, ids: list[int]) -> int:
    """Delete the listed messages the user took part in; returns the count."""
    result = await conn.execute(
        """
        DELETE FROM messages
        WHERE id = ANY($1::bigint[]) AND (sender_id = $2 OR receiver_id = $2)
        """,
        ids,
        user_id,
    )
    deleted = int(result.split()[-1])
    if deleted == 0:
        raise NotFoundError("No matching messages")
    logger.info("Deleted %d message(s) for user=%s", deleted, user_id)
    return deleted
