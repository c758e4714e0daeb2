"""Invite codes and partner links.

An invite moves ``unused -> used`` exactly once.  Redemption locks the
invite row (``FOR UPDATE``) inside the caller's transaction, so two
concurrent redemptions of the same code cannot both link::

    female creates invite ──► male redeems code ──► partner_links(female_id, male_id)
                                                └─► invites.used = true

Unlink deletes the link row whichever side asks; the invite stays used.
"""

from __future__ import annotations

import logging
import secrets
import string
from typing import Any

import asyncpg

from heartlink.core.errors import HeartLinkError, InvalidOperationError, NotFoundError

logger = logging.getLogger("heartlink.partners")

INVITE_ALPHABET = string.ascii_uppercase + string.digits
INVITE_CODE_LENGTH = 6
_MAX_CODE_ATTEMPTS = 5


def generate_invite_code(length: int = INVITE_CODE_LENGTH) -> str:
    """Random code from A-Z0-9 drawn with ``secrets``."""
    return "".join(secrets.choice(INVITE_ALPHABET) for _ in range(length))


def normalize_code(code: str) -> str:
    """Codes are matched case-insensitively, ignoring surrounding whitespace."""
    return code.strip().upper()


async def _require_profile(conn: asyncpg.Connection, user_id: str) -> asyncpg.Record:
    row = await conn.fetchrow(
        "SELECT id, nickname, gender FROM profiles WHERE id = $1", user_id
    )
    if row is None:
        raise NotFoundError("Profile not found; initialize it first")
    return row


# ---------- Invites ----------

async def create_invite(
    conn: asyncpg.Connection, user_id: str, code_length: int = INVITE_CODE_LENGTH
) -> dict[str, Any]:
    """Issue a fresh single-use invite code for a female profile."""
    profile = await _require_profile(conn, user_id)
    if profile["gender"] != "female":
        raise InvalidOperationError("Only female profiles can create invite codes")

    for _ in range(_MAX_CODE_ATTEMPTS):
        row = await conn.fetchrow(
            """
            INSERT INTO invites (code, creator_id) VALUES ($1, $2)
            ON CONFLICT (code) DO NOTHING
            RETURNING *
            """,
            generate_invite_code(code_length),
            user_id,
        )
        if row is not None:
            logger.info("Invite created id=%s creator=%s", row["id"], user_id)
            return dict(row)

    logger.error("Could not allocate a unique invite code after %d attempts", _MAX_CODE_ATTEMPTS)
    raise HeartLinkError("Could not allocate a unique invite code; try again")


async def list_invites(conn: asyncpg.Connection, user_id: str) -> list[dict[str, Any]]:
    rows = await conn.fetch(
        "SELECT * FROM invites WHERE creator_id = $1 ORDER BY created_at DESC",
        user_id,
    )
    return [dict(r) for r in rows]


async def redeem_invite(
    conn: asyncpg.Connection, user_id: str, code: str
) -> dict[str, Any]:
    """Link the redeemer to the invite's creator and consume the invite.

    Raises:
        NotFoundError:          No unused invite carries ``code``.
        InvalidOperationError:  The redeemer created the invite, or is not
                                a male profile.
    """
    invite = await conn.fetchrow(
        "SELECT * FROM invites WHERE code = $1 AND NOT used FOR UPDATE",
        normalize_code(code),
    )
    if invite is None:
        raise NotFoundError("Invite code not found or already used")

    creator_id: str = invite["creator_id"]
    if creator_id == user_id:
        raise InvalidOperationError("You cannot redeem your own invite code")

    redeemer = await _require_profile(conn, user_id)
    if redeemer["gender"] != "male":
        raise InvalidOperationError("Only male profiles can redeem invite codes")

    # No-op update on conflict so RETURNING yields the existing link
    link = await conn.fetchrow(
        """
        INSERT INTO partner_links (female_id, male_id) VALUES ($1, $2)
        ON CONFLICT (female_id, male_id) DO UPDATE SET female_id = EXCLUDED.female_id
        RETURNING *
        """,
        creator_id,
        user_id,
    )
    await conn.execute(
        "UPDATE invites SET used = true, used_by = $2, used_at = NOW() WHERE id = $1",
        invite["id"],
        user_id,
    )
    creator = await _require_profile(conn, creator_id)

    logger.info(
        "Invite id=%s redeemed: female=%s male=%s", invite["id"], creator_id, user_id
    )
    result = dict(link)
    result["partner"] = dict(creator)
    return result


# ---------- Links ----------

async def list_partners(conn: asyncpg.Connection, user_id: str) -> list[dict[str, Any]]:
    """Profiles linked to ``user_id`` in either orientation, oldest link first."""
    rows = await conn.fetch(
        """
        SELECT p.id, p.nickname, p.gender
        FROM partner_links l
        JOIN profiles p
          ON p.id = CASE WHEN l.female_id = $1 THEN l.male_id ELSE l.female_id END
        WHERE l.female_id = $1 OR l.male_id = $1
        ORDER BY l.created_at
        """,
        user_id,
    )
    return [dict(r) for r in rows]


async def partner_ids(conn: asyncpg.Connection, user_id: str) -> list[str]:
    return [p["id"] for p in await list_partners(conn, user_id)]


async def unlink(conn: asyncpg.Connection, user_id: str, partner_id: str) -> int:
    """Delete the link(s) between ``user_id`` and ``partner_id``."""
    result = await conn.execute(
        """
        DELETE FROM partner_links
        WHERE (female_id = $1 AND male_id = $2) OR (female_id = $2 AND male_id = $1)
        """,
        user_id,
        partner_id,
    )
    removed = int(result.split()[-1])
    if removed == 0:
        raise NotFoundError("No link with that partner")
    logger.info("Unlinked %s and %s", user_id, partner_id)
    return removed
