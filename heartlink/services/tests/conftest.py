"""Row builders and ids shared by the service and router tests.

The ``conn`` and ``settings`` fixtures live in ``heartlink/conftest.py``.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

FEMALE_ID = "uid-female-0001"
MALE_ID = "uid-male-0001"
OTHER_MALE_ID = "uid-male-0002"
NOW = datetime(2026, 2, 23, 9, 30, tzinfo=timezone.utc)
TODAY = date(2026, 2, 23)


def profile_row(
    user_id: str = FEMALE_ID,
    gender: str = "female",
    nickname: str = "Mei",
    usage_count: int = 0,
    is_subscribed: bool = False,
    **extra,
) -> dict:
    row = {
        "id": user_id,
        "email": f"{user_id}@example.test",
        "nickname": nickname,
        "gender": gender,
        "is_subscribed": is_subscribed,
        "usage_count": usage_count,
        "cycle_length": 28,
        "period_length": 5,
        "last_period_date": None,
        "created_at": NOW,
        "updated_at": NOW,
    }
    row.update(extra)
    return row


def invite_row(code: str = "AB12CD", creator_id: str = FEMALE_ID, used: bool = False) -> dict:
    return {
        "id": 7,
        "code": code,
        "creator_id": creator_id,
        "used": used,
        "used_by": None,
        "created_at": NOW,
        "used_at": None,
    }


def partner_row(user_id: str = MALE_ID, gender: str = "male", nickname: str = "Jun") -> dict:
    return {"id": user_id, "nickname": nickname, "gender": gender}


def record_row(user_id: str = FEMALE_ID, record_date: date = TODAY, **extra) -> dict:
    row = {
        "id": 11,
        "user_id": user_id,
        "record_date": record_date,
        "flow": "medium",
        "emotions": ["calm"],
        "symptoms": [],
        "notes": None,
        "created_at": NOW,
        "updated_at": NOW,
    }
    row.update(extra)
    return row


def message_row(sender_id: str = FEMALE_ID, receiver_id: str | None = MALE_ID) -> dict:
    return {
        "id": 42,
        "sender_id": sender_id,
        "receiver_id": receiver_id,
        "content": "Thinking of you",
        "created_at": NOW,
    }
