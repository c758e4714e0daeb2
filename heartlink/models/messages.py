"""Pydantic models for partner chat messages."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from heartlink.models.base import HeartLinkBase


class MessageCreate(HeartLinkBase):
    content: str = Field(min_length=1, max_length=4000)
    receiver_id: str | None = None  # defaults to the only linked partner


class MessageRead(HeartLinkBase):
    id: int
    sender_id: str
    receiver_id: str | None = None
    content: str
    created_at: datetime


class MessageDelete(HeartLinkBase):
    ids: list[int] = Field(min_length=1, max_length=500)
