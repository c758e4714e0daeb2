"""Pydantic models for AI consultations."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from heartlink.models.base import HeartLinkBase


class ConsultationAsk(HeartLinkBase):
    question: str = Field(min_length=1, max_length=2000)


class ConsultationRead(HeartLinkBase):
    id: int
    user_id: str
    question: str
    answer: str
    created_at: datetime


class ConsultationAnswer(HeartLinkBase):
    """Result of one AI round-trip.

    ``saved`` is False when the provider failed and ``answer`` is the
    fallback apology; nothing was stored in that case.
    """

    id: int | None = None
    question: str
    answer: str
    saved: bool
    created_at: datetime
