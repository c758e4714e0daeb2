"""Pydantic models for profiles and cycle predictions."""

from __future__ import annotations

from datetime import date
from enum import Enum

from pydantic import Field

from heartlink.cycle.predictor import DEFAULT_CYCLE_LENGTH, DEFAULT_PERIOD_LENGTH
from heartlink.models.base import HeartLinkBase, TimestampMixin

# Postgres ``integer`` columns
INT4_MIN = -(2**31)
INT4_MAX = 2**31 - 1


class Gender(str, Enum):
    female = "female"
    male = "male"
    unknown = "unknown"


class PartnerSummary(HeartLinkBase):
    id: str
    nickname: str | None = None
    gender: Gender = Gender.unknown


class ProfileInit(HeartLinkBase):
    """Body for first-time profile setup; missing fields take defaults."""

    nickname: str | None = Field(default=None, max_length=50)
    gender: Gender = Gender.female


class ProfileUpdate(HeartLinkBase):
    nickname: str | None = Field(default=None, min_length=1, max_length=50)
    gender: Gender | None = None
    cycle_length: int | None = Field(default=None, ge=INT4_MIN, le=INT4_MAX)
    period_length: int | None = Field(default=None, ge=INT4_MIN, le=INT4_MAX)
    last_period_date: date | None = None


class ProfileRead(HeartLinkBase, TimestampMixin):
    id: str
    # Copied from the identity token as-is; not re-validated here
    email: str | None = None
    nickname: str | None = None
    gender: Gender = Gender.unknown
    is_subscribed: bool = False
    usage_count: int = 0
    cycle_length: int = DEFAULT_CYCLE_LENGTH
    period_length: int = DEFAULT_PERIOD_LENGTH
    last_period_date: date | None = None
    linked_partners: list[PartnerSummary] = Field(default_factory=list)


class PredictionRead(HeartLinkBase):
    profile_id: str
    nickname: str | None = None
    last_period_date: date
    cycle_length: int
    next_period_date: date
    period_end_date: date
    ovulation_date: date
    current_cycle_day: int | None = None
