"""Pydantic models for daily cycle / mood records."""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum

from pydantic import Field, field_validator, model_validator

from heartlink.models.base import HeartLinkBase, TimestampMixin


class FlowLevel(str, Enum):
    none = "none"
    light = "light"
    medium = "medium"
    heavy = "heavy"


def _dedupe_tags(tags: list[str]) -> list[str]:
    seen: dict[str, None] = {}
    for tag in tags:
        tag = tag.strip()
        if tag:
            seen.setdefault(tag, None)
    return list(seen)


class RecordUpsert(HeartLinkBase):
    record_date: date
    flow: FlowLevel | None = None
    emotions: list[str] = Field(default_factory=list, max_length=20)
    symptoms: list[str] = Field(default_factory=list, max_length=20)
    notes: str | None = Field(default=None, max_length=2000)

    @field_validator("emotions", "symptoms")
    @classmethod
    def _as_tag_set(cls, value: list[str]) -> list[str]:
        return _dedupe_tags(value)

    @model_validator(mode="after")
    def _not_empty(self) -> "RecordUpsert":
        # Symptoms alone do not count as an entry.
        if self.flow is None and not self.emotions and not self.notes:
            raise ValueError("Record at least a flow level, an emotion, or a note")
        return self


class RecordRead(HeartLinkBase, TimestampMixin):
    id: int
    user_id: str
    record_date: date
    flow: FlowLevel | None = None
    emotions: list[str] = Field(default_factory=list)
    symptoms: list[str] = Field(default_factory=list)
    notes: str | None = None


class RecordSaved(HeartLinkBase):
    record: RecordRead
    usage_count: int
    usage_limit: int | None = None  # None for subscribed profiles
