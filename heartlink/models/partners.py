"""Pydantic models for invites and partner links."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from heartlink.models.base import HeartLinkBase
from heartlink.models.profiles import PartnerSummary


class InviteRead(HeartLinkBase):
    id: int
    code: str
    creator_id: str
    used: bool = False
    used_by: str | None = None
    created_at: datetime
    used_at: datetime | None = None


class InviteRedeem(HeartLinkBase):
    code: str = Field(min_length=1, max_length=16)


class PartnerLinkRead(HeartLinkBase):
    female_id: str
    male_id: str
    created_at: datetime
    partner: PartnerSummary | None = None
