"""Shared Pydantic base models and utilities."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class HeartLinkBase(BaseModel):
    """Base model with shared config for all HeartLink schemas."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class TimestampMixin(BaseModel):
    created_at: datetime
    updated_at: datetime | None = None


class ErrorDetail(BaseModel):
    detail: str
    code: str | None = None


class DeleteResult(BaseModel):
    deleted: int = Field(ge=0)
