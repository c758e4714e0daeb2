"""Daily cycle / mood records."""

from __future__ import annotations

from datetime import date
from typing import Any

from fastapi import APIRouter, Query

from heartlink.dependencies import AppSettings, CurrentUser
from heartlink.models.records import RecordRead, RecordSaved, RecordUpsert
from heartlink.services import records
from heartlink.services.database import get_connection

router = APIRouter(prefix="/records", tags=["records"])


@router.get("", response_model=list[RecordRead])
async def list_records(
    user: CurrentUser,
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    q: str | None = Query(default=None, max_length=100),
    limit: int = Query(default=366, ge=1, le=1000),
) -> Any:
    """Own records plus those of linked partners, newest day first."""
    async with get_connection(user_id=user.user_id) as conn:
        return await records.list_records(
            conn, user.user_id, start_date, end_date, query=q, limit=limit
        )


@router.put("", response_model=RecordSaved)
async def save_record(user: CurrentUser, body: RecordUpsert, settings: AppSettings) -> Any:
    async with get_connection(user_id=user.user_id) as conn:
        return await records.save_record(
            conn, user.user_id, body, settings.free_usage_limit
        )


@router.delete("/{record_id}", status_code=204)
async def delete_record(record_id: int, user: CurrentUser) -> None:
    async with get_connection(user_id=user.user_id) as conn:
        await records.delete_record(conn, user.user_id, record_id)
