"""Profile endpoints: setup, settings, and cycle predictions."""

from __future__ import annotations

from datetime import date
from typing import Any

from fastapi import APIRouter, HTTPException, Query

from heartlink.dependencies import CurrentUser
from heartlink.models.profiles import PredictionRead, ProfileInit, ProfileRead, ProfileUpdate
from heartlink.services import profiles
from heartlink.services.database import get_connection

router = APIRouter(prefix="/profiles", tags=["profiles"])


@router.get("/me", response_model=ProfileRead)
async def get_my_profile(user: CurrentUser) -> Any:
    """The caller's profile with linked partners."""
    async with get_connection(user_id=user.user_id) as conn:
        return await profiles.get_profile(conn, user.user_id)


@router.post("/me", response_model=ProfileRead)
async def initialize_my_profile(user: CurrentUser, body: ProfileInit) -> Any:
    """Create the profile on first sign-in; returns the existing one otherwise."""
    async with get_connection(user_id=user.user_id) as conn:
        return await profiles.initialize_profile(
            conn, user.user_id, user.email, body.nickname, body.gender.value
        )


@router.patch("/me", response_model=ProfileRead)
async def update_my_profile(user: CurrentUser, body: ProfileUpdate) -> Any:
    updates = body.model_dump(exclude_unset=True, mode="python")
    if not updates:
        raise HTTPException(status_code=400, detail="No fields to update")
    if "gender" in updates and updates["gender"] is not None:
        updates["gender"] = updates["gender"].value
    for key in ("nickname", "gender", "cycle_length", "period_length"):
        if key in updates and updates[key] is None:
            raise HTTPException(status_code=400, detail=f"{key} cannot be null")

    async with get_connection(user_id=user.user_id) as conn:
        return await profiles.update_profile(conn, user.user_id, updates)


@router.get("/me/prediction", response_model=list[PredictionRead])
async def get_my_prediction(
    user: CurrentUser,
    as_of: date | None = Query(default=None),
) -> Any:
    """Next period and ovulation dates.

    Female profiles get their own prediction; male profiles get one per
    linked partner.  Empty when no last period date is set.
    """
    async with get_connection(user_id=user.user_id) as conn:
        profile = await profiles.get_profile(conn, user.user_id)
        return await profiles.predictions_for(conn, profile, as_of=as_of or date.today())
