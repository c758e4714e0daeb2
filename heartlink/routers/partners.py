"""Invite codes and partner links."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from heartlink.dependencies import AppSettings, CurrentUser
from heartlink.models.partners import InviteRead, InviteRedeem, PartnerLinkRead
from heartlink.models.profiles import PartnerSummary
from heartlink.services import partners
from heartlink.services.database import get_connection

router = APIRouter(prefix="/partners", tags=["partners"])


@router.get("", response_model=list[PartnerSummary])
async def list_partners(user: CurrentUser) -> Any:
    async with get_connection(user_id=user.user_id) as conn:
        return await partners.list_partners(conn, user.user_id)


@router.get("/invites", response_model=list[InviteRead])
async def list_invites(user: CurrentUser) -> Any:
    async with get_connection(user_id=user.user_id) as conn:
        return await partners.list_invites(conn, user.user_id)


@router.post("/invites", response_model=InviteRead, status_code=201)
async def create_invite(user: CurrentUser, settings: AppSettings) -> Any:
    async with get_connection(user_id=user.user_id) as conn:
        return await partners.create_invite(
            conn, user.user_id, code_length=settings.invite_code_length
        )


@router.post("/redeem", response_model=PartnerLinkRead, status_code=201)
async def redeem_invite(user: CurrentUser, body: InviteRedeem) -> Any:
    """Link to the partner who issued ``code``; the code is then spent."""
    async with get_connection(user_id=user.user_id) as conn:
        return await partners.redeem_invite(conn, user.user_id, body.code)


@router.delete("/{partner_id}", status_code=204)
async def unlink_partner(partner_id: str, user: CurrentUser) -> None:
    async with get_connection(user_id=user.user_id) as conn:
        await partners.unlink(conn, user.user_id, partner_id)
