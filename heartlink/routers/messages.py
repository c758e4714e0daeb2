"""Partner chat: history, send, delete, and a Server-Sent Events stream."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, AsyncIterator

from fastapi import APIRouter, Query, Request
from fastapi.responses import StreamingResponse

from heartlink.dependencies import CurrentUser
from heartlink.models.base import DeleteResult
from heartlink.models.messages import MessageCreate, MessageDelete, MessageRead
from heartlink.services import messages
from heartlink.services.database import get_connection
from heartlink.services.realtime import MessageHub, get_hub

router = APIRouter(prefix="/messages", tags=["messages"])
logger = logging.getLogger("heartlink.messages.stream")

KEEPALIVE_SECONDS = 15.0


@router.get("", response_model=list[MessageRead])
async def list_messages(
    user: CurrentUser,
    limit: int = Query(default=500, ge=1, le=2000),
) -> Any:
    async with get_connection(user_id=user.user_id) as conn:
        return await messages.list_messages(conn, user.user_id, limit=limit)


@router.post("", response_model=MessageRead, status_code=201)
async def send_message(user: CurrentUser, body: MessageCreate) -> Any:
    async with get_connection(user_id=user.user_id) as conn:
        return await messages.send_message(
            conn, user.user_id, body.content, receiver_id=body.receiver_id
        )


@router.delete("", response_model=DeleteResult)
async def delete_messages(user: CurrentUser, body: MessageDelete) -> Any:
    async with get_connection(user_id=user.user_id) as conn:
        deleted = await messages.delete_messages(conn, user.user_id, body.ids)
    return {"deleted": deleted}


def _sse_line(event: dict[str, Any]) -> str:
    return f"event: {event.get('type', 'message')}\ndata: {json.dumps(event)}\n\n"


async def stream_events(
    request: Request,
    hub: MessageHub,
    user_id: str,
    keepalive: float = KEEPALIVE_SECONDS,
) -> AsyncIterator[str]:
    """Yield SSE frames for ``user_id`` until the client disconnects."""
    async with hub.subscribe(user_id) as queue:
        yield ": connected\n\n"
        while not await request.is_disconnected():
            try:
                event = await asyncio.wait_for(queue.get(), timeout=keepalive)
            except asyncio.TimeoutError:
                yield ": keep-alive\n\n"
                continue
            yield _sse_line(event)
    logger.debug("Message stream closed for user=%s", user_id)


@router.get("/stream")
async def stream_messages(request: Request, user: CurrentUser) -> StreamingResponse:
    """Push an event whenever a message to or from the caller is stored.

    Events carry ids only; reload ``GET /messages`` on each one.
    """
    return StreamingResponse(
        stream_events(request, get_hub(), user.user_id),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
