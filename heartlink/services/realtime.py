"""Realtime fan-out of new chat messages.

``send_message`` issues ``pg_notify('messages', ...)`` inside its insert
transaction.  A dedicated asyncpg connection ``LISTEN``s on that channel
and the hub pushes each payload to the queues of the sender and the
receiver.  Events only say *something changed*; clients re-fetch the
conversation instead of merging events, so a dropped or duplicated event
costs nothing but a reload.  A dropped listener connection is re-opened
in the background.

LISTEN needs a session connection: point ``supabase_realtime_db_url`` at
the direct (non-pooled) database port when the main URL goes through the
transaction pooler.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections import defaultdict
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import asyncpg

logger = logging.getLogger("heartlink.realtime")

MESSAGES_CHANNEL = "messages"
_QUEUE_SIZE = 100


class MessageHub:
    """In-process subscriber registry for message events, keyed by user id.

    If the ``LISTEN`` connection drops, the hub reconnects with exponential
    backoff and then sends every subscriber a ``messages.resync`` event,
    since notifications from the gap are lost.
    """

    def __init__(self, reconnect_delay: float = 1.0, max_reconnect_delay: float = 30.0) -> None:
        self._subscribers: dict[str, set[asyncio.Queue[dict[str, Any]]]] = defaultdict(set)
        self._conn: asyncpg.Connection | None = None
        self._dsn: str | None = None
        self._stopping = False
        self._reconnect_task: asyncio.Task[None] | None = None
        self._reconnect_delay = reconnect_delay
        self._max_reconnect_delay = max_reconnect_delay

    async def start(self, dsn: str) -> None:
        self._dsn = dsn
        self._stopping = False
        await self._connect()
        logger.info("Listening on channel %r", MESSAGES_CHANNEL)

    async def _connect(self) -> None:
        conn = await asyncpg.connect(self._dsn, statement_cache_size=0)
        await conn.add_listener(MESSAGES_CHANNEL, self._on_notify)
        conn.add_termination_listener(self._on_terminate)
        self._conn = conn

    async def stop(self) -> None:
        self._stopping = True
        if self._reconnect_task is not None:
            self._reconnect_task.cancel()
            self._reconnect_task = None
        if self._conn is not None:
            conn, self._conn = self._conn, None
            await conn.remove_listener(MESSAGES_CHANNEL, self._on_notify)
            await conn.close()
            logger.info("Realtime listener closed")

    def _on_terminate(self, connection: asyncpg.Connection) -> None:
        if self._stopping or connection is not self._conn:
            return
        logger.warning("Realtime listener connection lost; reconnecting")
        self._conn = None
        self._reconnect_task = asyncio.get_running_loop().create_task(self._reconnect())

    async def _reconnect(self) -> None:
        delay = self._reconnect_delay
        while not self._stopping:
            try:
                await self._connect()
            except (OSError, asyncpg.PostgresError, asyncpg.InterfaceError) as exc:
                logger.warning("Realtime reconnect failed (%s); retrying in %.1fs", exc, delay)
                await asyncio.sleep(delay)
                delay = min(delay * 2, self._max_reconnect_delay)
                continue
            logger.info("Realtime listener reconnected")
            self.broadcast({"type": "messages.resync"})
            return

    def broadcast(self, event: dict[str, Any]) -> int:
        """Queue ``event`` for every open stream."""
        delivered = 0
        for user_id, queues in self._subscribers.items():
            delivered += self._deliver(user_id, queues, event)
        return delivered

    def _on_notify(
        self, connection: asyncpg.Connection, pid: int, channel: str, payload: str
    ) -> None:
        try:
            event = json.loads(payload)
        except json.JSONDecodeError:
            logger.warning("Ignoring malformed %s payload: %r", channel, payload)
            return
        self.publish(event)

    def publish(self, event: dict[str, Any]) -> int:
        """Queue ``event`` for the sender's and receiver's streams.

        Returns the number of queues the event reached.
        """
        recipients = {event.get("sender_id"), event.get("receiver_id")} - {None}
        return sum(
            self._deliver(user_id, self._subscribers.get(user_id, ()), event)
            for user_id in recipients
        )

    @staticmethod
    def _deliver(user_id: str, queues, event: dict[str, Any]) -> int:
        delivered = 0
        for queue in queues:
            try:
                queue.put_nowait(event)
                delivered += 1
            except asyncio.QueueFull:
                # Subscriber is far behind; its next reload covers this event.
                logger.debug("Queue full for user=%s, dropping event", user_id)
        return delivered

    @asynccontextmanager
    async def subscribe(self, user_id: str) -> AsyncIterator[asyncio.Queue[dict[str, Any]]]:
        queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue(maxsize=_QUEUE_SIZE)
        self._subscribers[user_id].add(queue)
        try:
            yield queue
        finally:
            self._subscribers[user_id].discard(queue)
            if not self._subscribers[user_id]:
                del self._subscribers[user_id]

    def subscriber_count(self, user_id: str) -> int:
        return len(self._subscribers.get(user_id, ()))


# Module-level hub: started once at app startup
_hub = MessageHub()


def get_hub() -> MessageHub:
    return _hub


async def notify_message(conn: asyncpg.Connection, message: dict[str, Any]) -> None:
    """Publish a new-message event; delivered when the transaction commits."""
    payload = json.dumps(
        {
            "type": "message.created",
            "id": message["id"],
            "sender_id": message["sender_id"],
            "receiver_id": message.get("receiver_id"),
        }
    )
    await conn.execute("SELECT pg_notify($1, $2)", MESSAGES_CHANNEL, payload)
