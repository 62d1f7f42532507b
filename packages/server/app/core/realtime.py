"""
Realtime broadcaster: pushes events to live WebSocket connections.

Features:
- Every connection sits in exactly one user room (``user:{id}``) and at
  most one organization room (``org:{id}``), fixed at handshake time
- Sends only enqueue; each connection drains its own bounded queue, so
  per-connection order is preserved and callers never wait on a socket
- At-most-once delivery: a full queue drops the message for that connection
- Dead connections are removed from every room on the first failed write
- Optional Redis Pub/Sub for multi-process broadcasting
"""

from __future__ import annotations

import asyncio
import json
from enum import Enum
from typing import Any, Optional
from uuid import UUID

import redis.asyncio as redis
import structlog
from fastapi import WebSocket

from prody_shared.schemas.common import RealtimeEvent

log = structlog.get_logger()

REDIS_CHANNEL = "prody:realtime"
DEFAULT_QUEUE_SIZE = 100


def user_room(user_id: UUID | str) -> str:
    return f"user:{user_id}"


def org_room(org_id: UUID | str) -> str:
    return f"org:{org_id}"


def encode_frame(event: str | Enum, payload: Any) -> str:
    name = event.value if isinstance(event, Enum) else event
    return json.dumps({"event": name, "data": payload}, default=str)


class ConnectionInfo:
    """Tracks a single WebSocket connection and its outbound queue."""

    __slots__ = ("websocket", "user_id", "org_id", "rooms", "queue", "sender")

    def __init__(
        self,
        websocket: WebSocket,
        user_id: UUID,
        org_id: Optional[UUID] = None,
        queue_size: int = DEFAULT_QUEUE_SIZE,
    ):
        self.websocket = websocket
        self.user_id = user_id
        self.org_id = org_id
        self.rooms: tuple[str, ...] = (user_room(user_id),) + (
            (org_room(org_id),) if org_id else ()
        )
        self.queue: asyncio.Queue[str] = asyncio.Queue(maxsize=queue_size)
        self.sender: asyncio.Task | None = None

    def enqueue(self, text: str) -> bool:
        try:
            self.queue.put_nowait(text)
        except asyncio.QueueFull:
            log.warning("realtime.queue_full", user_id=str(self.user_id))
            return False
        return True


class RealtimeBroadcaster:
    """
    Room registry plus delivery.

    Membership lives in memory and is rebuilt as clients reconnect. When a
    Redis client is supplied, sends are published to Redis and every
    process delivers to its own local connections from a listener task.
    """

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        queue_size: int = DEFAULT_QUEUE_SIZE,
    ) -> None:
        # room name -> connections
        self._rooms: dict[str, set[ConnectionInfo]] = {}
        self._lock = asyncio.Lock()
        self._redis = redis_client
        self._queue_size = queue_size
        self._listener: asyncio.Task | None = None

    async def start(self) -> None:
        if self._redis is not None and self._listener is None:
            self._listener = asyncio.create_task(self._listen_redis())

    async def stop(self) -> None:
        if self._listener is not None:
            self._listener.cancel()
            self._listener = None
        async with self._lock:
            connections = {c for members in self._rooms.values() for c in members}
        for info in connections:
            await self.disconnect(info)

    # --- Membership ---

    async def connect(
        self, websocket: WebSocket, user_id: UUID, org_id: Optional[UUID] = None
    ) -> ConnectionInfo:
        """Register an accepted WebSocket in its user room and, if any, its org room."""
        info = ConnectionInfo(websocket, user_id, org_id, self._queue_size)
        info.enqueue(
            encode_frame(
                RealtimeEvent.CONNECTED,
                {
                    "userId": str(user_id),
                    "organizationId": str(org_id) if org_id else None,
                    "rooms": list(info.rooms),
                },
            )
        )
        async with self._lock:
            for room in info.rooms:
                self._rooms.setdefault(room, set()).add(info)
        info.sender = asyncio.create_task(self._pump(info))

        log.info(
            "realtime.connected",
            user_id=str(user_id),
            org_id=str(org_id) if org_id else None,
        )
        return info

    async def disconnect(self, info: ConnectionInfo) -> None:
        """Remove a connection from every room. Safe to call more than once."""
        removed = False
        async with self._lock:
            for room in info.rooms:
                members = self._rooms.get(room)
                if members and info in members:
                    members.discard(info)
                    removed = True
                    if not members:
                        del self._rooms[room]

        sender = info.sender
        if sender is not None and sender is not asyncio.current_task():
            sender.cancel()
        info.sender = None

        # Release anything still waiting on queue.join()
        while not info.queue.empty():
            info.queue.get_nowait()
            info.queue.task_done()

        if removed:
            log.info("realtime.disconnected", user_id=str(info.user_id))

    async def connections_in(self, room: str) -> int:
        async with self._lock:
            return len(self._rooms.get(room, ()))

    # --- Sending ---

    async def send_to_user(self, user_id: UUID, event: str | Enum, payload: Any) -> None:
        await self._dispatch(user_room(user_id), event, payload)

    async def send_to_org(self, org_id: Optional[UUID], event: str | Enum, payload: Any) -> None:
        if org_id is None:
            return
        await self._dispatch(org_room(org_id), event, payload)

    async def _dispatch(self, room: str, event: str | Enum, payload: Any) -> None:
        text = encode_frame(event, payload)
        if self._redis is not None:
            await self._redis.publish(REDIS_CHANNEL, json.dumps({"room": room, "frame": text}))
        else:
            await self.deliver(room, text)

    async def deliver(self, room: str, text: str) -> int:
        """Enqueue a frame for every local connection in a room. Returns how many took it."""
        async with self._lock:
            targets = list(self._rooms.get(room, ()))
        return sum(1 for info in targets if info.enqueue(text))

    async def _pump(self, info: ConnectionInfo) -> None:
        while True:
            text = await info.queue.get()
            try:
                await info.websocket.send_text(text)
            except Exception as exc:
                log.info("realtime.send_failed", user_id=str(info.user_id), error=repr(exc))
                info.queue.task_done()
                await self.disconnect(info)
                return
            except asyncio.CancelledError:
                info.queue.task_done()
                raise
            info.queue.task_done()

    # --- Redis Pub/Sub Listener ---

    async def _listen_redis(self) -> None:
        """Deliver frames published by any process to this process's connections."""
        pubsub = self._redis.pubsub()
        await pubsub.subscribe(REDIS_CHANNEL)

        try:
            async for message in pubsub.listen():
                if message["type"] != "message":
                    continue
                envelope = json.loads(message["data"])
                await self.deliver(envelope["room"], envelope["frame"])
        except asyncio.CancelledError:
            log.info("realtime.listener_cancelled")
        finally:
            await pubsub.unsubscribe(REDIS_CHANNEL)
            await pubsub.aclose()
