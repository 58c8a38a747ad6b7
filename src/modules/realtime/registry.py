"""In-memory registry of live sessions and their room memberships.

Nothing here is persisted. A ``LiveSession`` exists from a successful
handshake until the connection goes away, and every room it joined forgets
it on ``unregister``.

Each session owns a bounded outbound queue drained by a single sender task,
so a slow client only ever fills its own buffer and frames reach a client in
the order they were queued. Registry maps are guarded by a lock because
pushes may originate from threads other than the one serving the socket.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import uuid
from typing import Any, Protocol

from src.config import settings
from src.modules.auth.auth import AuthenticatedUser
from src.modules.realtime.rooms import PersonalRoom, Room

logger = logging.getLogger(__name__)


class Connection(Protocol):
    """The slice of a websocket the registry needs."""

    async def send_json(self, data: Any) -> None: ...


class LiveSession:
    """One authenticated connection."""

    def __init__(
        self,
        connection: Connection,
        user: AuthenticatedUser,
        queue_size: int | None = None,
    ) -> None:
        self.id = str(uuid.uuid4())
        self.connection = connection
        self.user = user
        self.rooms: set[str] = set()
        self.outbound: asyncio.Queue[dict] = asyncio.Queue(
            maxsize=queue_size if queue_size is not None else settings.ws_send_queue_size
        )
        self._loop: asyncio.AbstractEventLoop | None = None
        self._sender: asyncio.Task | None = None
        self._closed = False

    @property
    def user_id(self) -> uuid.UUID:
        return self.user.id

    @property
    def display_name(self) -> str:
        return self.user.name

    def start(self) -> None:
        """Bind to the running loop and start draining the outbound queue."""
        self._loop = asyncio.get_running_loop()
        self._sender = self._loop.create_task(self._drain())

    def stop(self) -> None:
        self._closed = True
        if self._sender is not None:
            self._sender.cancel()

    def enqueue(self, frame: dict) -> bool:
        """Queue a frame for delivery without waiting on the client."""
        if self._closed:
            return False

        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if self._loop is not None and running is not self._loop:
            self._loop.call_soon_threadsafe(self._offer, frame)
            return True
        return self._offer(frame)

    def _offer(self, frame: dict) -> bool:
        try:
            self.outbound.put_nowait(frame)
        except asyncio.QueueFull:
            logger.warning(
                "Outbound buffer full for session %s (user %s); dropping %s",
                self.id, self.user_id, frame.get("type"),
            )
            return False
        return True

    async def _drain(self) -> None:
        while True:
            frame = await self.outbound.get()
            try:
                await self.connection.send_json(frame)
            except Exception:
                logger.warning(
                    "Send failed for session %s (user %s); stopping sender",
                    self.id, self.user_id, exc_info=True,
                )
                self._closed = True
                return

    def __repr__(self) -> str:
        return f"<LiveSession id={self.id} user={self.user_id} rooms={sorted(self.rooms)}>"


class SessionRegistry:
    """Live sessions keyed by id, plus room key -> member session ids."""

    def __init__(self) -> None:
        self._sessions: dict[str, LiveSession] = {}
        self._rooms: dict[str, set[str]] = {}
        self._lock = threading.Lock()

    def register(
        self,
        connection: Connection,
        user: AuthenticatedUser,
        queue_size: int | None = None,
    ) -> LiveSession:
        """Create a session for an authenticated connection and join its personal room."""
        session = LiveSession(connection, user, queue_size=queue_size)
        with self._lock:
            self._sessions[session.id] = session
        self.join(session, PersonalRoom(user.id))
        logger.info("Session %s registered for user %s", session.id, user.id)
        return session

    def join(self, session: LiveSession, room: Room) -> bool:
        """Add ``session`` to ``room``. Returns False when it was already a member."""
        key = room.key
        with self._lock:
            if session.id not in self._sessions:
                return False
            members = self._rooms.setdefault(key, set())
            if session.id in members:
                return False
            members.add(session.id)
            session.rooms.add(key)
        logger.info("Session %s (user %s) joined %s", session.id, session.user_id, key)
        return True

    def unregister(self, session: LiveSession) -> None:
        """Drop the session and its membership in every room it joined."""
        with self._lock:
            self._sessions.pop(session.id, None)
            for key in session.rooms:
                members = self._rooms.get(key)
                if members is None:
                    continue
                members.discard(session.id)
                if not members:
                    del self._rooms[key]
            session.rooms.clear()
        logger.info("Session %s unregistered for user %s", session.id, session.user_id)

    def members(self, room: Room) -> list[LiveSession]:
        with self._lock:
            ids = self._rooms.get(room.key, ())
            return [self._sessions[sid] for sid in ids if sid in self._sessions]

    def sessions(self) -> list[LiveSession]:
        with self._lock:
            return list(self._sessions.values())

    def is_member(self, session: LiveSession, room: Room) -> bool:
        with self._lock:
            return session.id in self._rooms.get(room.key, ())

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
