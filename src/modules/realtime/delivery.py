"""DeliveryBridge — fans committed domain events out to live sessions.

The bridge holds no state of its own beyond the registry it reads from and
never writes to storage. Stores commit first and push second; a push that
reaches nobody is not an error, since clients rebuild state from the list
endpoints when they reconnect.
"""

from __future__ import annotations

import logging
import uuid

from src.modules.realtime.registry import LiveSession, SessionRegistry
from src.modules.realtime.rooms import PersonalRoom, Room

logger = logging.getLogger(__name__)


class DeliveryBridge:
    """Best-effort pushes addressed to rooms, users, or every live session.

    Every ``push_*`` method returns the number of sessions the frame was
    queued for and never raises.
    """

    def __init__(self, registry: SessionRegistry | None = None) -> None:
        self.registry = registry if registry is not None else SessionRegistry()

    @staticmethod
    def _frame(event: str, payload: dict) -> dict:
        return {"type": event, "data": payload}

    def _fan_out(self, sessions: list[LiveSession], event: str, payload: dict) -> int:
        frame = self._frame(event, payload)
        delivered = 0
        for session in sessions:
            try:
                if session.enqueue(frame):
                    delivered += 1
            except Exception:
                logger.warning(
                    "Push of %s to session %s failed", event, session.id, exc_info=True
                )
        return delivered

    def push_to_room(
        self,
        room: Room,
        event: str,
        payload: dict,
        exclude: LiveSession | None = None,
    ) -> int:
        """Queue ``event`` for every session currently in ``room``."""
        try:
            members = self.registry.members(room)
            if exclude is not None:
                members = [s for s in members if s.id != exclude.id]
            delivered = self._fan_out(members, event, payload)
        except Exception:
            logger.exception("Push of %s to %s failed", event, room.key)
            return 0

        if delivered == 0:
            logger.debug("No live recipients for %s in %s", event, room.key)
        return delivered

    def push_to_user(self, user_id: uuid.UUID, event: str, payload: dict) -> int:
        return self.push_to_room(PersonalRoom(user_id), event, payload)

    def broadcast_all(self, event: str, payload: dict) -> int:
        """Queue ``event`` for every live session regardless of room."""
        try:
            return self._fan_out(self.registry.sessions(), event, payload)
        except Exception:
            logger.exception("Broadcast of %s failed", event)
            return 0
