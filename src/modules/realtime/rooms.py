"""Room addressing for live multicast groups.

A room is one of three variants, each with a single wire key:

    PersonalRoom(user_id)           -> "user:{user_id}"
    ConversationRoom(conversation)  -> "chat:{conversation_id}"
    RoleRoom(name)                  -> "{name}_room"

Callers build rooms through these types instead of concatenating strings, so
a user id can never be mistaken for a conversation id.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass

from src.modules.realtime.constants import (
    ADMIN_ROLE,
    CONVERSATION_ROOM_PREFIX,
    PERSONAL_ROOM_PREFIX,
    ROLE_ROOM_SUFFIX,
)


@dataclass(frozen=True)
class PersonalRoom:
    user_id: uuid.UUID

    @property
    def key(self) -> str:
        return f"{PERSONAL_ROOM_PREFIX}{self.user_id}"


@dataclass(frozen=True)
class ConversationRoom:
    conversation_id: uuid.UUID

    @property
    def key(self) -> str:
        return f"{CONVERSATION_ROOM_PREFIX}{self.conversation_id}"


@dataclass(frozen=True)
class RoleRoom:
    name: str

    @property
    def key(self) -> str:
        return f"{self.name}{ROLE_ROOM_SUFFIX}"


Room = PersonalRoom | ConversationRoom | RoleRoom

ADMIN_ROOM = RoleRoom(ADMIN_ROLE)


def room_key(room: Room) -> str:
    """Wire form of a room."""
    return room.key
