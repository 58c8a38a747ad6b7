"""Wire envelopes for the realtime channel.

Every frame in either direction is ``{"type": <name>, "data": {...}}``.
"""

from __future__ import annotations

import uuid
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class WsInbound(BaseModel):
    """A frame sent by the client."""

    type: str = Field(..., min_length=1)
    data: dict[str, Any] = Field(default_factory=dict)


class WsOutbound(BaseModel):
    """A frame sent by the server."""

    type: str
    data: dict[str, Any] = Field(default_factory=dict)


class AuthFrameData(BaseModel):
    token: str = Field(..., min_length=1)


class ChatFrameData(BaseModel):
    """Payload of ``join_chat``, ``typing`` and ``stop_typing``."""

    model_config = ConfigDict(populate_by_name=True)

    chat_id: uuid.UUID = Field(..., alias="chatId")
