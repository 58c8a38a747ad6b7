"""Pydantic v2 schemas for the chat endpoints and ``new_message`` pushes."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from src.models.chat_message import ChatMessage
from src.models.conversation import Conversation


class MessageRead(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    chat_id: uuid.UUID = Field(alias="chatId")
    sender: uuid.UUID
    sender_name: str = Field(alias="senderName")
    content: str
    read: bool
    read_at: datetime | None = Field(None, alias="readAt")
    created_at: datetime = Field(alias="createdAt")

    @classmethod
    def from_model(cls, message: ChatMessage) -> MessageRead:
        return cls(
            id=message.id,
            chat_id=message.conversation_id,
            sender=message.sender_id,
            sender_name=message.sender_name,
            content=message.content,
            read=message.is_read,
            read_at=message.read_at,
            created_at=message.created_at,
        )


class ParticipantRead(BaseModel):
    id: uuid.UUID
    name: str


class LastMessageRead(BaseModel):
    content: str
    timestamp: datetime
    sender: uuid.UUID


class ConversationRead(BaseModel):
    """A conversation summary as shown in the chat list."""

    model_config = ConfigDict(populate_by_name=True)

    id: uuid.UUID
    participants: list[ParticipantRead]
    last_message: LastMessageRead | None = Field(None, alias="lastMessage")
    active: bool
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")

    @classmethod
    def from_model(cls, conversation: Conversation) -> ConversationRead:
        last_message = None
        if conversation.last_message_at is not None:
            last_message = LastMessageRead(
                content=conversation.last_message_content or "",
                timestamp=conversation.last_message_at,
                sender=conversation.last_message_sender_id,
            )
        return cls(
            id=conversation.id,
            participants=[
                ParticipantRead(id=conversation.participant_one_id, name=conversation.participant_one_name),
                ParticipantRead(id=conversation.participant_two_id, name=conversation.participant_two_name),
            ],
            last_message=last_message,
            active=conversation.is_active,
            created_at=conversation.created_at,
            updated_at=conversation.updated_at,
        )


class MessagePageResponse(BaseModel):
    """Response body for GET /chat/{id}/messages. ``messages`` are oldest first."""

    messages: list[MessageRead]
    total: int
    page: int
    pages: int


class ConversationCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    participant_id: uuid.UUID = Field(..., alias="participantId")


class SendMessageRequest(BaseModel):
    content: str


class UnreadCountResponse(BaseModel):
    count: int


class MarkReadResponse(BaseModel):
    updated: int
