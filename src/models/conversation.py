"""Conversation model — two-party chat thread with a denormalized last-message summary."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from src.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


def participant_key(user_a: uuid.UUID, user_b: uuid.UUID) -> str:
    """Canonical key for an unordered participant pair."""
    low, high = sorted((str(user_a), str(user_b)))
    return f"{low}:{high}"


class Conversation(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "conversations"

    participant_key: Mapped[str] = mapped_column(String(80), unique=True, nullable=False)
    participant_one_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    participant_two_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    participant_one_name: Mapped[str] = mapped_column(String(100), nullable=False)
    participant_two_name: Mapped[str] = mapped_column(String(100), nullable=False)

    # Always mirrors the newest row in chat_messages; written only by the append path.
    last_message_content: Mapped[str | None] = mapped_column(Text)
    last_message_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    last_message_sender_id: Mapped[uuid.UUID | None] = mapped_column(Uuid)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    hidden_for: Mapped[list] = mapped_column(
        JSON().with_variant(JSONB, "postgresql"), nullable=False, default=list
    )

    __table_args__ = (
        Index("ix_conversations_participant_one_id", "participant_one_id"),
        Index("ix_conversations_participant_two_id", "participant_two_id"),
        Index("ix_conversations_last_message_at", "last_message_at"),
    )

    def other_participant(self, user_id: uuid.UUID) -> uuid.UUID:
        if user_id == self.participant_one_id:
            return self.participant_two_id
        return self.participant_one_id

    def participant_name(self, user_id: uuid.UUID) -> str:
        if user_id == self.participant_one_id:
            return self.participant_one_name
        return self.participant_two_name

    def __repr__(self) -> str:
        return f"<Conversation id={self.id} key={self.participant_key} active={self.is_active}>"
