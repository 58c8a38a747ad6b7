"""Conversation service — two-party threads, their message log and read state."""

from __future__ import annotations

import logging
import math
import uuid

from sqlalchemy import func, or_, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.database.base import utcnow
from src.exceptions import (
    ConflictException,
    InvalidOperationException,
    NotFoundException,
    ValidationException,
)
from src.models.chat_message import ChatMessage
from src.models.conversation import Conversation, participant_key
from src.models.enums import NotificationKind
from src.modules.chat.constants import (
    CONVERSATION_NOT_FOUND,
    MESSAGE_MAX_LENGTH,
    NOTIFICATION_PREVIEW_CHARS,
    NOTIFICATION_TITLE,
    SELF_CONVERSATION,
    USER_NOT_FOUND,
)
from src.modules.chat.directory import SqlUserDirectory, UserDirectory
from src.modules.chat.schemas import MessageRead
from src.modules.notifications.constants import LINK_CHAT, METADATA_CHAT_ID
from src.modules.notifications.service import NotificationService
from src.modules.realtime.constants import EVENT_NEW_MESSAGE
from src.modules.realtime.delivery import DeliveryBridge
from src.modules.realtime.rooms import ConversationRoom

logger = logging.getLogger(__name__)

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _clean_content(content: str | None) -> str:
    cleaned = (content or "").strip()
    if not cleaned:
        raise ValidationException(
            "Message content is required",
            details=[{"field": "content", "message": "must not be empty"}],
        )
    if len(cleaned) > MESSAGE_MAX_LENGTH:
        raise ValidationException(
            f"Message exceeds {MESSAGE_MAX_LENGTH} characters",
            details=[{"field": "content", "message": f"max length is {MESSAGE_MAX_LENGTH}"}],
        )
    return cleaned


def _preview(sender_name: str, content: str) -> str:
    snippet = content[:NOTIFICATION_PREVIEW_CHARS]
    if len(content) > NOTIFICATION_PREVIEW_CHARS:
        snippet += "..."
    return f"{sender_name}: {snippet}"


class ConversationService:
    """Manages conversations between two users and the messages they exchange.

    Writes that other users should hear about (``append_message``) commit
    before anything is pushed. The chat-message notification raised by an
    append is best-effort and never undoes the append.
    """

    def __init__(
        self,
        db: AsyncSession,
        delivery: DeliveryBridge,
        directory: UserDirectory | None = None,
        notifications: NotificationService | None = None,
    ) -> None:
        self.db = db
        self.delivery = delivery
        self.directory = directory if directory is not None else SqlUserDirectory(db)
        self.notifications = (
            notifications if notifications is not None else NotificationService(db, delivery)
        )

    # ------------------------------------------------------------------
    # Visibility
    # ------------------------------------------------------------------

    @staticmethod
    def _visible_to(conversation: Conversation, user_id: uuid.UUID) -> bool:
        if settings.chat_hide_per_participant:
            return str(user_id) not in (conversation.hidden_for or [])
        return conversation.is_active

    async def _visible_conversations(self, user_id: uuid.UUID) -> list[Conversation]:
        stmt = select(Conversation).where(
            or_(
                Conversation.participant_one_id == user_id,
                Conversation.participant_two_id == user_id,
            )
        )
        if not settings.chat_hide_per_participant:
            stmt = stmt.where(Conversation.is_active.is_(True))
        stmt = stmt.order_by(
            Conversation.last_message_at.desc().nulls_last(),
            Conversation.created_at.desc(),
        )
        result = await self.db.execute(stmt)
        return [c for c in result.scalars().all() if self._visible_to(c, user_id)]

    # ------------------------------------------------------------------
    # Conversations
    # ------------------------------------------------------------------

    async def get_or_create(self, user_a: uuid.UUID, user_b: uuid.UUID) -> Conversation:
        """Return the conversation for the unordered pair ``{user_a, user_b}``.

        Concurrent first calls from both sides converge on one row: the
        insert is conflict-tolerant on ``participant_key`` and the loser
        re-reads the winner's conversation.
        """
        if user_a == user_b:
            raise InvalidOperationException(SELF_CONVERSATION)

        first = await self.directory.resolve(user_a)
        second = await self.directory.resolve(user_b)
        if first is None or second is None:
            raise NotFoundException(USER_NOT_FOUND)

        key = participant_key(user_a, user_b)
        existing = await self._find_by_key(key)
        if existing is not None:
            return existing

        now = utcnow()
        values = {
            "id": uuid.uuid4(),
            "participant_key": key,
            "participant_one_id": first.id,
            "participant_two_id": second.id,
            "participant_one_name": first.name,
            "participant_two_name": second.name,
            "is_active": True,
            "hidden_for": [],
            "created_at": now,
            "updated_at": now,
        }

        try:
            await self._insert_conversation(values)
            logger.info(
                "Created conversation %s between %s and %s", values["id"], user_a, user_b
            )
        except ConflictException:
            logger.info("Conversation %s created concurrently; re-reading", key)

        await self.db.commit()
        conversation = await self._find_by_key(key)
        if conversation is None:
            raise NotFoundException(CONVERSATION_NOT_FOUND)
        return conversation

    async def list_for_user(self, user_id: uuid.UUID) -> list[Conversation]:
        """Conversations visible to ``user_id``, most recent message first.

        Conversations without messages come last.
        """
        return await self._visible_conversations(user_id)

    async def soft_delete(self, conversation_id: uuid.UUID, caller_id: uuid.UUID) -> None:
        """Hide a conversation from listings. The message log is kept."""
        conversation = await self._get_for_participant(conversation_id, caller_id)
        hidden = list(conversation.hidden_for or [])
        if str(caller_id) not in hidden:
            hidden.append(str(caller_id))
        conversation.hidden_for = hidden
        if not settings.chat_hide_per_participant:
            conversation.is_active = False
        await self.db.flush()
        logger.info("Conversation %s hidden by %s", conversation_id, caller_id)

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    async def append_message(
        self,
        conversation_id: uuid.UUID,
        sender_id: uuid.UUID,
        content: str,
    ) -> ChatMessage:
        """Append a message, push it to the conversation room, notify the recipient."""
        content = _clean_content(content)
        conversation = await self._get_for_participant(
            conversation_id, sender_id, for_update=True
        )

        now = utcnow()
        sender_name = conversation.participant_name(sender_id)
        recipient_id = conversation.other_participant(sender_id)
        message = ChatMessage(
            conversation_id=conversation.id,
            sender_id=sender_id,
            sender_name=sender_name,
            content=content,
            is_read=False,
            read_at=None,
            created_at=now,
        )
        self.db.add(message)

        conversation.last_message_content = content
        conversation.last_message_at = now
        conversation.last_message_sender_id = sender_id
        conversation.updated_at = now

        if settings.chat_hide_per_participant and str(recipient_id) in (conversation.hidden_for or []):
            conversation.hidden_for = [
                uid for uid in conversation.hidden_for if uid != str(recipient_id)
            ]

        await self.db.flush()
        await self.db.commit()
        self.db.expunge(message)

        logger.info(
            "Message %s appended to conversation %s by %s", message.id, conversation_id, sender_id
        )

        self.delivery.push_to_room(
            ConversationRoom(conversation_id),
            EVENT_NEW_MESSAGE,
            {
                "chatId": str(conversation_id),
                "message": MessageRead.from_model(message).model_dump(mode="json", by_alias=True),
            },
        )
        await self.notifications.create_best_effort(
            recipient_id=recipient_id,
            sender_id=sender_id,
            kind=NotificationKind.CHAT_MESSAGE,
            title=NOTIFICATION_TITLE,
            body=_preview(sender_name, content),
            link=LINK_CHAT.format(chat_id=conversation_id),
            metadata={METADATA_CHAT_ID: str(conversation_id)},
        )
        return message

    async def list_messages(
        self,
        conversation_id: uuid.UUID,
        caller_id: uuid.UUID,
        page: int = 1,
        page_size: int = 50,
    ) -> tuple[list[ChatMessage], int, int]:
        """One page of the log, paged newest first, returned oldest first.

        Returns ``(messages, total, pages)``. Pages past the end are empty.
        """
        if page < 1 or page_size < 1:
            raise ValidationException("page and limit must be at least 1")
        await self._get_for_participant(conversation_id, caller_id)

        total = (
            await self.db.execute(
                select(func.count())
                .select_from(ChatMessage)
                .where(ChatMessage.conversation_id == conversation_id)
            )
        ).scalar_one()

        result = await self.db.execute(
            select(ChatMessage)
            .where(ChatMessage.conversation_id == conversation_id)
            .order_by(ChatMessage.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        messages = list(result.scalars().all())
        messages.reverse()
        return messages, total, math.ceil(total / page_size)

    async def mark_read(self, conversation_id: uuid.UUID, caller_id: uuid.UUID) -> int:
        """Mark every message the caller received in this conversation as read.

        Returns the number of messages changed, so a repeat call returns 0.
        """
        await self._get_for_participant(conversation_id, caller_id)
        result = await self.db.execute(
            update(ChatMessage)
            .where(
                ChatMessage.conversation_id == conversation_id,
                ChatMessage.sender_id != caller_id,
                ChatMessage.is_read.is_(False),
            )
            .values(is_read=True, read_at=utcnow())
        )
        await self.db.flush()
        return result.rowcount or 0

    async def unread_count_for_user(self, user_id: uuid.UUID) -> int:
        """Unread messages addressed to ``user_id`` across visible conversations."""
        conversation_ids = [c.id for c in await self._visible_conversations(user_id)]
        if not conversation_ids:
            return 0
        result = await self.db.execute(
            select(func.count())
            .select_from(ChatMessage)
            .where(
                ChatMessage.conversation_id.in_(conversation_ids),
                ChatMessage.sender_id != user_id,
                ChatMessage.is_read.is_(False),
            )
        )
        return result.scalar_one()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _insert_conversation(self, values: dict) -> None:
        """Insert a new conversation row.

        Raises ``ConflictException`` when a row with the same participant key
        already exists. Callers resolve it by re-reading that row.
        """
        upsert = _UPSERT_DIALECTS.get(self.db.get_bind().dialect.name)
        if upsert is not None:
            result = await self.db.execute(
                upsert(Conversation)
                .values(**values)
                .on_conflict_do_nothing(index_elements=["participant_key"])
            )
            if result.rowcount == 0:
                raise ConflictException(f"Conversation {values['participant_key']} already exists")
            return

        try:
            async with self.db.begin_nested():
                self.db.add(Conversation(**values))
        except IntegrityError as exc:
            raise ConflictException(
                f"Conversation {values['participant_key']} already exists"
            ) from exc

    async def _find_by_key(self, key: str) -> Conversation | None:
        result = await self.db.execute(
            select(Conversation)
            .where(Conversation.participant_key == key)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_for_participant(
        self, conversation_id: uuid.UUID, user_id: uuid.UUID
    ) -> Conversation:
        """Public lookup used by the realtime gateway before a ``join_chat``."""
        return await self._get_for_participant(conversation_id, user_id)

    async def _get_for_participant(
        self,
        conversation_id: uuid.UUID,
        user_id: uuid.UUID,
        for_update: bool = False,
    ) -> Conversation:
        # Non-participants get the same answer as a missing conversation.
        stmt = (
            select(Conversation)
            .where(
                Conversation.id == conversation_id,
                or_(
                    Conversation.participant_one_id == user_id,
                    Conversation.participant_two_id == user_id,
                ),
            )
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.db.execute(stmt)
        conversation = result.scalar_one_or_none()
        if conversation is None:
            raise NotFoundException(CONVERSATION_NOT_FOUND)
        return conversation
