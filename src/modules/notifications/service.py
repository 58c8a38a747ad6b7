"""Notification service — durable per-user notifications plus live push on create."""

from __future__ import annotations

import logging
import math
import uuid

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.base import utcnow
from src.exceptions import AppException, NotFoundException, ValidationException
from src.models.enums import NotificationKind
from src.models.notification import Notification
from src.modules.notifications.constants import (
    BODY_MAX_LENGTH,
    LINK_MAX_LENGTH,
    METADATA_KEYS,
    TITLE_MAX_LENGTH,
)
from src.modules.notifications.schemas import NotificationRead
from src.modules.realtime.constants import EVENT_NEW_NOTIFICATION
from src.modules.realtime.delivery import DeliveryBridge

logger = logging.getLogger(__name__)


def _require_text(field: str, value: str | None, max_length: int) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise ValidationException(
            f"Notification {field} is required",
            details=[{"field": field, "message": "must not be empty"}],
        )
    if len(cleaned) > max_length:
        raise ValidationException(
            f"Notification {field} exceeds {max_length} characters",
            details=[{"field": field, "message": f"max length is {max_length}"}],
        )
    return cleaned


def _clean_metadata(metadata: dict | None) -> dict[str, str]:
    if not metadata:
        return {}
    unknown = set(metadata) - METADATA_KEYS
    if unknown:
        raise ValidationException(
            f"Unsupported notification metadata keys: {', '.join(sorted(unknown))}"
        )
    return {key: str(value) for key, value in metadata.items() if value is not None}


class NotificationService:
    """Create, list, mark and delete notifications owned by a recipient.

    ``create`` is the one funnel other subsystems use to tell a user about
    something. It commits before pushing ``new_notification`` to the
    recipient's personal room.
    """

    def __init__(self, db: AsyncSession, delivery: DeliveryBridge) -> None:
        self.db = db
        self.delivery = delivery

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create(
        self,
        recipient_id: uuid.UUID,
        kind: NotificationKind | str,
        title: str,
        body: str,
        sender_id: uuid.UUID | None = None,
        link: str | None = None,
        metadata: dict | None = None,
    ) -> Notification:
        """Persist a notification, then push it to the recipient's live sessions."""
        try:
            kind = NotificationKind(kind)
        except ValueError as exc:
            raise ValidationException(f"Unknown notification kind: {kind}") from exc

        title = _require_text("title", title, TITLE_MAX_LENGTH)
        body = _require_text("body", body, BODY_MAX_LENGTH)
        link = link.strip() if link else None
        if link and len(link) > LINK_MAX_LENGTH:
            raise ValidationException(f"Notification link exceeds {LINK_MAX_LENGTH} characters")

        now = utcnow()
        notification = Notification(
            recipient_id=recipient_id,
            sender_id=sender_id,
            kind=kind,
            title=title,
            body=body,
            link=link,
            is_read=False,
            read_at=None,
            metadata_extra=_clean_metadata(metadata),
            created_at=now,
            updated_at=now,
        )
        self.db.add(notification)
        await self.db.flush()
        await self.db.commit()

        logger.info(
            "Created %s notification %s for user %s", kind.value, notification.id, recipient_id
        )
        self.delivery.push_to_user(
            recipient_id,
            EVENT_NEW_NOTIFICATION,
            {"notification": NotificationRead.from_model(notification).model_dump(mode="json", by_alias=True)},
        )
        return notification

    async def create_best_effort(self, **kwargs) -> Notification | None:
        """``create`` for side-channel notices raised after a causal write.

        The causal write must already be committed. Failures are logged and
        swallowed so they never undo or fail the action that raised them.
        """
        try:
            return await self.create(**kwargs)
        except AppException:
            logger.exception(
                "Rejected %s notification for user %s",
                kwargs.get("kind"), kwargs.get("recipient_id"),
            )
            return None
        except SQLAlchemyError:
            await self.db.rollback()
            logger.exception(
                "Failed to create %s notification for user %s",
                kwargs.get("kind"), kwargs.get("recipient_id"),
            )
            return None

    async def mark_read(self, notification_id: uuid.UUID, user_id: uuid.UUID) -> Notification:
        notification = await self._get_owned(notification_id, user_id)
        if not notification.is_read:
            notification.is_read = True
            notification.read_at = utcnow()
            await self.db.flush()
        return notification

    async def mark_all_read(self, user_id: uuid.UUID) -> int:
        """Mark every unread notification of ``user_id`` as read. Returns rows changed."""
        result = await self.db.execute(
            update(Notification)
            .where(Notification.recipient_id == user_id, Notification.is_read.is_(False))
            .values(is_read=True, read_at=utcnow())
        )
        await self.db.flush()
        return result.rowcount or 0

    async def delete(self, notification_id: uuid.UUID, user_id: uuid.UUID) -> None:
        """Erase a notification. Only its recipient may delete it."""
        notification = await self._get_owned(notification_id, user_id)
        await self.db.delete(notification)
        await self.db.flush()
        logger.info("Deleted notification %s for user %s", notification_id, user_id)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_for_user(
        self,
        user_id: uuid.UUID,
        page: int = 1,
        page_size: int = 20,
        unread_only: bool = False,
    ) -> tuple[list[Notification], int, int, int]:
        """Newest-first page of a user's notifications.

        Returns ``(notifications, total, pages, unread_count)`` where ``total``
        honours ``unread_only`` and ``unread_count`` never does.
        """
        if page < 1 or page_size < 1:
            raise ValidationException("page and limit must be at least 1")

        filters = [Notification.recipient_id == user_id]
        if unread_only:
            filters.append(Notification.is_read.is_(False))

        total = (
            await self.db.execute(select(func.count()).select_from(Notification).where(*filters))
        ).scalar_one()

        result = await self.db.execute(
            select(Notification)
            .where(*filters)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        notifications = list(result.scalars().all())
        unread = await self.unread_count(user_id)
        return notifications, total, math.ceil(total / page_size), unread

    async def unread_count(self, user_id: uuid.UUID) -> int:
        result = await self.db.execute(
            select(func.count())
            .select_from(Notification)
            .where(Notification.recipient_id == user_id, Notification.is_read.is_(False))
        )
        return result.scalar_one()

    async def _get_owned(self, notification_id: uuid.UUID, user_id: uuid.UUID) -> Notification:
        result = await self.db.execute(
            select(Notification).where(
                Notification.id == notification_id,
                Notification.recipient_id == user_id,
            )
        )
        notification = result.scalar_one_or_none()
        if notification is None:
            raise NotFoundException("Notification not found")
        return notification
