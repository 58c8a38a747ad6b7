"""Pydantic v2 schemas for notification endpoints and push payloads."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from src.models.enums import NotificationKind
from src.models.notification import Notification


class NotificationRead(BaseModel):
    """A notification as clients see it, over HTTP and in ``new_notification`` pushes."""

    model_config = ConfigDict(populate_by_name=True)

    id: uuid.UUID
    recipient: uuid.UUID
    sender: uuid.UUID | None = None
    kind: NotificationKind
    title: str
    body: str
    link: str | None = None
    read: bool
    read_at: datetime | None = Field(None, alias="readAt")
    metadata: dict[str, str] = Field(default_factory=dict)
    created_at: datetime = Field(alias="createdAt")

    @classmethod
    def from_model(cls, notification: Notification) -> NotificationRead:
        return cls(
            id=notification.id,
            recipient=notification.recipient_id,
            sender=notification.sender_id,
            kind=notification.kind,
            title=notification.title,
            body=notification.body,
            link=notification.link,
            read=notification.is_read,
            read_at=notification.read_at,
            metadata=notification.metadata_extra or {},
            created_at=notification.created_at,
        )


class NotificationPagination(BaseModel):
    total: int
    page: int
    pages: int


class NotificationListResponse(BaseModel):
    """Response body for GET /notifications."""

    model_config = ConfigDict(populate_by_name=True)

    notifications: list[NotificationRead]
    pagination: NotificationPagination
    unread_count: int = Field(alias="unreadCount")


class UnreadCountResponse(BaseModel):
    count: int


class MarkAllReadResponse(BaseModel):
    updated: int


class SystemNoticeRequest(BaseModel):
    """Request body for POST /notifications/system."""

    title: str = Field(..., min_length=1, max_length=200)
    body: str = Field(..., min_length=1, max_length=500)
    link: str | None = Field(None, max_length=500)


class SystemNoticeResponse(BaseModel):
    delivered: int
