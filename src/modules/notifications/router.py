"""Notifications API router — list, read state, delete, system broadcast."""

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.database.session import get_db
from src.modules.auth.auth import AuthenticatedUser, get_current_user
from src.modules.auth.dependencies import require_admin
from src.modules.notifications.events import announce_system_notice
from src.modules.notifications.schemas import (
    MarkAllReadResponse,
    NotificationListResponse,
    NotificationPagination,
    NotificationRead,
    SystemNoticeRequest,
    SystemNoticeResponse,
    UnreadCountResponse,
)
from src.modules.notifications.service import NotificationService
from src.modules.realtime.delivery import DeliveryBridge
from src.modules.realtime.dependencies import get_delivery
from src.schemas.responses import error_responses

router = APIRouter(
    prefix="/notifications",
    tags=["notifications"],
    responses=error_responses(401, 404, 503),
)


def _get_service(
    db: AsyncSession = Depends(get_db),
    delivery: DeliveryBridge = Depends(get_delivery),
) -> NotificationService:
    return NotificationService(db, delivery)


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.notifications_page_size, ge=1, le=100),
    unread_only: bool = Query(False, alias="unreadOnly"),
    user: AuthenticatedUser = Depends(get_current_user),
    svc: NotificationService = Depends(_get_service),
):
    """Newest-first page of the caller's notifications."""
    notifications, total, pages, unread = await svc.list_for_user(
        user.id, page=page, page_size=limit, unread_only=unread_only
    )
    return NotificationListResponse(
        notifications=[NotificationRead.from_model(n) for n in notifications],
        pagination=NotificationPagination(total=total, page=page, pages=pages),
        unread_count=unread,
    )


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    user: AuthenticatedUser = Depends(get_current_user),
    svc: NotificationService = Depends(_get_service),
):
    return UnreadCountResponse(count=await svc.unread_count(user.id))


@router.put("/mark-all-read", response_model=MarkAllReadResponse)
async def mark_all_read(
    user: AuthenticatedUser = Depends(get_current_user),
    svc: NotificationService = Depends(_get_service),
):
    return MarkAllReadResponse(updated=await svc.mark_all_read(user.id))


@router.put("/{notification_id}/read", response_model=NotificationRead)
async def mark_read(
    notification_id: uuid.UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    svc: NotificationService = Depends(_get_service),
):
    notification = await svc.mark_read(notification_id, user.id)
    return NotificationRead.from_model(notification)


@router.delete("/{notification_id}", status_code=204)
async def delete_notification(
    notification_id: uuid.UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    svc: NotificationService = Depends(_get_service),
):
    await svc.delete(notification_id, user.id)


@router.post("/system", response_model=SystemNoticeResponse, responses=error_responses(403))
async def broadcast_system_notice(
    body: SystemNoticeRequest,
    _admin: AuthenticatedUser = Depends(require_admin),
    delivery: DeliveryBridge = Depends(get_delivery),
):
    """Push a notice to every connected client. Admin only, not persisted."""
    delivered = announce_system_notice(delivery, title=body.title, body=body.body, link=body.link)
    return SystemNoticeResponse(delivered=delivered)
