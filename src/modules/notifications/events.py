"""Domain-event producers used by the payment, feedback and upload handlers.

Each producer is called after the causal write has committed. Persisted
notices go through ``NotificationService.create_best_effort``; admin and
system notices are live-only pushes through the delivery bridge.
"""

from __future__ import annotations

import logging
import uuid
from decimal import Decimal

from src.database.base import utcnow
from src.models.enums import NotificationKind
from src.models.notification import Notification
from src.modules.notifications.constants import (
    LINK_RESOURCE,
    METADATA_PAYMENT_ID,
    METADATA_RESOURCE_ID,
)
from src.modules.notifications.service import NotificationService
from src.modules.realtime.constants import EVENT_ADMIN_NOTIFICATION, EVENT_SYSTEM_NOTIFICATION
from src.modules.realtime.delivery import DeliveryBridge
from src.modules.realtime.rooms import ADMIN_ROOM

logger = logging.getLogger(__name__)


def _live_notice(kind: NotificationKind, title: str, body: str, link: str | None, metadata: dict) -> dict:
    return {
        "kind": kind.value,
        "title": title,
        "body": body,
        "link": link,
        "metadata": metadata,
        "createdAt": utcnow().isoformat(),
    }


async def notify_payment_succeeded(
    service: NotificationService,
    *,
    user_id: uuid.UUID,
    payment_id: str,
    resource_id: str,
    resource_title: str,
    amount: Decimal | float,
) -> Notification | None:
    return await service.create_best_effort(
        recipient_id=user_id,
        kind=NotificationKind.PAYMENT_SUCCESS,
        title="Payment Successful",
        body=f'Your payment of ${amount} for "{resource_title}" was successful!',
        link=LINK_RESOURCE.format(resource_id=resource_id),
        metadata={METADATA_PAYMENT_ID: payment_id, METADATA_RESOURCE_ID: resource_id},
    )


async def notify_payment_failed(
    service: NotificationService,
    *,
    user_id: uuid.UUID,
    payment_id: str,
    resource_title: str,
) -> Notification | None:
    return await service.create_best_effort(
        recipient_id=user_id,
        kind=NotificationKind.SYSTEM,
        title="Payment Failed",
        body=f'Your payment for "{resource_title}" failed. Please try again.',
        metadata={METADATA_PAYMENT_ID: payment_id},
    )


async def notify_feedback_received(
    service: NotificationService,
    *,
    owner_id: uuid.UUID,
    reviewer_id: uuid.UUID,
    reviewer_name: str,
    resource_id: str,
    resource_title: str,
    rating: int,
) -> Notification | None:
    """Tell a resource owner someone rated their upload. Self-reviews are ignored."""
    if owner_id == reviewer_id:
        return None
    return await service.create_best_effort(
        recipient_id=owner_id,
        sender_id=reviewer_id,
        kind=NotificationKind.NEW_FEEDBACK,
        title="New Feedback",
        body=f'{reviewer_name} rated "{resource_title}" {rating}/5.',
        link=LINK_RESOURCE.format(resource_id=resource_id),
        metadata={METADATA_RESOURCE_ID: resource_id},
    )


async def notify_resource_uploaded(
    service: NotificationService,
    *,
    uploader_id: uuid.UUID,
    uploader_name: str,
    resource_id: str,
    resource_title: str,
    admin_ids: list[uuid.UUID] | None = None,
) -> int:
    """Alert admins about a new upload.

    Every session in the admin room gets a live ``admin_notification``; each id
    in ``admin_ids`` also gets a persisted ``resource_upload`` notification.
    Returns the number of persisted notifications.
    """
    title = "New Resource Uploaded"
    body = f'{uploader_name} uploaded "{resource_title}".'
    link = LINK_RESOURCE.format(resource_id=resource_id)
    metadata = {METADATA_RESOURCE_ID: resource_id}

    service.delivery.push_to_room(
        ADMIN_ROOM,
        EVENT_ADMIN_NOTIFICATION,
        {"notification": _live_notice(NotificationKind.RESOURCE_UPLOAD, title, body, link, metadata)},
    )

    created = 0
    for admin_id in admin_ids or []:
        if admin_id == uploader_id:
            continue
        notification = await service.create_best_effort(
            recipient_id=admin_id,
            sender_id=uploader_id,
            kind=NotificationKind.RESOURCE_UPLOAD,
            title=title,
            body=body,
            link=link,
            metadata=metadata,
        )
        if notification is not None:
            created += 1
    return created


def announce_system_notice(
    delivery: DeliveryBridge,
    *,
    title: str,
    body: str,
    link: str | None = None,
) -> int:
    """Push a ``system_notification`` to every live session. Nothing is persisted."""
    delivered = delivery.broadcast_all(
        EVENT_SYSTEM_NOTIFICATION,
        {"notification": _live_notice(NotificationKind.SYSTEM, title, body, link, {})},
    )
    logger.info("System notice %r delivered to %d sessions", title, delivered)
    return delivered
