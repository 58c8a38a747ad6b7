"""Chat API router — conversations, messages, read state."""

import uuid

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.database.session import get_db
from src.middleware.rate_limit import limiter
from src.modules.auth.auth import AuthenticatedUser, get_current_user
from src.modules.chat.schemas import (
    ConversationCreateRequest,
    ConversationRead,
    MarkReadResponse,
    MessagePageResponse,
    MessageRead,
    SendMessageRequest,
    UnreadCountResponse,
)
from src.modules.chat.service import ConversationService
from src.modules.realtime.delivery import DeliveryBridge
from src.modules.realtime.dependencies import get_delivery
from src.schemas.responses import error_responses

router = APIRouter(
    prefix="/chat",
    tags=["chat"],
    responses=error_responses(401, 404, 422, 503),
)


def _get_service(
    db: AsyncSession = Depends(get_db),
    delivery: DeliveryBridge = Depends(get_delivery),
) -> ConversationService:
    return ConversationService(db, delivery)


# ---------------------------------------------------------------------------
# Conversations
# ---------------------------------------------------------------------------


@router.post("", response_model=ConversationRead, responses=error_responses(400))
async def get_or_create_conversation(
    body: ConversationCreateRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    svc: ConversationService = Depends(_get_service),
):
    """Open the conversation with another user, creating it on first contact."""
    conversation = await svc.get_or_create(user.id, body.participant_id)
    return ConversationRead.from_model(conversation)


@router.get("", response_model=list[ConversationRead])
async def list_conversations(
    user: AuthenticatedUser = Depends(get_current_user),
    svc: ConversationService = Depends(_get_service),
):
    conversations = await svc.list_for_user(user.id)
    return [ConversationRead.from_model(c) for c in conversations]


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    user: AuthenticatedUser = Depends(get_current_user),
    svc: ConversationService = Depends(_get_service),
):
    return UnreadCountResponse(count=await svc.unread_count_for_user(user.id))


@router.delete("/{chat_id}", status_code=204)
async def delete_conversation(
    chat_id: uuid.UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    svc: ConversationService = Depends(_get_service),
):
    """Hide a conversation from the caller's list. Messages are kept."""
    await svc.soft_delete(chat_id, user.id)


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


@router.get("/{chat_id}/messages", response_model=MessagePageResponse)
async def list_messages(
    chat_id: uuid.UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.chat_messages_page_size, ge=1, le=100),
    user: AuthenticatedUser = Depends(get_current_user),
    svc: ConversationService = Depends(_get_service),
):
    messages, total, pages = await svc.list_messages(chat_id, user.id, page=page, page_size=limit)
    return MessagePageResponse(
        messages=[MessageRead.from_model(m) for m in messages],
        total=total,
        page=page,
        pages=pages,
    )


@router.post(
    "/{chat_id}/messages",
    response_model=MessageRead,
    status_code=201,
    responses=error_responses(429),
)
@limiter.limit(settings.send_message_rate_limit)
async def send_message(
    request: Request,
    chat_id: uuid.UUID,
    body: SendMessageRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    svc: ConversationService = Depends(_get_service),
):
    """Append a message and push it to everyone viewing the conversation."""
    message = await svc.append_message(chat_id, user.id, body.content)
    return MessageRead.from_model(message)


@router.put("/{chat_id}/read", response_model=MarkReadResponse)
async def mark_read(
    chat_id: uuid.UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    svc: ConversationService = Depends(_get_service),
):
    return MarkReadResponse(updated=await svc.mark_read(chat_id, user.id))
