"""Realtime gateway — the ``/ws`` websocket endpoint.

A connection must authenticate before anything else happens: either with a
``?token=`` query parameter or with an ``auth`` frame sent within
``ws_auth_timeout_seconds``. After that every outbound frame goes through the
session's queue, so the socket has exactly one writer.
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.config import settings
from src.exceptions import AppException, UnauthorizedException
from src.modules.auth.auth import AuthenticatedUser, authenticate_token
from src.modules.chat.service import ConversationService
from src.modules.realtime.constants import (
    EVENT_CONNECTED,
    EVENT_ERROR,
    EVENT_JOINED,
    EVENT_PONG,
    EVENT_USER_STOP_TYPING,
    EVENT_USER_TYPING,
    FRAME_AUTH,
    FRAME_JOIN_ADMIN,
    FRAME_JOIN_CHAT,
    FRAME_PING,
    FRAME_STOP_TYPING,
    FRAME_TYPING,
    WS_CLOSE_UNAUTHENTICATED,
)
from src.modules.realtime.delivery import DeliveryBridge
from src.modules.realtime.dependencies import get_delivery, get_session_factory
from src.modules.realtime.registry import LiveSession
from src.modules.realtime.rooms import ADMIN_ROOM, ConversationRoom
from src.modules.realtime.schemas import AuthFrameData, ChatFrameData, WsInbound, WsOutbound

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])


def _frame(event: str, data: dict | None = None) -> dict:
    return WsOutbound(type=event, data=data or {}).model_dump(mode="json")


async def _refuse(websocket: WebSocket, reason: str) -> None:
    logger.info("Refusing websocket handshake: %s", reason)
    await websocket.close(code=WS_CLOSE_UNAUTHENTICATED, reason=reason)


async def _receive_raw(websocket: WebSocket) -> str | None:
    """Next client frame as text. Binary frames are read as UTF-8; None if they aren't."""
    message = await websocket.receive()
    if message["type"] == "websocket.disconnect":
        raise WebSocketDisconnect(message.get("code", 1000), message.get("reason"))
    text = message.get("text")
    if text is not None:
        return text
    try:
        return (message.get("bytes") or b"").decode("utf-8")
    except UnicodeDecodeError:
        return None


async def _authenticate(websocket: WebSocket, token: str | None) -> AuthenticatedUser | None:
    """Run the handshake. Returns None when the socket was refused or went away."""
    if token:
        try:
            user = authenticate_token(token)
        except UnauthorizedException as exc:
            await _refuse(websocket, exc.message)
            return None
        await websocket.accept()
        return user

    await websocket.accept()
    try:
        raw = await asyncio.wait_for(
            _receive_raw(websocket), timeout=settings.ws_auth_timeout_seconds
        )
    except asyncio.TimeoutError:
        await _refuse(websocket, "Authentication timed out")
        return None
    except WebSocketDisconnect:
        return None

    if raw is None:
        await _refuse(websocket, "Malformed auth frame")
        return None
    try:
        inbound = WsInbound.model_validate_json(raw)
        if inbound.type != FRAME_AUTH:
            raise UnauthorizedException("Authentication required")
        return authenticate_token(AuthFrameData.model_validate(inbound.data).token)
    except ValidationError:
        await _refuse(websocket, "Malformed auth frame")
    except UnauthorizedException as exc:
        await _refuse(websocket, exc.message)
    return None


class _Gateway:
    """Handles client frames for one live session."""

    def __init__(
        self,
        session: LiveSession,
        delivery: DeliveryBridge,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> None:
        self.session = session
        self.delivery = delivery
        self.registry = delivery.registry
        self.session_factory = session_factory

    def reply(self, event: str, data: dict | None = None) -> None:
        self.session.enqueue(_frame(event, data))

    def error(self, message: str) -> None:
        self.reply(EVENT_ERROR, {"message": message})

    async def handle(self, raw: str) -> None:
        try:
            inbound = WsInbound.model_validate_json(raw)
        except ValidationError:
            self.error("Invalid frame")
            return

        if inbound.type == FRAME_PING:
            self.reply(EVENT_PONG)
        elif inbound.type == FRAME_JOIN_CHAT:
            await self.join_chat(inbound.data)
        elif inbound.type == FRAME_JOIN_ADMIN:
            self.join_admin()
        elif inbound.type in (FRAME_TYPING, FRAME_STOP_TYPING):
            self.relay_typing(inbound.type, inbound.data)
        else:
            self.error(f"Unknown frame type: {inbound.type}")

    async def join_chat(self, data: dict) -> None:
        try:
            chat_id = ChatFrameData.model_validate(data).chat_id
        except ValidationError:
            self.error("chatId is required")
            return

        try:
            async with self.session_factory() as db:
                service = ConversationService(db, self.delivery)
                await service.get_for_participant(chat_id, self.session.user_id)
        except AppException as exc:
            logger.info("join_chat refused for session %s: %s", self.session.id, exc.message)
            self.error(exc.message)
            return
        except SQLAlchemyError:
            logger.exception("join_chat lookup failed for session %s", self.session.id)
            self.error("Storage is temporarily unavailable")
            return

        room = ConversationRoom(chat_id)
        self.registry.join(self.session, room)
        self.reply(EVENT_JOINED, {"room": room.key})

    def join_admin(self) -> None:
        if not self.session.user.is_admin:
            self.error("Admin role required")
            return
        self.registry.join(self.session, ADMIN_ROOM)
        self.reply(EVENT_JOINED, {"room": ADMIN_ROOM.key})

    def relay_typing(self, frame_type: str, data: dict) -> None:
        try:
            chat_id = ChatFrameData.model_validate(data).chat_id
        except ValidationError:
            self.error("chatId is required")
            return

        room = ConversationRoom(chat_id)
        if not self.registry.is_member(self.session, room):
            self.error("Join the chat before sending typing events")
            return

        if frame_type == FRAME_TYPING:
            event = EVENT_USER_TYPING
            payload = {
                "chatId": str(chat_id),
                "userId": str(self.session.user_id),
                "userName": self.session.display_name,
            }
        else:
            event = EVENT_USER_STOP_TYPING
            payload = {"chatId": str(chat_id), "userId": str(self.session.user_id)}
        self.delivery.push_to_room(room, event, payload, exclude=self.session)


@router.websocket("/ws")
async def realtime_gateway(
    websocket: WebSocket,
    token: str | None = Query(None),
    delivery: DeliveryBridge = Depends(get_delivery),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
):
    user = await _authenticate(websocket, token)
    if user is None:
        return

    registry = delivery.registry
    session = registry.register(websocket, user)
    session.start()
    session.enqueue(_frame(EVENT_CONNECTED, {"userId": str(user.id), "userName": user.name}))
    gateway = _Gateway(session, delivery, session_factory)

    try:
        while True:
            raw = await _receive_raw(websocket)
            if raw is None:
                gateway.error("Invalid frame")
                continue
            await gateway.handle(raw)
    except WebSocketDisconnect as exc:
        logger.info("Session %s disconnected (code %s)", session.id, exc.code)
    finally:
        registry.unregister(session)
        session.stop()
