"""Tests for the chat router — bearer auth, service wiring, error envelope."""

import uuid
from datetime import UTC, datetime
from unittest.mock import AsyncMock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.exceptions import NotFoundException, ValidationException
from src.middleware.rate_limit import limiter
from src.models.chat_message import ChatMessage
from src.models.conversation import Conversation, participant_key
from src.modules.auth.auth import AuthenticatedUser, create_access_token
from src.modules.chat.router import router
from src.modules.realtime.delivery import DeliveryBridge


@pytest.fixture
def user():
    return AuthenticatedUser(id=uuid.uuid4(), name="Alice")


@pytest.fixture
def app(user):
    from fastapi.responses import JSONResponse

    from src.database.session import get_db
    from src.exceptions import AppException
    from src.modules.realtime.dependencies import get_delivery

    app = FastAPI()
    app.include_router(router, prefix="/api/v1")
    app.state.limiter = limiter
    limiter.reset()

    @app.exception_handler(AppException)
    async def app_exception_handler(request, exc):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": {"code": exc.code, "message": exc.message}},
        )

    mock_db = AsyncMock()

    async def override_get_db():
        yield mock_db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_delivery] = lambda: DeliveryBridge()
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(user.id, user.name)}"}


def _conversation(user_a, user_b):
    now = datetime.now(UTC)
    return Conversation(
        id=uuid.uuid4(),
        participant_key=participant_key(user_a, user_b),
        participant_one_id=user_a,
        participant_two_id=user_b,
        participant_one_name="Alice",
        participant_two_name="Bob",
        last_message_content=None,
        last_message_at=None,
        last_message_sender_id=None,
        is_active=True,
        hidden_for=[],
        created_at=now,
        updated_at=now,
    )


def _message(conversation_id, sender_id, content="hello", message_id=1):
    return ChatMessage(
        id=message_id,
        conversation_id=conversation_id,
        sender_id=sender_id,
        sender_name="Alice",
        content=content,
        is_read=False,
        read_at=None,
        created_at=datetime.now(UTC),
    )


class TestAuth:
    def test_missing_token_is_unauthorized(self, client):
        response = client.get("/api/v1/chat")
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "UNAUTHORIZED"

    def test_garbage_token_is_unauthorized(self, client):
        response = client.get("/api/v1/chat", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401


class TestConversations:
    def test_get_or_create(self, client, auth_headers, user):
        other = uuid.uuid4()
        conversation = _conversation(user.id, other)
        with patch("src.modules.chat.router.ConversationService") as mock_svc_cls:
            mock_svc = AsyncMock()
            mock_svc.get_or_create.return_value = conversation
            mock_svc_cls.return_value = mock_svc

            response = client.post(
                "/api/v1/chat", json={"participantId": str(other)}, headers=auth_headers
            )

        assert response.status_code == 200
        body = response.json()
        assert body["id"] == str(conversation.id)
        assert body["lastMessage"] is None
        assert [p["name"] for p in body["participants"]] == ["Alice", "Bob"]
        mock_svc.get_or_create.assert_awaited_once_with(user.id, other)

    def test_get_or_create_requires_participant(self, client, auth_headers):
        response = client.post("/api/v1/chat", json={}, headers=auth_headers)
        assert response.status_code == 422

    def test_list_includes_last_message(self, client, auth_headers, user):
        conversation = _conversation(user.id, uuid.uuid4())
        conversation.last_message_content = "see you"
        conversation.last_message_at = datetime.now(UTC)
        conversation.last_message_sender_id = user.id
        with patch("src.modules.chat.router.ConversationService") as mock_svc_cls:
            mock_svc = AsyncMock()
            mock_svc.list_for_user.return_value = [conversation]
            mock_svc_cls.return_value = mock_svc

            response = client.get("/api/v1/chat", headers=auth_headers)

        assert response.status_code == 200
        [item] = response.json()
        assert item["lastMessage"]["content"] == "see you"
        assert item["lastMessage"]["sender"] == str(user.id)

    def test_unread_count(self, client, auth_headers):
        with patch("src.modules.chat.router.ConversationService") as mock_svc_cls:
            mock_svc = AsyncMock()
            mock_svc.unread_count_for_user.return_value = 7
            mock_svc_cls.return_value = mock_svc

            response = client.get("/api/v1/chat/unread-count", headers=auth_headers)

        assert response.json() == {"count": 7}

    def test_delete_is_soft(self, client, auth_headers, user):
        chat_id = uuid.uuid4()
        with patch("src.modules.chat.router.ConversationService") as mock_svc_cls:
            mock_svc = AsyncMock()
            mock_svc_cls.return_value = mock_svc

            response = client.delete(f"/api/v1/chat/{chat_id}", headers=auth_headers)

        assert response.status_code == 204
        mock_svc.soft_delete.assert_awaited_once_with(chat_id, user.id)


class TestMessages:
    def test_list_messages(self, client, auth_headers, user):
        chat_id = uuid.uuid4()
        messages = [_message(chat_id, user.id, f"m{n}", n) for n in range(1, 6)]
        with patch("src.modules.chat.router.ConversationService") as mock_svc_cls:
            mock_svc = AsyncMock()
            mock_svc.list_messages.return_value = (messages, 15, 2)
            mock_svc_cls.return_value = mock_svc

            response = client.get(
                f"/api/v1/chat/{chat_id}/messages?page=2&limit=10", headers=auth_headers
            )

        assert response.status_code == 200
        body = response.json()
        assert [m["content"] for m in body["messages"]] == ["m1", "m2", "m3", "m4", "m5"]
        assert (body["total"], body["page"], body["pages"]) == (15, 2, 2)
        mock_svc.list_messages.assert_awaited_once_with(chat_id, user.id, page=2, page_size=10)

    def test_page_must_be_positive(self, client, auth_headers):
        response = client.get(f"/api/v1/chat/{uuid.uuid4()}/messages?page=0", headers=auth_headers)
        assert response.status_code == 422

    def test_send_message(self, client, auth_headers, user):
        chat_id = uuid.uuid4()
        with patch("src.modules.chat.router.ConversationService") as mock_svc_cls:
            mock_svc = AsyncMock()
            mock_svc.append_message.return_value = _message(chat_id, user.id, "hello", 42)
            mock_svc_cls.return_value = mock_svc

            response = client.post(
                f"/api/v1/chat/{chat_id}/messages", json={"content": "hello"}, headers=auth_headers
            )

        assert response.status_code == 201
        body = response.json()
        assert body["id"] == 42
        assert body["chatId"] == str(chat_id)
        assert body["read"] is False
        assert body["readAt"] is None
        mock_svc.append_message.assert_awaited_once_with(chat_id, user.id, "hello")

    def test_send_to_unknown_chat_is_not_found(self, client, auth_headers):
        with patch("src.modules.chat.router.ConversationService") as mock_svc_cls:
            mock_svc = AsyncMock()
            mock_svc.append_message.side_effect = NotFoundException("Chat not found")
            mock_svc_cls.return_value = mock_svc

            response = client.post(
                f"/api/v1/chat/{uuid.uuid4()}/messages", json={"content": "hi"}, headers=auth_headers
            )

        assert response.status_code == 404
        assert response.json()["error"]["message"] == "Chat not found"

    def test_send_empty_message_is_rejected(self, client, auth_headers):
        with patch("src.modules.chat.router.ConversationService") as mock_svc_cls:
            mock_svc = AsyncMock()
            mock_svc.append_message.side_effect = ValidationException("Message content is required")
            mock_svc_cls.return_value = mock_svc

            response = client.post(
                f"/api/v1/chat/{uuid.uuid4()}/messages", json={"content": " "}, headers=auth_headers
            )

        assert response.status_code == 422

    def test_mark_read(self, client, auth_headers, user):
        chat_id = uuid.uuid4()
        with patch("src.modules.chat.router.ConversationService") as mock_svc_cls:
            mock_svc = AsyncMock()
            mock_svc.mark_read.return_value = 3
            mock_svc_cls.return_value = mock_svc

            response = client.put(f"/api/v1/chat/{chat_id}/read", headers=auth_headers)

        assert response.json() == {"updated": 3}
        mock_svc.mark_read.assert_awaited_once_with(chat_id, user.id)
