"""Tests for the application factory: error envelope, request ids, storage outages."""

import uuid
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from src.app import create_app
from src.database.session import get_db
from src.modules.auth.auth import create_access_token
from src.modules.realtime.delivery import DeliveryBridge
from src.modules.realtime.dependencies import get_delivery


@pytest.fixture
def client():
    app = create_app()

    async def override_get_db():
        yield AsyncMock()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_delivery] = lambda: DeliveryBridge()
    return TestClient(app)


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {create_access_token(uuid.uuid4(), 'Alice')}"}


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}
        assert response.headers["X-Request-ID"]


class TestErrorEnvelope:
    def test_unauthorized_envelope_echoes_request_id(self, client):
        response = client.get("/api/v1/chat", headers={"X-Request-ID": "req-123"})

        assert response.status_code == 401
        assert response.json() == {
            "error": {
                "code": "UNAUTHORIZED",
                "message": "Authentication required",
                "details": [],
                "requestId": "req-123",
            }
        }
        assert response.headers["X-Request-ID"] == "req-123"

    def test_validation_envelope(self, client, auth_headers):
        response = client.post("/api/v1/chat", json={"participantId": "nope"}, headers=auth_headers)

        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["details"][0]["field"] == "body.participantId"

    def test_self_conversation_is_invalid_operation(self, client):
        user_id = uuid.uuid4()
        headers = {"Authorization": f"Bearer {create_access_token(user_id, 'Alice')}"}

        response = client.post("/api/v1/chat", json={"participantId": str(user_id)}, headers=headers)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_OPERATION"

    def test_storage_outage_is_service_unavailable(self, client, auth_headers):
        failure = OperationalError("SELECT 1", {}, Exception("connection refused"))
        with patch(
            "src.modules.chat.service.ConversationService.list_for_user",
            AsyncMock(side_effect=failure),
        ):
            response = client.get("/api/v1/chat", headers=auth_headers)

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "SERVICE_UNAVAILABLE"
