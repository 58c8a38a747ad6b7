"""Unit tests for bearer-token verification."""

import uuid
from datetime import UTC, datetime, timedelta

import pytest
from jose import jwt

from src.config import settings
from src.exceptions import UnauthorizedException
from src.modules.auth import authenticate_token, create_access_token


class TestAuthenticateToken:
    def test_round_trip_claims(self):
        user_id = uuid.uuid4()

        user = authenticate_token(create_access_token(user_id, "Alice", "admin"))

        assert user.id == user_id
        assert user.name == "Alice"
        assert user.is_admin is True

    def test_default_role_is_student(self):
        user = authenticate_token(create_access_token(uuid.uuid4(), "Bob"))
        assert user.role == "student"
        assert user.is_admin is False

    def test_missing_token(self):
        with pytest.raises(UnauthorizedException, match="Authentication required"):
            authenticate_token(None)

    def test_expired_token(self):
        token = create_access_token(uuid.uuid4(), "Alice", expires_minutes=-1)
        with pytest.raises(UnauthorizedException, match="Invalid or expired token"):
            authenticate_token(token)

    def test_wrong_signature(self):
        token = jwt.encode(
            {"sub": str(uuid.uuid4()), "name": "Eve", "exp": datetime.now(UTC) + timedelta(minutes=5)},
            "not-the-secret",
            algorithm=settings.jwt_algorithm,
        )
        with pytest.raises(UnauthorizedException):
            authenticate_token(token)

    def test_missing_name_claim(self):
        token = jwt.encode(
            {"sub": str(uuid.uuid4()), "exp": datetime.now(UTC) + timedelta(minutes=5)},
            settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
        )
        with pytest.raises(UnauthorizedException, match="missing required claims"):
            authenticate_token(token)

    def test_non_uuid_subject(self):
        token = jwt.encode(
            {"sub": "42", "name": "Alice", "exp": datetime.now(UTC) + timedelta(minutes=5)},
            settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
        )
        with pytest.raises(UnauthorizedException):
            authenticate_token(token)
