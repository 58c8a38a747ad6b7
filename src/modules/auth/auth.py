"""JWT authentication for HTTP requests and realtime handshakes.

Bearer tokens are issued by the platform's auth service. This module only
verifies signature and expiry and turns the claims into an ``AuthenticatedUser``.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from src.config import settings
from src.exceptions import UnauthorizedException
from src.models.enums import UserRole

logger = logging.getLogger(__name__)

# FastAPI security scheme: extracts Bearer token from Authorization header
_bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthenticatedUser:
    """Represents the authenticated user extracted from a JWT token."""

    id: uuid.UUID
    name: str
    role: str = UserRole.STUDENT.value

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value


def create_access_token(
    user_id: uuid.UUID,
    name: str,
    role: str = UserRole.STUDENT.value,
    expires_minutes: int | None = None,
) -> str:
    """Issue a signed token carrying the claims ``authenticate_token`` expects."""
    expire = datetime.now(UTC) + timedelta(
        minutes=expires_minutes if expires_minutes is not None else settings.jwt_expiry_minutes
    )
    payload = {
        "sub": str(user_id),
        "name": name,
        "role": role,
        "exp": expire,
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def _decode_token(token: str) -> dict:
    """Decode and validate a JWT token. Raises UnauthorizedException on failure."""
    try:
        return jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as exc:
        logger.warning("JWT validation failed: %s", exc)
        raise UnauthorizedException("Invalid or expired token") from exc


def authenticate_token(token: str | None) -> AuthenticatedUser:
    """Verify a raw bearer token and return the identity it carries."""
    if not token:
        raise UnauthorizedException("Authentication required")

    payload = _decode_token(token)
    try:
        return AuthenticatedUser(
            id=uuid.UUID(payload["sub"]),
            name=payload["name"],
            role=payload.get("role", UserRole.STUDENT.value),
        )
    except (KeyError, ValueError, TypeError) as exc:
        raise UnauthorizedException("Token is missing required claims") from exc


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
) -> AuthenticatedUser:
    """FastAPI dependency that extracts and validates the current user from JWT."""
    if credentials is None:
        raise UnauthorizedException("Authentication required")

    user = authenticate_token(credentials.credentials)
    request.state.user = user
    return user
