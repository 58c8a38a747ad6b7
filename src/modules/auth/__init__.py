"""Auth module — bearer-token verification shared by HTTP routes and websockets."""

from src.modules.auth.auth import (
    AuthenticatedUser,
    authenticate_token,
    create_access_token,
    get_current_user,
)
from src.modules.auth.dependencies import require_admin

__all__ = [
    "AuthenticatedUser",
    "authenticate_token",
    "create_access_token",
    "get_current_user",
    "require_admin",
]
