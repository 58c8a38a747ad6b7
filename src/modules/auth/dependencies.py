"""Authorization dependencies layered on top of ``get_current_user``."""

from fastapi import Depends

from src.exceptions import ForbiddenException
from src.modules.auth.auth import AuthenticatedUser, get_current_user


async def require_admin(
    user: AuthenticatedUser = Depends(get_current_user),
) -> AuthenticatedUser:
    """Dependency that only lets admin-role callers through."""
    if not user.is_admin:
        raise ForbiddenException("Admin role required")
    return user
