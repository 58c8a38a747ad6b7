"""User directory lookups used to validate participants and stamp names."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.user import User


@dataclass(frozen=True)
class DirectoryUser:
    id: uuid.UUID
    name: str


class UserDirectory(Protocol):
    async def resolve(self, user_id: uuid.UUID) -> DirectoryUser | None: ...


class SqlUserDirectory:
    """Resolves active accounts from the ``users`` table."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def resolve(self, user_id: uuid.UUID) -> DirectoryUser | None:
        result = await self.db.execute(
            select(User.id, User.name).where(User.id == user_id, User.is_active.is_(True))
        )
        row = result.one_or_none()
        if row is None:
            return None
        return DirectoryUser(id=row.id, name=row.name)
