"""Shared pytest fixtures: in-memory SQLite storage, users, fake live connections."""

import uuid
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import src.models  # noqa: F401 - registers every table on Base.metadata
from src.database.base import Base
from src.models.enums import UserRole
from src.models.user import User
from src.modules.realtime.delivery import DeliveryBridge

# Use SQLite for lightweight in-process testing
TEST_DATABASE_URL = "sqlite+aiosqlite://"


class RecordingConnection:
    """Stands in for a websocket; remembers every frame sent to it."""

    def __init__(self, fail: bool = False) -> None:
        self.frames: list[dict] = []
        self.fail = fail

    async def send_json(self, data) -> None:
        if self.fail:
            raise RuntimeError("socket closed")
        self.frames.append(data)


def drain_frames(session) -> list[dict]:
    """Pop everything queued on a session that has no sender task running."""
    frames = []
    while not session.outbound.empty():
        frames.append(session.outbound.get_nowait())
    return frames


@pytest.fixture
def recording_connection():
    return RecordingConnection


@pytest.fixture
def drain():
    return drain_frames


@pytest_asyncio.fixture
async def db_engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def delivery() -> DeliveryBridge:
    return DeliveryBridge()


@pytest_asyncio.fixture
async def make_user(db_session):
    """Factory that inserts an active user and returns it."""

    async def _make(name: str = "Alice", role: str = UserRole.STUDENT.value, is_active: bool = True) -> User:
        user = User(
            email=f"{uuid.uuid4().hex[:12]}@edushare.test",
            name=name,
            role=role,
            is_active=is_active,
        )
        db_session.add(user)
        await db_session.commit()
        return user

    return _make
