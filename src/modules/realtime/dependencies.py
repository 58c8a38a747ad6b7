"""FastAPI dependencies that hand out the process-wide delivery bridge."""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from starlette.requests import HTTPConnection

from src.database.engine import async_session
from src.modules.realtime.delivery import DeliveryBridge


def get_delivery(connection: HTTPConnection) -> DeliveryBridge:
    """The bridge created in the app lifespan. Works for HTTP and websocket routes."""
    return connection.app.state.delivery


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory for long-lived websocket handlers, which open short sessions per frame."""
    return async_session
