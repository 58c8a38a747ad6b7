import logging
from collections.abc import AsyncGenerator

from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.engine import async_session
from src.exceptions import ServiceUnavailableException

logger = logging.getLogger(__name__)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency that yields a database session.

    Connectivity failures surface as ``ServiceUnavailableException`` so the
    API answers 503 and the client retries.
    """
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except (OperationalError, InterfaceError) as exc:
            await session.rollback()
            logger.error("Database unavailable: %s", exc)
            raise ServiceUnavailableException("Storage is temporarily unavailable") from exc
        except Exception:
            await session.rollback()
            raise
