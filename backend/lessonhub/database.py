from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from .config import Settings
from .errors import UpstreamFailure

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


def _engine_options(settings: Settings) -> dict:
    if make_url(settings.database_url).get_backend_name() == "sqlite":
        return {}
    return {
        "pool_size": settings.database_pool_size,
        "max_overflow": settings.database_max_overflow,
        "pool_pre_ping": True,
        "pool_recycle": 3600,
    }


class DatabaseSessionManager:
    """Owns the async engine; every concurrent branch opens its own session."""

    def __init__(self, settings: Settings, engine: AsyncEngine | None = None) -> None:
        self.settings = settings
        self.engine = engine or create_async_engine(settings.database_url, **_engine_options(settings))
        self._session_factory = async_sessionmaker(self.engine, class_=AsyncSession, expire_on_commit=False)

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        session = self._session_factory()
        try:
            yield session
        except IntegrityError as exc:
            await session.rollback()
            logger.error("DB integrity error: %s", exc)
            raise UpstreamFailure("Integrity constraint violated", "commit") from exc
        except OperationalError as exc:
            await session.rollback()
            logger.error("DB operational error: %s", exc)
            raise UpstreamFailure("Connection or operational error", "execute") from exc
        except SQLAlchemyError as exc:
            await session.rollback()
            logger.error("SQLAlchemy error: %s", exc)
            raise UpstreamFailure("Database operation failed") from exc
        finally:
            await session.close()

    async def create_schema(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def ping(self) -> None:
        async with self.session() as db:
            await db.execute(text("SELECT 1"))

    async def dispose(self) -> None:
        await self.engine.dispose()


def get_session_manager(request: Request) -> DatabaseSessionManager:
    manager = getattr(request.app.state, "db", None)
    if manager is None:
        raise RuntimeError("Database not initialized")
    return manager
