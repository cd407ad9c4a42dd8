"""
SurgeCast Database

Async database access based on SQLAlchemy 2.0
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from .config import DatabaseSettings
from .logging import get_logger

logger = get_logger(__name__)


class Base(DeclarativeBase):
    """Declarative base for every model"""
    pass


def _engine_options(settings: DatabaseSettings) -> Dict[str, Any]:
    """Pool options for the configured backend"""
    if settings.url.startswith("sqlite"):
        options: Dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in settings.url:
            # One shared connection, otherwise every session sees an empty database
            options["poolclass"] = StaticPool
        return options

    return {
        "pool_size": settings.pool_size,
        "max_overflow": settings.max_overflow,
        "pool_pre_ping": True,  # test connections before use
        "pool_recycle": 3600,  # recycle hourly
    }


class Database:
    """Engine and session factory for one datastore"""

    def __init__(self, settings: DatabaseSettings):
        self.settings = settings
        self._engine: AsyncEngine = create_async_engine(
            settings.url,
            echo=settings.echo,
            **_engine_options(settings),
        )
        self._session_maker = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,  # returned objects stay readable
        )
        logger.info(f"Database engine created: {settings.url.split('@')[-1]}")

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """
        Open a session; commit on success, roll back on error

        Usage:
            async with database.session() as session:
                result = await session.execute(...)
        """
        async with self._session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def create_all(self) -> None:
        """
        Create all tables

        Production deployments should manage schema migrations separately.
        """
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created")

    async def dispose(self) -> None:
        """Release pooled connections"""
        await self._engine.dispose()
        logger.info("Database engine disposed")
