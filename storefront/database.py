"""
Database Connection Module
Holds the async SQLAlchemy engine behind the SQL document store.

The engine is owned by a DocumentDatabase instance created at application
startup and disposed at shutdown; nothing connects at import time.
"""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase


# Base class for all our models
class Base(DeclarativeBase):
    pass


class DocumentDatabase:
    """Async engine and session factory for one database URL."""

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        engine_kwargs = {"echo": echo}
        if not url.startswith("sqlite"):
            engine_kwargs.update(
                pool_size=5,  # Connection pool size
                max_overflow=10,  # Extra connections when pool is full
                pool_pre_ping=True,
            )
        self.engine: AsyncEngine = create_async_engine(url, **engine_kwargs)

        # Session factory - creates new database sessions
        self.session_maker = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,  # Objects remain accessible after commit
        )
        self._initialized = False

    def session(self) -> AsyncSession:
        return self.session_maker()

    async def init(self) -> None:
        """
        Create all tables in database.
        Runs once; later calls are no-ops.
        """
        if self._initialized:
            return
        # Register models on Base.metadata
        from storefront import models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        self._initialized = True

    async def dispose(self) -> None:
        await self.engine.dispose()
