"""Database connection management for ProfileGuard."""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

import structlog
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from profileguard.config import DatabaseSettings, get_settings

logger = structlog.get_logger(__name__)


class DatabaseManager:
    """Async engine and session factory for the schema database."""

    def __init__(self, settings: Optional[DatabaseSettings] = None) -> None:
        self.settings = settings or get_settings().database
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None
        self._initialized = False

    def _engine_options(self) -> Dict[str, Any]:
        options: Dict[str, Any] = {"pool_pre_ping": True}
        if not self.settings.url.startswith("sqlite"):
            options.update(
                pool_size=self.settings.pool_size,
                max_overflow=self.settings.max_overflow,
                pool_timeout=self.settings.pool_timeout,
                pool_recycle=3600,  # Recycle connections after 1 hour
            )
        if self.settings.db_schema:
            options["execution_options"] = {
                "schema_translate_map": {None: self.settings.db_schema}
            }
        return options

    async def initialize(self) -> None:
        """Initialize the database engine and session factory."""
        if self._initialized:
            return

        logger.info("Initializing database connection")

        self._engine = create_async_engine(self.settings.url, **self._engine_options())
        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

        self._initialized = True
        logger.info("Database connection initialized successfully")

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get a session with automatic cleanup."""
        if not self._initialized:
            await self.initialize()

        assert self._session_factory is not None
        async with self._session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    async def close(self) -> None:
        """Close all database connections."""
        if not self._initialized:
            return

        logger.info("Closing database connections")

        if self._engine:
            await self._engine.dispose()

        self._initialized = False
        logger.info("Database connections closed")

    @property
    def engine(self) -> AsyncEngine:
        """Get the engine."""
        if not self._engine:
            raise RuntimeError("Database manager not initialized")
        return self._engine


# Global database manager instance
_db_manager: Optional[DatabaseManager] = None


def get_db_manager() -> DatabaseManager:
    """Get the global database manager instance."""
    global _db_manager
    if _db_manager is None:
        _db_manager = DatabaseManager()
    return _db_manager


@asynccontextmanager
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Get a database session from the global manager."""
    async with get_db_manager().get_session() as session:
        yield session


async def create_tables(db_manager: Optional[DatabaseManager] = None) -> None:
    """Create all database tables."""
    from profileguard.database.models import Base

    db_manager = db_manager or get_db_manager()
    await db_manager.initialize()

    async with db_manager.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info("Database tables created successfully")
