"""
Database engine management for the persistence sink.

Only created when DATABASE_URL is configured; otherwise the server runs with
NullPersistenceSink and never touches SQLAlchemy at runtime.
"""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from ..config.models import DatabaseConfig
from ..exceptions import ConfigurationError
from ..structured_logging.enhanced_logging_config import get_logger
from .models import Base

logger = get_logger(__name__)


def to_async_url(database_url: str) -> str:
    """Rewrite postgresql:// URLs to use the asyncpg driver."""
    if database_url.startswith("postgresql+asyncpg"):
        return database_url
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return database_url


class DatabaseManager:
    """
    Owns the async engine and session maker.

    The engine is created lazily on first use so constructing the manager
    never opens a connection.
    """

    def __init__(self, config: DatabaseConfig):
        if not config.url:
            raise ConfigurationError("Database URL is not configured", config_key="DATABASE_URL")
        self.config = config
        self.database_url = to_async_url(config.url)
        self.engine: AsyncEngine | None = None
        self.session_maker: async_sessionmaker[AsyncSession] | None = None

    def _initialize_database(self) -> None:
        pool_kwargs: dict[str, Any] = {}
        if "test" in self.database_url:
            pool_kwargs["poolclass"] = NullPool
        else:
            pool_kwargs.update(
                {
                    "pool_size": self.config.pool_size,
                    "max_overflow": self.config.max_overflow,
                    "pool_timeout": self.config.pool_timeout,
                }
            )

        self.engine = create_async_engine(self.database_url, echo=False, pool_pre_ping=True, **pool_kwargs)
        self.session_maker = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        logger.info("Database engine created", pool_type="NullPool" if "test" in self.database_url else "QueuePool")

    def get_engine(self) -> AsyncEngine:
        if self.engine is None:
            self._initialize_database()
        assert self.engine is not None, "Database engine not initialized"
        return self.engine

    def get_session_maker(self) -> async_sessionmaker[AsyncSession]:
        if self.session_maker is None:
            self._initialize_database()
        assert self.session_maker is not None, "Session maker not initialized"
        return self.session_maker

    async def create_tables(self) -> None:
        """Create the chat tables if they do not exist."""
        async with self.get_engine().begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables ensured", tables=sorted(Base.metadata.tables))

    async def close(self) -> None:
        """Dispose of the engine and its pooled connections."""
        if self.engine is not None:
            await self.engine.dispose()
            logger.info("Database connections closed")
        self.engine = None
        self.session_maker = None
