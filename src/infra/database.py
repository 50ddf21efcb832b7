"""
Database connection with SQLAlchemy ORM and transactional units of work
"""

import asyncio
from contextlib import nullcontext
from typing import Any, AsyncContextManager, Awaitable, Callable, Dict, Optional, TypeVar
from functools import lru_cache
from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker, AsyncEngine
from sqlalchemy.pool import StaticPool

from src.infra.config.settings import get_settings
from src.infra.models import Base
from src.core.logger.logger import get_logger

logger = get_logger(__name__)
settings = get_settings()

T = TypeVar("T")

# serialization_failure, deadlock_detected
RETRYABLE_SQLSTATES = {"40001", "40P01"}


def _is_retryable(error: Exception) -> bool:
    """Conflicting concurrent writes that a fresh attempt can resolve"""
    if isinstance(error, IntegrityError):
        return True
    if isinstance(error, DBAPIError):
        orig = getattr(error, "orig", None)
        sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
        return sqlstate in RETRYABLE_SQLSTATES
    return False


class DatabaseManager:
    """SQLAlchemy async database manager"""

    def __init__(self, database_url: Optional[str] = None):
        self.database_url = database_url or settings.DATABASE_URL
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker] = None
        # SQLite runs every session on one shared connection
        self._sqlite_lock: Optional[asyncio.Lock] = (
            asyncio.Lock() if self.database_url.startswith("sqlite") else None
        )

    def _engine_options(self) -> Dict[str, Any]:
        """Pool options per backend"""
        if self.database_url.startswith("sqlite"):
            # Single shared connection so in-memory databases survive across sessions
            return {
                "poolclass": StaticPool,
                "connect_args": {"check_same_thread": False},
            }
        return {
            "pool_pre_ping": True,
            "pool_size": settings.DB_POOL_SIZE,
            "max_overflow": settings.DB_MAX_OVERFLOW,
            "pool_recycle": 3600,
        }

    async def connect(self) -> AsyncEngine:
        """Initialize database engine and session factory"""
        if self._engine is not None:
            return self._engine

        try:
            self._engine = create_async_engine(
                self.database_url,
                echo=settings.DB_LOGGING_ENABLED,
                **self._engine_options()
            )

            self._session_factory = async_sessionmaker(
                self._engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False
            )

            # Test connection
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))

            logger.info(
                "Connected to database successfully",
                extra={"dialect": self._engine.dialect.name}
            )

            return self._engine

        except Exception as e:
            self._engine = None
            self._session_factory = None
            logger.error(
                "Failed to connect to database",
                extra={"error": str(e)}
            )
            raise

    async def create_tables(self) -> None:
        """Create all tables that do not exist yet"""
        engine = await self.connect()
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables ensured", extra={"tables": sorted(Base.metadata.tables)})

    async def close(self):
        """Close database engine"""
        if self._engine is not None:
            try:
                await self._engine.dispose()
                logger.info("Database engine closed")
            except Exception as e:
                logger.error(f"Error closing database engine: {e}")
            finally:
                self._engine = None
                self._session_factory = None

    async def ping(self) -> bool:
        """Run a trivial query against the database"""
        engine = await self.connect()
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True

    def get_engine(self) -> Optional[AsyncEngine]:
        """Get the current engine"""
        return self._engine

    def get_session_factory(self) -> Optional[async_sessionmaker]:
        """Get the session factory"""
        return self._session_factory

    def _transaction_guard(self) -> AsyncContextManager:
        """Exclusive access to the connection for one transaction (SQLite only)"""
        if self._sqlite_lock is not None:
            return self._sqlite_lock
        return nullcontext()

    async def run_in_transaction(
        self,
        work: Callable[[AsyncSession], Awaitable[T]],
        retries: Optional[int] = None
    ) -> T:
        """
        Run `work` as one atomic unit: commit when it returns, roll back when it raises.

        Conflicting concurrent writes (unique index races, serialization failures,
        deadlocks) roll the whole unit back and run it again from scratch, up to
        `retries` attempts in total. On SQLite, where all sessions share one
        connection, transactions run one at a time.

        Args:
            work: Coroutine function receiving the session bound to the transaction
            retries: Total attempts (defaults to DB_TRANSACTION_RETRIES)

        Returns:
            Whatever `work` returns
        """
        if self._session_factory is None:
            await self.connect()

        max_attempts = max(1, retries or settings.DB_TRANSACTION_RETRIES)
        for attempt in range(1, max_attempts + 1):
            try:
                async with self._transaction_guard():
                    async with self._session_factory() as session:
                        async with session.begin():
                            return await work(session)
            except DBAPIError as e:
                if not _is_retryable(e) or attempt == max_attempts:
                    raise
                logger.warning(
                    "Transaction conflict, retrying",
                    extra={
                        "attempt": attempt,
                        "max_attempts": max_attempts,
                        "error_type": type(e).__name__
                    }
                )

        raise RuntimeError("unreachable")


@lru_cache()
def get_database_manager() -> DatabaseManager:
    """Get the global database manager instance (cached)"""
    return DatabaseManager()
