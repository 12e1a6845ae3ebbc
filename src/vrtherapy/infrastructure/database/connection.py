"""
Database Engine and Units of Work

PostgreSQL (asyncpg) in deployment, SQLite (aiosqlite) for local runs
and tests. Each unit of work is one AsyncSession that commits when the
block exits cleanly and rolls back otherwise; a telemetry record and
the Completed transition it triggers land together or not at all.

Connection URLs carry credentials and are never logged.
"""

from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Any, AsyncGenerator, Optional

from sqlalchemy import JSON, event, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from vrtherapy.config import get_settings
from vrtherapy.config.logging_config import get_logger

logger = get_logger(__name__)


# JSONB on PostgreSQL, plain JSON elsewhere
JSONType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Declarative base shared by the ORM models and Alembic."""


def _enable_sqlite_savepoints(engine: AsyncEngine) -> None:
    """
    Let SQLAlchemy own transaction boundaries on SQLite.

    The sqlite driver otherwise defers BEGIN, which breaks SAVEPOINT
    (used for unique-constraint inserts).
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn) -> None:
        conn.exec_driver_sql("BEGIN")


def engine_options(url: str) -> dict[str, Any]:
    """Engine keyword arguments for the dialect in url."""
    settings = get_settings()
    options: dict[str, Any] = {"echo": settings.debug}
    if url.startswith("sqlite"):
        if ":memory:" in url or url.rstrip("/").endswith("aiosqlite:"):
            # One shared connection, or every session sees an empty database
            options["poolclass"] = StaticPool
        options["connect_args"] = {"check_same_thread": False}
        return options

    options.update(
        pool_size=settings.database.pool_size,
        max_overflow=settings.database.max_overflow,
        pool_pre_ping=True,
        pool_recycle=3600,
    )
    return options


class DatabaseManager:
    """
    Owns the engine and hands out units of work.

    Usage:
        db = DatabaseManager()
        await db.initialize()
        async with db.session() as session:
            # use session
        await db.close()
    """

    def __init__(self, url: Optional[str] = None) -> None:
        self._url = url
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None
        self._initialized = False

    async def initialize(self) -> None:
        """Create the engine and session factory (idempotent)."""
        if self._initialized:
            logger.warning("Database already initialized")
            return

        url = self._url or get_settings().database.async_url
        self._engine = create_async_engine(url, **engine_options(url))
        if self._engine.dialect.name == "sqlite":
            _enable_sqlite_savepoints(self._engine)

        self._session_factory = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

        self._initialized = True
        logger.info("Database connection pool initialized", dialect=self._engine.dialect.name)

    async def create_schema(self) -> None:
        """Create all tables (development and tests; production uses Alembic)."""
        if not self._engine:
            raise RuntimeError("Database not initialized. Call initialize() first.")

        # Register ORM models on the metadata
        from vrtherapy.infrastructure.database import models  # noqa: F401

        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database schema created")

    async def close(self) -> None:
        """Dispose of the engine; the manager can be initialized again."""
        if self._engine:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            self._initialized = False
            logger.info("Database connections closed")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """One unit of work: commit on clean exit, rollback on error."""
        if not self._session_factory:
            raise RuntimeError("Database not initialized. Call initialize() first.")

        session = self._session_factory()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def health_check(self) -> bool:
        """Whether a trivial query succeeds (used by the readiness check)."""
        if not self._engine:
            return False

        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return False


@lru_cache()
def get_db_manager() -> DatabaseManager:
    """Process-wide manager configured from settings."""
    return DatabaseManager()


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped unit of work for FastAPI dependencies."""
    db = get_db_manager()
    async with db.session() as session:
        yield session
