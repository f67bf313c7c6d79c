"""Async engine and session factory."""

import logging
from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from medislot.core.config import settings
from medislot.core.errors import SchedulingError, TransientError

logger = logging.getLogger(__name__)


def enable_sqlite_write_locking(engine: AsyncEngine) -> None:
    """Make every SQLite transaction start with BEGIN IMMEDIATE.

    pysqlite defers BEGIN until the first write, so two bookings could both
    read the same reservation count before either writes. Taking the write
    lock up front serializes booking transactions the way a row lock does
    on PostgreSQL.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(database_url: str, **kwargs) -> AsyncEngine:
    """Create an async engine, applying SQLite locking where needed."""
    if not database_url.startswith("sqlite"):
        kwargs.setdefault("pool_pre_ping", True)
        kwargs.setdefault("pool_size", settings.database_pool_size)

    engine = create_async_engine(database_url, echo=False, **kwargs)

    if database_url.startswith("sqlite"):
        enable_sqlite_write_locking(engine)

    return engine


def build_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


engine = build_engine(settings.database_url)
AsyncSessionLocal = build_sessionmaker(engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield a request-scoped session.

    Services commit their own units of work. Anything left uncommitted when
    the request ends (including a disconnected client) is rolled back when
    the session closes.
    """
    async with AsyncSessionLocal() as session:
        yield session


@asynccontextmanager
async def unit_of_work(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Commit the enclosed work as one transaction.

    Domain errors roll back and propagate unchanged. Database failures
    (lock timeouts, serialization failures, lost connections) roll back
    and surface as ``TransientError`` so callers know the whole attempt
    can be retried.
    """
    try:
        yield session
        await session.commit()
    except SchedulingError:
        await session.rollback()
        raise
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.warning(f"Transaction rolled back: {exc.__class__.__name__}: {exc}")
        raise TransientError("Persistence failure, retry the request") from exc
