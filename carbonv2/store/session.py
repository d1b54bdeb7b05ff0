"""
CarbonV2 — Store connection management

Engine / session factory construction and the bounded-duration wrapper
every store round trip goes through.
"""

import asyncio
import logging
from typing import Awaitable, TypeVar

from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from ..config import Settings
from ..engine.errors import StoreError
from .models import Base

logger = logging.getLogger("carbonv2.store")

T = TypeVar("T")


def create_engine_from_settings(settings: Settings) -> AsyncEngine:
    """Create the async engine; pool sizing only applies to PostgreSQL."""
    url = settings.database_url
    if url.startswith("sqlite"):
        engine = create_async_engine(url)
        _enable_sqlite_savepoints(engine)
        return engine

    return create_async_engine(
        url,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_pre_ping=True,
        pool_recycle=300,
    )


def _enable_sqlite_savepoints(engine: AsyncEngine) -> None:
    # pysqlite's implicit BEGIN breaks SAVEPOINT; emit our own.
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def make_session_factory(engine: AsyncEngine) -> sessionmaker:
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def create_tables(engine: AsyncEngine) -> None:
    """CREATE TABLE IF NOT EXISTS for every model."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def store_call(operation: Awaitable[T], timeout: float, what: str) -> T:
    """
    Await a store operation under a timeout.

    Timeouts and SQLAlchemy failures surface as StoreError with a generic
    message; query text stays in the log.  Cancellation propagates.
    """
    try:
        return await asyncio.wait_for(operation, timeout=timeout)
    except asyncio.TimeoutError:
        logger.error("Store timeout after %.1fs — %s", timeout, what)
        raise StoreError(f"{what}: store timeout") from None
    except SQLAlchemyError:
        logger.exception("Store failure — %s", what)
        raise StoreError(f"{what}: store failure") from None
