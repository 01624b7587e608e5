"""Database connection and session management."""

from __future__ import annotations

import logging
import os
import time
from typing import Any

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from hess.core.config import get_settings
from hess.core.structured_logging import log_json

settings = get_settings()
logger = logging.getLogger(__name__)


def normalize_database_url(database_url: str) -> str:
    """Map plain driver URLs onto their async drivers."""
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if database_url.startswith("sqlite://"):
        return database_url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return database_url


def get_engine_options(database_url: str) -> dict[str, Any]:
    """Engine keyword arguments for the configured backend."""
    if "sqlite" in database_url:
        return {
            "echo": False,
            "poolclass": NullPool,
            "connect_args": {"check_same_thread": False},
        }
    return {
        "echo": False,
        "poolclass": NullPool if "test" in database_url else None,
        "pool_pre_ping": True,
    }


def configure_sqlite(sync_engine: Engine) -> None:
    """Enable foreign keys and working SAVEPOINTs on pysqlite-style drivers.

    The sqlite3 module opens transactions lazily and swallows SAVEPOINT
    semantics; the driver is put into autocommit mode and BEGIN is emitted
    explicitly instead.
    """

    @event.listens_for(sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(sync_engine, "begin")
    def _on_begin(conn) -> None:
        conn.exec_driver_sql("BEGIN")


_database_url = normalize_database_url(settings.database_url)

engine = create_async_engine(_database_url, **get_engine_options(_database_url))

if engine.dialect.name == "sqlite":
    configure_sqlite(engine.sync_engine)

_slow_query_threshold_ms = float(os.getenv("SLOW_QUERY_MS", "0") or "0")
if _slow_query_threshold_ms > 0:

    @event.listens_for(engine.sync_engine, "before_cursor_execute")
    def _before_cursor_execute(
        conn, cursor, statement, parameters, context, executemany
    ) -> None:
        context._query_start_time = time.perf_counter()

    @event.listens_for(engine.sync_engine, "after_cursor_execute")
    def _after_cursor_execute(
        conn, cursor, statement, parameters, context, executemany
    ) -> None:
        start = getattr(context, "_query_start_time", None)
        if start is None:
            return

        duration_ms = (time.perf_counter() - start) * 1000
        if duration_ms < _slow_query_threshold_ms:
            return

        max_len = 2000
        stmt = str(statement)
        if len(stmt) > max_len:
            stmt = stmt[: max_len - 3] + "..."

        log_json(
            logger,
            logging.WARNING,
            "slow_query",
            duration_ms=round(duration_ms, 2),
            statement=stmt,
        )

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_db() -> AsyncSession:
    """Get database session dependency.

    The whole request runs in one transaction: it is committed when the
    handler returns and rolled back when it raises.

    Yields:
        AsyncSession: Database session
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
