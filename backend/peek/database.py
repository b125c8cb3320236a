"""Site check store.

SQLite at ``<DATA_PATH>/peek.db`` by default. Probes of one pass write
concurrently, so SQLite runs in WAL mode with a busy timeout; with
``DATABASE_URL`` pointing at PostgreSQL a pooled asyncpg engine is used.
"""
import logging
import os
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base

from .config import settings, get_database_url, is_postgresql

logger = logging.getLogger(__name__)

_is_postgres = is_postgresql()

if _is_postgres:
    # Sized above MAX_CONCURRENT_CHECKS so a full pass never waits on the pool
    engine = create_async_engine(
        get_database_url(),
        pool_size=10,
        max_overflow=20,
        pool_pre_ping=True,
        pool_recycle=3600,
    )
    logger.info("Site checks stored in PostgreSQL")
else:
    engine = create_async_engine(
        get_database_url(),
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        connect_args={"timeout": 30},
    )
    logger.info(f"Site checks stored in SQLite under {settings.data_path}")

    @event.listens_for(engine.sync_engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        """Per-connection pragmas for concurrent probe writers."""
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA busy_timeout=30000")
        cursor.execute("PRAGMA synchronous=NORMAL")
        # notification_log rows go with their site check
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

Base = declarative_base()


async def get_db() -> AsyncSession:
    """FastAPI dependency yielding a read session for the status API."""
    async with async_session() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db():
    """Create the site_checks and notification_log tables if missing.

    Connection errors propagate; the monitor cannot run without its store.
    """
    if not _is_postgres:
        os.makedirs(settings.data_path, exist_ok=True)

    from . import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db():
    await engine.dispose()
