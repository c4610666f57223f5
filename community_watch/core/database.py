"""
Database engine and sessions for Community Watch

Reports, forward history, administrators and email groups all live in one
relational store. SQLite (aiosqlite) is the default for single-host
deployments; a ``postgresql://`` DATABASE_URL switches to asyncpg.

Forward history is written with plain INSERTs, so the only locking concern
is SQLite's single writer: connections wait up to SQLITE_BUSY_TIMEOUT
seconds for the write lock instead of failing.
"""
from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator, Optional

from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker, AsyncEngine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool

from community_watch.core.config import settings

SQLITE_BUSY_TIMEOUT = 30

# Widest integer key the drivers accept (signed 64-bit); larger ids cannot match a row
MAX_ROW_ID = 2**63 - 1

Base = declarative_base()

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def get_database_url() -> str:
    """DATABASE_URL with the async driver filled in for bare postgres URLs"""
    db_url = settings.DATABASE_URL
    if db_url.startswith("postgresql://"):
        db_url = db_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return db_url


def is_sqlite(db_url: str) -> bool:
    return db_url.startswith("sqlite")


def is_storable_id(value: int) -> bool:
    """False for ids no row can have, which the driver would reject with OverflowError"""
    return 0 < value <= MAX_ROW_ID


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def get_engine() -> AsyncEngine:
    """
    Create the engine on first use.

    - SQLite: one connection per checkout (NullPool) with a busy timeout,
      foreign keys enforced.
    - PostgreSQL: the default async pool with pre-ping.
    """
    global _engine
    if _engine is None:
        db_url = get_database_url()

        if is_sqlite(db_url):
            _engine = create_async_engine(
                db_url,
                echo=settings.DB_ECHO,
                connect_args={"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT},
                poolclass=NullPool,
            )
            event.listen(_engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        else:
            _engine = create_async_engine(
                db_url,
                echo=settings.DB_ECHO,
                pool_pre_ping=True,
            )
    return _engine


def get_session_local() -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the engine; objects stay usable after commit"""
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    return _session_factory


def AsyncSessionLocal() -> AsyncSession:
    return get_session_local()()


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """Session for code outside a request (startup, scripts); rolls back on error"""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped session.

    Services commit their own writes; anything still pending when the route
    returns is committed here, and everything is rolled back on error.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            if session.new or session.dirty or session.deleted:
                await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Create any missing tables"""
    import community_watch.models  # noqa: F401  register mappers on Base.metadata

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Dispose the engine; the next get_engine() call builds a new one"""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None
