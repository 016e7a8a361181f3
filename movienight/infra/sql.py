import asyncio
from contextlib import asynccontextmanager
from typing import AsyncContextManager, Callable, Optional

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    create_async_engine, async_sessionmaker, AsyncSession
)

from .. import config

Gated = Callable[[], AsyncContextManager[None]]


def normalize_async_url(url: str) -> str:
    if url.startswith("sqlite://"):
        return url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+asyncpg://", 1)
    return url


def backend_name(url: str) -> str:
    url = normalize_async_url(url)
    if url.startswith("sqlite"):
        return "SQLite"
    if url.startswith("postgresql"):
        return "PostgreSQL"
    return url.split(":", 1)[0]


# DB gate: caps the number of store operations in flight per process
@asynccontextmanager
async def _gated(sem: asyncio.Semaphore):
    await sem.acquire()
    try:
        yield
    finally:
        sem.release()


def make_async_engine(
    database_url: str,
    *,
    pool_size: int = config.DB_POOL_SIZE,
    max_overflow: int = config.DB_MAX_OVERFLOW,
    pool_timeout: int = config.DB_POOL_TIMEOUT,
    gate_limit: Optional[int] = config.DB_GATE_LIMIT,
):
    db_url = normalize_async_url(database_url)
    kw = dict(pool_pre_ping=True)

    is_postgres = db_url.startswith("postgresql+asyncpg://")
    if is_postgres:
        kw.update(
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_timeout=pool_timeout,
        )

    engine = create_async_engine(db_url, **kw)

    if db_url.startswith("sqlite+aiosqlite://"):
        @event.listens_for(engine.sync_engine, "connect")
        def _sqlite_pragmas(dbapi_connection, _):
            cur = dbapi_connection.cursor()
            cur.execute("PRAGMA journal_mode=WAL;")
            cur.execute("PRAGMA busy_timeout=5000;")
            cur.execute("PRAGMA synchronous=NORMAL;")
            cur.execute("PRAGMA foreign_keys=ON;")
            cur.close()

    SessionAsync = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    if gate_limit is None:
        gate_limit = pool_size if is_postgres else 10
    db_gate = asyncio.Semaphore(max(1, gate_limit))

    def gated():
        return _gated(db_gate)

    return engine, SessionAsync, db_gate, gated
