"""
Engine, session factory and declarative base.

The connection string is never logged and SQL echo follows
settings.sqlalchemy_echo, which is always off in production.
"""

import logging
import time
from typing import AsyncIterator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from app.config import settings

logger = logging.getLogger(__name__)

SLOW_QUERY_THRESHOLD_MS = 500
SLOW_QUERY_PREVIEW_CHARS = 200


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        # aiosqlite has no pool tuning; wait on the file lock instead of failing
        return {"connect_args": {"timeout": 30}}
    return {
        "pool_size": 20,
        "max_overflow": 10,  # 30 connections at peak
        "pool_recycle": 3600,
        "pool_pre_ping": True,
    }


engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.sqlalchemy_echo,
    future=True,
    **_engine_options(settings.DATABASE_URL),
)


def _start_timer(conn, cursor, statement, parameters, context, executemany):
    conn.info["query_started"] = time.monotonic()


def _report_if_slow(conn, cursor, statement, parameters, context, executemany):
    started = conn.info.pop("query_started", None)
    if started is None:
        return
    elapsed_ms = (time.monotonic() - started) * 1000
    if elapsed_ms < SLOW_QUERY_THRESHOLD_MS:
        return
    preview = statement if len(statement) <= SLOW_QUERY_PREVIEW_CHARS else statement[:SLOW_QUERY_PREVIEW_CHARS] + "..."
    logger.warning(f"Slow query ({elapsed_ms:.0f}ms, {len(parameters) if parameters else 0} params): {preview}")


def enable_slow_query_logging(target: AsyncEngine) -> None:
    """Warn about statements slower than SLOW_QUERY_THRESHOLD_MS."""
    event.listen(target.sync_engine, "before_cursor_execute", _start_timer)
    event.listen(target.sync_engine, "after_cursor_execute", _report_if_slow)
    logger.info(f"Slow query logging enabled (threshold: {SLOW_QUERY_THRESHOLD_MS}ms)")


enable_slow_query_logging(engine)

async_session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


class Base(DeclarativeBase):
    pass


async def get_db() -> AsyncIterator[AsyncSession]:
    """Request-scoped session for reads and simple writes.

    Routes commit explicitly; this only closes the session.
    """
    async with async_session_maker() as session:
        yield session


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Factory for services that open one session per unit of work."""
    return async_session_maker


async def init_db() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
