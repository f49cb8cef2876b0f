"""Database engine and session management."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

if TYPE_CHECKING:
    from ghcrm.config import Settings


def _enable_sqlite_foreign_keys(dbapi_connection: Any, connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _is_sqlite_memory(database_url: str) -> bool:
    url = make_url(database_url)
    return url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:")


def create_engine(
    settings: Settings,
) -> tuple[
    AsyncEngine,
    async_sessionmaker[AsyncSession],
]:
    """Create async engine and session factory.

    The pool is bounded at ``database_pool_size`` connections with no
    overflow; callers wait up to ``database_pool_timeout`` seconds for one and
    connections are recycled after ``database_pool_recycle_seconds``. In-memory
    SQLite shares a single connection and gets no pool settings. SQLite has
    foreign keys switched on for every connection so that ``ON DELETE CASCADE``
    applies.

    Returns (engine, session_factory) tuple.
    """
    is_sqlite = make_url(settings.database_url).get_backend_name() == "sqlite"
    engine_kwargs: dict[str, Any] = {}
    if not _is_sqlite_memory(settings.database_url):
        engine_kwargs = {
            "pool_size": settings.database_pool_size,
            "max_overflow": 0,
            "pool_timeout": settings.database_pool_timeout,
            "pool_recycle": settings.database_pool_recycle_seconds,
            "pool_pre_ping": True,
        }

    engine = create_async_engine(
        settings.database_url,
        echo=settings.debug,
        **engine_kwargs,
    )
    if is_sqlite:
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    return engine, session_factory
