"""SQLAlchemy adapter – SqlAlchemySessionFactory."""
from __future__ import annotations

from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from mp_eventstore.observability.logging import get_logger

log = get_logger(__name__)

# Seconds a SQLite connection waits for the database lock before failing.
SQLITE_LOCK_TIMEOUT = 30.0


def _use_immediate_transactions(engine: AsyncEngine) -> None:
    """Make every SQLite transaction start with ``BEGIN IMMEDIATE``.

    pysqlite/aiosqlite otherwise defer ``BEGIN`` and start transactions as
    readers; two writers then deadlock on the lock upgrade instead of one
    waiting for the other and hitting the unique constraint.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection: Any, connection_record: Any) -> None:  # noqa: ARG001
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


class SqlAlchemySessionFactory:
    """Creates async SQLAlchemy sessions from an engine URL (or an existing engine)."""

    def __init__(
        self,
        database_url: str | None = None,
        *,
        engine: AsyncEngine | None = None,
        **engine_kwargs: Any,
    ) -> None:
        if engine is None:
            if database_url is None:
                raise ValueError("Either database_url or engine is required")
            if database_url.startswith("sqlite"):
                connect_args = engine_kwargs.setdefault("connect_args", {})
                connect_args.setdefault("timeout", SQLITE_LOCK_TIMEOUT)
            engine = create_async_engine(database_url, **engine_kwargs)
        self._engine = engine
        if engine.dialect.name == "sqlite":
            _use_immediate_transactions(engine)
        self._session_factory = async_sessionmaker(self._engine, class_=AsyncSession, expire_on_commit=False)
        log.debug("session_factory.created", dialect=engine.dialect.name)

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    @property
    def dialect_name(self) -> str:
        return self._engine.dialect.name

    def __call__(self) -> AsyncSession:
        return self._session_factory()

    async def dispose(self) -> None:
        await self._engine.dispose()


__all__ = ["SQLITE_LOCK_TIMEOUT", "SqlAlchemySessionFactory"]
