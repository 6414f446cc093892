"""SQLAlchemy adapter – SqlAlchemyTokenStore."""
from __future__ import annotations

from typing import Callable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mp_eventstore.adapters.sqlalchemy.errors import storage_errors
from mp_eventstore.adapters.sqlalchemy.schema import tracking_tokens
from mp_eventstore.adapters.sqlalchemy.uow import SqlAlchemyUnitOfWork
from mp_eventstore.adapters.sqlalchemy.upsert import upsert
from mp_eventstore.application.event_sourcing.token_store import TokenStore
from mp_eventstore.application.event_sourcing.tracking import GlobalSequenceToken
from mp_eventstore.kernel.time import Clock, SystemClock


class SqlAlchemyTokenStore(TokenStore):
    """Tracking processor positions in the ``tracking_tokens`` table."""

    def __init__(self, session_factory: Callable[[], AsyncSession], clock: Clock | None = None) -> None:
        self._session_factory = session_factory
        self._clock: Clock = clock or SystemClock()

    async def load(self, processor_name: str) -> GlobalSequenceToken | None:
        stmt = select(tracking_tokens.c.token).where(tracking_tokens.c.processor_name == processor_name)
        async with storage_errors("load_token"), SqlAlchemyUnitOfWork(self._session_factory) as uow:
            raw = (await uow.session.execute(stmt)).scalar()
        return None if raw is None else GlobalSequenceToken.from_json(raw)

    async def store(self, processor_name: str, token: GlobalSequenceToken) -> None:
        values = {
            "processor_name": processor_name,
            "token": token.to_json(),
            "updated_at": self._clock.now(),
        }
        async with storage_errors("store_token"), SqlAlchemyUnitOfWork(self._session_factory) as uow:
            await upsert(
                uow.session,
                tracking_tokens,
                values,
                ["processor_name"],
                lambda excluded: {"token": excluded.token, "updated_at": excluded.updated_at},
            )


__all__ = ["SqlAlchemyTokenStore"]
