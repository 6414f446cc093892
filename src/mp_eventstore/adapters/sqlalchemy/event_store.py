"""SQLAlchemy adapter – SqlAlchemyEventStore."""
from __future__ import annotations

import json
from typing import Any, Callable

from sqlalchemy import Row, func, insert, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mp_eventstore.adapters.sqlalchemy.errors import storage_errors, violated_constraint
from mp_eventstore.adapters.sqlalchemy.schema import domain_events
from mp_eventstore.adapters.sqlalchemy.session import SqlAlchemySessionFactory
from mp_eventstore.adapters.sqlalchemy.uow import SqlAlchemyUnitOfWork
from mp_eventstore.application.event_sourcing.errors import (
    DuplicateEventError,
    EventDeserializationError,
    EventStoreError,
    OptimisticConcurrencyError,
    StorageUnavailableError,
)
from mp_eventstore.application.event_sourcing.serialization import loads_object
from mp_eventstore.application.event_sourcing.store import EventStore, FetchedEvent
from mp_eventstore.application.event_sourcing.stored_event import StoredEvent
from mp_eventstore.application.event_sourcing.tracking import GlobalSequenceToken
from mp_eventstore.config.settings import EventStoreSettings
from mp_eventstore.kernel.time import Clock, ensure_utc


class SqlAlchemyEventStore(EventStore):
    """Append-only SQLAlchemy event store with optimistic concurrency.

    All events are persisted in the single ``domain_events`` table (see
    :mod:`mp_eventstore.adapters.sqlalchemy.schema`; create it with
    :func:`create_schema`).  ``(tenant_id, aggregate_id, sequence_number)``
    is declared ``UNIQUE``: the database itself decides which of two
    concurrent writers wins, the loser gets
    :class:`OptimisticConcurrencyError`.

    Every call runs in its own :class:`SqlAlchemyUnitOfWork`; connectivity
    failures surface as :class:`StorageUnavailableError`.

    Parameters
    ----------
    session_factory:
        A :class:`SqlAlchemySessionFactory` or any callable returning an
        :class:`~sqlalchemy.ext.asyncio.AsyncSession`.
    **options:
        Forwarded to :class:`EventStore` (clock, limits, polling).
    """

    def __init__(self, session_factory: Callable[[], AsyncSession], **options: Any) -> None:
        super().__init__(**options)
        self._session_factory = session_factory

    @classmethod
    def from_settings(
        cls,
        settings: EventStoreSettings,
        *,
        session_factory: Callable[[], AsyncSession] | None = None,
        clock: Clock | None = None,
    ) -> "SqlAlchemyEventStore":
        factory = session_factory or SqlAlchemySessionFactory(
            settings.database_url, echo=settings.echo_sql
        )
        return cls(factory, clock=clock, **settings.store_options())

    # ------------------------------------------------------------------
    # Append
    # ------------------------------------------------------------------

    @staticmethod
    def _to_row(record: StoredEvent) -> dict[str, Any]:
        return {
            "event_id": record.event_id,
            "stream_id": record.stream_id,
            "aggregate_id": record.aggregate_id,
            "aggregate_type": record.aggregate_type,
            "tenant_id": record.tenant_id,
            "sequence_number": record.sequence_number,
            "event_type": record.event_type,
            "payload": json.dumps(record.payload, separators=(",", ":"), ensure_ascii=False),
            "metadata": json.dumps(record.metadata, separators=(",", ":"), ensure_ascii=False),
            "recorded_at": record.recorded_at,
        }

    async def _insert(self, records: list[StoredEvent]) -> None:
        rows = [self._to_row(r) for r in records]
        first = records[0]
        try:
            async with storage_errors("append_events"), SqlAlchemyUnitOfWork(self._session_factory) as uow:
                # The first row alone decides the race for this version.
                await uow.session.execute(insert(domain_events).values(**rows[0]))
                if first.sequence_number > 1:
                    previous = await self._version_before(uow.session, first)
                    if previous != first.sequence_number - 1:
                        # expected_version is ahead of the stream
                        raise OptimisticConcurrencyError(
                            first.tenant_id, first.aggregate_id, first.sequence_number - 1, previous
                        )
                if len(rows) > 1:
                    await uow.session.execute(insert(domain_events), rows[1:])
        except IntegrityError as exc:
            kind = violated_constraint(exc)
            if kind == "sequence":
                raise OptimisticConcurrencyError(
                    first.tenant_id,
                    first.aggregate_id,
                    first.sequence_number - 1,
                    await self._actual_version(first.tenant_id, first.aggregate_id),
                    cause=exc,
                ) from exc
            if kind == "event_id":
                raise DuplicateEventError(cause=exc) from exc
            raise EventStoreError(f"Unexpected integrity error: {exc.orig}", cause=exc) from exc

    @staticmethod
    async def _version_before(session: AsyncSession, record: StoredEvent) -> int:
        c = domain_events.c
        stmt = (
            select(func.max(c.sequence_number))
            .where(c.tenant_id == record.tenant_id)
            .where(c.aggregate_id == record.aggregate_id)
            .where(c.sequence_number < record.sequence_number)
        )
        return (await session.execute(stmt)).scalar() or 0

    async def _actual_version(self, tenant_id: str, aggregate_id: str) -> int | None:
        try:
            return await self._select_version(tenant_id, aggregate_id)
        except StorageUnavailableError:
            return None

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @staticmethod
    def _decode(row: Row[Any]) -> StoredEvent:
        m = row._mapping
        try:
            payload = loads_object(m["payload"])
            metadata = loads_object(m["metadata"])
        except (TypeError, ValueError) as exc:
            raise EventDeserializationError(m["global_sequence"], str(exc), cause=exc) from exc
        return StoredEvent(
            global_sequence=m["global_sequence"],
            event_id=m["event_id"],
            stream_id=m["stream_id"],
            aggregate_id=m["aggregate_id"],
            aggregate_type=m["aggregate_type"],
            tenant_id=m["tenant_id"],
            sequence_number=m["sequence_number"],
            event_type=m["event_type"],
            payload=payload,
            metadata=metadata,
            recorded_at=ensure_utc(m["recorded_at"]),
        )

    async def _select_aggregate(
        self,
        tenant_id: str,
        aggregate_id: str,
        after_sequence: int,
        to_sequence: int | None,
    ) -> list[StoredEvent]:
        c = domain_events.c
        stmt = (
            select(domain_events)
            .where(c.tenant_id == tenant_id)
            .where(c.aggregate_id == aggregate_id)
            .where(c.sequence_number > after_sequence)
            .order_by(c.sequence_number)
        )
        if to_sequence is not None:
            stmt = stmt.where(c.sequence_number <= to_sequence)
        async with storage_errors("read_events_by_aggregate"), SqlAlchemyUnitOfWork(self._session_factory) as uow:
            rows = (await uow.session.execute(stmt)).fetchall()
        return [self._decode(row) for row in rows]

    async def _select_version(self, tenant_id: str, aggregate_id: str) -> int:
        c = domain_events.c
        stmt = (
            select(func.max(c.sequence_number))
            .where(c.tenant_id == tenant_id)
            .where(c.aggregate_id == aggregate_id)
        )
        async with storage_errors("current_version"), SqlAlchemyUnitOfWork(self._session_factory) as uow:
            return (await uow.session.execute(stmt)).scalar() or 0

    async def _select_after(self, token: GlobalSequenceToken, limit: int) -> list[FetchedEvent]:
        gs = domain_events.c.global_sequence
        condition = gs > token.position
        if token.gaps:
            condition = or_(condition, gs.in_(sorted(token.gaps)))
        stmt = select(domain_events).where(condition).order_by(gs).limit(limit)
        async with storage_errors("read_after"), SqlAlchemyUnitOfWork(self._session_factory) as uow:
            rows = (await uow.session.execute(stmt)).fetchall()
        fetched: list[FetchedEvent] = []
        for row in rows:
            try:
                fetched.append(self._decode(row))
            except EventDeserializationError as exc:
                fetched.append(exc)
        return fetched

    async def _select_head(self) -> int:
        stmt = select(func.max(domain_events.c.global_sequence))
        async with storage_errors("create_head_token"), SqlAlchemyUnitOfWork(self._session_factory) as uow:
            return (await uow.session.execute(stmt)).scalar() or 0


__all__ = ["SqlAlchemyEventStore"]
