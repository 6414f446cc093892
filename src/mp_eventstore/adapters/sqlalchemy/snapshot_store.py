"""SQLAlchemy adapter – SqlAlchemySnapshotStore."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Callable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mp_eventstore.adapters.sqlalchemy.errors import storage_errors
from mp_eventstore.adapters.sqlalchemy.schema import aggregate_snapshots
from mp_eventstore.adapters.sqlalchemy.session import SqlAlchemySessionFactory
from mp_eventstore.adapters.sqlalchemy.uow import SqlAlchemyUnitOfWork
from mp_eventstore.adapters.sqlalchemy.upsert import upsert
from mp_eventstore.application.event_sourcing.snapshot import SnapshotRecord, SnapshotStore
from mp_eventstore.config.settings import EventStoreSettings
from mp_eventstore.kernel.time import Clock, ensure_utc


class SqlAlchemySnapshotStore(SnapshotStore):
    """Snapshots in the ``aggregate_snapshots`` table, one row per aggregate.

    Saving is a single upsert, so concurrent saves never fail: the last
    one wins and ``version`` counts every overwrite.
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
    ) -> "SqlAlchemySnapshotStore":
        factory = session_factory or SqlAlchemySessionFactory(
            settings.database_url, echo=settings.echo_sql
        )
        return cls(factory, clock=clock, require_tenant_context=settings.require_tenant_context)

    async def _upsert(
        self,
        tenant_id: str,
        aggregate_id: str,
        aggregate_type: str,
        last_sequence_number: int,
        state_json: str,
        recorded_at: datetime,
    ) -> None:
        values = {
            "tenant_id": tenant_id,
            "aggregate_id": aggregate_id,
            "aggregate_type": aggregate_type,
            "last_sequence_number": last_sequence_number,
            "state_payload": state_json,
            "version": 1,
            "recorded_at": recorded_at,
        }
        async with storage_errors("save_snapshot"), SqlAlchemyUnitOfWork(self._session_factory) as uow:
            await upsert(
                uow.session,
                aggregate_snapshots,
                values,
                ["tenant_id", "aggregate_id"],
                lambda excluded: {
                    "aggregate_type": excluded.aggregate_type,
                    "last_sequence_number": excluded.last_sequence_number,
                    "state_payload": excluded.state_payload,
                    "recorded_at": excluded.recorded_at,
                    "version": aggregate_snapshots.c.version + 1,
                },
            )

    async def _select(self, tenant_id: str, aggregate_id: str) -> SnapshotRecord | None:
        c = aggregate_snapshots.c
        stmt = (
            select(aggregate_snapshots)
            .where(c.tenant_id == tenant_id)
            .where(c.aggregate_id == aggregate_id)
        )
        async with storage_errors("load_snapshot"), SqlAlchemyUnitOfWork(self._session_factory) as uow:
            row = (await uow.session.execute(stmt)).first()
        if row is None:
            return None
        m = row._mapping
        return SnapshotRecord(
            tenant_id=tenant_id,
            aggregate_id=aggregate_id,
            aggregate_type=m["aggregate_type"],
            last_sequence_number=m["last_sequence_number"],
            state_payload=self._decode_state(tenant_id, aggregate_id, m["state_payload"]),
            version=m["version"],
            recorded_at=ensure_utc(m["recorded_at"]),
        )


__all__ = ["SqlAlchemySnapshotStore"]
