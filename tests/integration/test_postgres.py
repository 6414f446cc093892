"""Integration tests for the SQLAlchemy adapter on PostgreSQL.

Uses testcontainers to spawn a real PostgreSQL instance.
Run with: pytest tests/integration/test_postgres.py -m integration -v
"""
from __future__ import annotations

import asyncio
from collections.abc import Iterator
from typing import Any

import pytest
from testcontainers.postgres import PostgresContainer

from mp_eventstore.adapters.sqlalchemy import (
    SqlAlchemyEventStore,
    SqlAlchemySessionFactory,
    SqlAlchemySnapshotStore,
    SqlAlchemyTokenStore,
    create_schema,
    drop_schema,
)
from mp_eventstore.application.event_sourcing import (
    DuplicateEventError,
    EventData,
    GlobalSequenceToken,
    OptimisticConcurrencyError,
    StoredEvent,
    TrackingProcessor,
)
from mp_eventstore.kernel.ddd import TenantContext

pytestmark = pytest.mark.integration


# ---------------------------------------------------------------------------
# helpers
# ---------------------------------------------------------------------------

def _run(coro):  # type: ignore[no-untyped-def]
    return asyncio.run(coro)


def _pg_url(container: Any) -> str:
    """Return an asyncpg-compatible URL from a PostgresContainer."""
    raw = container.get_connection_url()
    # testcontainers returns psycopg2 URL; swap driver for asyncpg
    return raw.replace("psycopg2", "asyncpg", 1)


@pytest.fixture(scope="module")
def pg_url() -> Iterator[str]:
    with PostgresContainer("postgres:16-alpine") as container:
        yield _pg_url(container)


async def _fresh(url: str) -> tuple[SqlAlchemySessionFactory, SqlAlchemyEventStore]:
    factory = SqlAlchemySessionFactory(url)
    await drop_schema(factory.engine)
    await create_schema(factory.engine)
    return factory, SqlAlchemyEventStore(factory, poll_interval=0.02, max_wait=0.1)


def _batch(*types: str) -> list[EventData]:
    return [EventData(t, {"i": i}) for i, t in enumerate(types)]


# ---------------------------------------------------------------------------
# Append / concurrency
# ---------------------------------------------------------------------------

class TestPostgresEventStore:
    def test_append_and_read(self, pg_url: str) -> None:
        async def run() -> list[StoredEvent]:
            factory, store = await _fresh(pg_url)
            await store.append_events("acme", "o-1", "Order", 0, _batch("Placed", "Paid"))
            events = await store.read_events_by_aggregate("acme", "o-1")
            await factory.dispose()
            return events

        events = _run(run())
        assert [(e.sequence_number, e.event_type) for e in events] == [(1, "Placed"), (2, "Paid")]
        assert events[0].recorded_at.tzinfo is not None

    def test_concurrent_writers_exactly_one_wins(self, pg_url: str) -> None:
        async def run() -> tuple[list[Any], int]:
            factory, store = await _fresh(pg_url)

            async def writer(i: int) -> Any:
                try:
                    return await store.append_events("acme", "o-1", "Order", 0, _batch(f"W{i}", "X"))
                except OptimisticConcurrencyError as exc:
                    return exc

            results = await asyncio.gather(*(writer(i) for i in range(10)))
            version = await store.current_version("acme", "o-1")
            await factory.dispose()
            return list(results), version

        results, version = _run(run())
        assert results.count(2) == 1
        assert sum(isinstance(r, OptimisticConcurrencyError) for r in results) == 9
        assert version == 2

    def test_duplicate_event_id(self, pg_url: str) -> None:
        async def run() -> None:
            factory, store = await _fresh(pg_url)
            await store.append_events("acme", "a", "Order", 0, [EventData("X", {}, event_id="evt-1")])
            try:
                with pytest.raises(DuplicateEventError):
                    await store.append_events("globex", "b", "Order", 0, [EventData("Y", {}, event_id="evt-1")])
            finally:
                await factory.dispose()

        _run(run())

    def test_snapshots_and_tokens(self, pg_url: str) -> None:
        async def run() -> tuple[Any, Any]:
            factory, _ = await _fresh(pg_url)
            snapshots = SqlAlchemySnapshotStore(factory)
            await snapshots.save_snapshot("acme", "a-1", 3, {"v": 1})
            await snapshots.save_snapshot("acme", "a-1", 6, {"v": 2})
            tokens = SqlAlchemyTokenStore(factory)
            await tokens.store("proj", GlobalSequenceToken(5, frozenset({3})))
            result = await snapshots.load_snapshot("acme", "a-1"), await tokens.load("proj")
            await factory.dispose()
            return result

        snap, token = _run(run())
        assert (snap.version, snap.last_sequence_number, snap.state_payload) == (2, 6, {"v": 2})
        assert token == GlobalSequenceToken(5, frozenset({3}))


# ---------------------------------------------------------------------------
# Global log
# ---------------------------------------------------------------------------

class TestPostgresTracking:
    def test_processor_sees_every_event_once_while_writers_run(self, pg_url: str) -> None:
        async def run() -> tuple[list[int], list[int]]:
            factory, store = await _fresh(pg_url)
            tokens = SqlAlchemyTokenStore(factory)
            seen: list[int] = []
            tenants: list[str] = []

            async def handler(event: StoredEvent) -> None:
                seen.append(event.global_sequence)
                tenants.append(TenantContext.require().value)

            processor = TrackingProcessor("proj", store, handler, tokens, batch_size=5)

            async def writer(w: int) -> None:
                for n in range(10):
                    await store.append_events(f"t{w % 2}", f"agg-{w}-{n}", "Order", 0, _batch("Placed"))

            writers = asyncio.gather(*(writer(w) for w in range(4)))
            while not writers.done():
                await processor.process_batch(max_wait=0.05)
            await writers
            while await processor.process_batch(max_wait=0.2):
                pass
            committed = [e.global_sequence for e in await store.read_after(GlobalSequenceToken.tail(), 1000)]
            await factory.dispose()
            assert set(tenants) == {"t0", "t1"}
            return seen, committed

        seen, committed = _run(run())
        assert sorted(seen) == committed
        assert len(seen) == len(set(seen)) == 40
