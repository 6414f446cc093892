"""Unit tests for CatchUpCursor and the global log reads."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from mp_eventstore.application.event_sourcing import (
    EventData,
    GlobalSequenceToken,
    InMemoryEventStore,
    StoredEvent,
)
from mp_eventstore.kernel.errors import ValidationError


def _run(coro: Any) -> Any:
    return asyncio.run(coro)


def _store(**kwargs: Any) -> InMemoryEventStore:
    kwargs.setdefault("poll_interval", 0.01)
    kwargs.setdefault("max_wait", 0.05)
    return InMemoryEventStore(**kwargs)


async def _seed(store: InMemoryEventStore, count: int, tenant: str = "acme") -> None:
    for i in range(count):
        await store.append_events(tenant, f"agg-{i}", "Order", 0, [EventData("Placed", {"i": i})])


def _positions(events: list[StoredEvent]) -> list[int]:
    return [e.global_sequence for e in events]


class TestTokens:
    def test_tail_and_head(self) -> None:
        store = _store()

        async def run() -> tuple[GlobalSequenceToken, GlobalSequenceToken]:
            await _seed(store, 3)
            return await store.create_tail_token(), await store.create_head_token()

        tail, head = _run(run())
        assert tail == GlobalSequenceToken.tail()
        assert head.position == 3

    def test_head_of_empty_log(self) -> None:
        assert _run(_store().create_head_token()) == GlobalSequenceToken(0)

    def test_head_cursor_sees_only_new_events(self) -> None:
        store = _store()

        async def run() -> list[StoredEvent]:
            await _seed(store, 2)
            cursor = store.open_catch_up_cursor(await store.create_head_token())
            assert await cursor.next_batch(max_wait=0) == []
            await store.append_events("acme", "late", "Order", 0, [EventData("Placed", {})])
            return await cursor.next_batch()

        events = _run(run())
        assert [e.aggregate_id for e in events] == ["late"]


class TestNextBatch:
    def test_reads_all_tenants_in_global_order(self) -> None:
        store = _store()

        async def run() -> list[StoredEvent]:
            await _seed(store, 2, tenant="acme")
            await _seed(store, 2, tenant="globex")
            return await store.open_catch_up_cursor().next_batch()

        events = _run(run())
        assert _positions(events) == [1, 2, 3, 4]
        assert {e.tenant_id for e in events} == {"acme", "globex"}

    def test_batch_size_limits_each_read(self) -> None:
        store = _store()

        async def run() -> list[list[int]]:
            await _seed(store, 5)
            cursor = store.open_catch_up_cursor(batch_size=2)
            return [_positions(await cursor.next_batch()) for _ in range(3)]

        assert _run(run()) == [[1, 2], [3, 4], [5]]

    def test_timeout_returns_empty_batch(self) -> None:
        store = _store()

        async def run() -> tuple[list[StoredEvent], GlobalSequenceToken]:
            cursor = store.open_catch_up_cursor()
            return await cursor.next_batch(max_wait=0.03), cursor.token

        events, token = _run(run())
        assert events == []
        assert token == GlobalSequenceToken.tail()

    def test_waits_for_events_appended_later(self) -> None:
        store = _store()

        async def run() -> list[StoredEvent]:
            cursor = store.open_catch_up_cursor()

            async def writer() -> None:
                await asyncio.sleep(0.03)
                await _seed(store, 1)

            task = asyncio.create_task(writer())
            events = await cursor.next_batch(max_wait=1.0)
            await task
            return events

        assert _positions(_run(run())) == [1]

    def test_cancelled_wait_leaves_token_unchanged(self) -> None:
        store = _store()

        async def run() -> tuple[GlobalSequenceToken, GlobalSequenceToken]:
            await _seed(store, 2)
            cursor = store.open_catch_up_cursor()
            await cursor.next_batch()
            before = cursor.token
            task = asyncio.create_task(cursor.next_batch(max_wait=5.0))
            await asyncio.sleep(0.03)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task
            return before, cursor.token

        before, after = _run(run())
        assert before == after == GlobalSequenceToken(2)

    def test_batch_size_out_of_range_rejected(self) -> None:
        store = _store(max_batch_size=10)
        with pytest.raises(ValidationError):
            store.open_catch_up_cursor(batch_size=0)
        with pytest.raises(ValidationError):
            store.open_catch_up_cursor(batch_size=11)


class TestResume:
    def test_resume_from_token_has_no_duplicates_or_misses(self) -> None:
        store = _store()

        async def run() -> list[int]:
            await _seed(store, 7)
            first = store.open_catch_up_cursor(batch_size=3)
            seen = _positions(await first.next_batch())
            saved = GlobalSequenceToken.from_json(first.token.to_json())
            await _seed(store, 2, tenant="globex")
            second = store.open_catch_up_cursor(saved, batch_size=3)
            while batch := await second.next_batch(max_wait=0):
                seen.extend(_positions(batch))
            return seen

        assert _run(run()) == list(range(1, 10))

    def test_gap_filled_by_late_commit_is_delivered(self) -> None:
        store = _store()

        async def run() -> list[int]:
            await _seed(store, 3)
            # 2 has not been seen yet
            cursor = store.open_catch_up_cursor(GlobalSequenceToken(3, frozenset({2})))
            return _positions(await cursor.next_batch(max_wait=0))

        assert _run(run()) == [2]

    def test_seek_and_skip(self) -> None:
        store = _store()

        async def run() -> tuple[list[int], GlobalSequenceToken]:
            await _seed(store, 4)
            cursor = store.open_catch_up_cursor()
            cursor.skip(1)
            delivered = _positions(await cursor.next_batch())
            cursor.seek(GlobalSequenceToken(2))
            delivered += _positions(await cursor.next_batch())
            return delivered, cursor.token

        delivered, token = _run(run())
        assert delivered == [2, 3, 4, 3, 4]
        assert token == GlobalSequenceToken(4)


class TestAsyncIteration:
    def test_iterates_and_advances_per_event(self) -> None:
        store = _store()

        async def run() -> list[tuple[int, int]]:
            await _seed(store, 3)
            cursor = store.open_catch_up_cursor(batch_size=2)
            seen: list[tuple[int, int]] = []
            async for event in cursor:
                seen.append((event.global_sequence, cursor.token.position))
                if len(seen) == 3:
                    break
            return seen

        assert _run(run()) == [(1, 1), (2, 2), (3, 3)]

    def test_iteration_can_be_bounded_with_timeout(self) -> None:
        store = _store()

        async def consume(cursor: Any, sink: list[int]) -> None:
            async for event in cursor:
                sink.append(event.global_sequence)

        async def run() -> tuple[list[int], GlobalSequenceToken]:
            await _seed(store, 2)
            cursor = store.open_catch_up_cursor()
            sink: list[int] = []
            with pytest.raises(TimeoutError):
                await asyncio.wait_for(consume(cursor, sink), timeout=0.1)
            return sink, cursor.token

        sink, token = _run(run())
        assert sink == [1, 2]
        assert token == GlobalSequenceToken(2)
