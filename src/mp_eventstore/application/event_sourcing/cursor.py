"""Application event sourcing – CatchUpCursor over the global log."""

from __future__ import annotations

import asyncio
import collections
from typing import TYPE_CHECKING

from mp_eventstore.application.event_sourcing.stored_event import StoredEvent
from mp_eventstore.application.event_sourcing.tracking import GlobalSequenceToken

if TYPE_CHECKING:
    from mp_eventstore.application.event_sourcing.store import EventStore


class CatchUpCursor:
    """Lazy, restartable, never-ending sequence of events in global order.

    Obtain one through :meth:`EventStore.open_catch_up_cursor`.  Two ways to
    consume it:

    - ``await cursor.next_batch()`` returns the next events (at most
      ``batch_size``), or ``[]`` once ``max_wait`` seconds passed without
      new events.
    - ``async for event in cursor`` yields events one by one and waits
      for new rows forever.

    :attr:`token` always points after the last *delivered* event, so it
    can be persisted and passed to a new cursor to resume without
    duplicates or misses.  Cancelling a wait leaves it unchanged.

    When a row cannot be decoded the events before it are delivered
    first; the next read raises :class:`EventDeserializationError`.  Call
    :meth:`skip` with its ``position`` to move past it, or stop consuming.
    """

    def __init__(
        self,
        store: "EventStore",
        token: GlobalSequenceToken,
        *,
        batch_size: int,
        poll_interval: float,
        max_wait: float,
        max_gap_span: int,
    ) -> None:
        self._store = store
        self._token = token
        self._batch_size = batch_size
        self._poll_interval = poll_interval
        self._max_wait = max_wait
        self._max_gap_span = max_gap_span
        self._buffer: collections.deque[StoredEvent] = collections.deque()

    @property
    def token(self) -> GlobalSequenceToken:
        return self._token

    @property
    def batch_size(self) -> int:
        return self._batch_size

    @property
    def max_gap_span(self) -> int:
        return self._max_gap_span

    async def next_batch(self, max_wait: float | None = None) -> list[StoredEvent]:
        """Return the next events, polling up to *max_wait* seconds for new ones."""
        if self._buffer:
            events = list(self._buffer)
            self._buffer.clear()
        else:
            events = await self._fetch(self._max_wait if max_wait is None else max_wait)
        for event in events:
            self._advance(event)
        return events

    def skip(self, position: int) -> None:
        """Mark the event at global sequence *position* as consumed without delivering it."""
        self._buffer.clear()
        self._token = self._token.advanced_to(position, self._max_gap_span)

    def seek(self, token: GlobalSequenceToken) -> None:
        """Reposition the cursor; the next read starts after *token*."""
        self._buffer.clear()
        self._token = token

    def __aiter__(self) -> "CatchUpCursor":
        return self

    async def __anext__(self) -> StoredEvent:
        while not self._buffer:
            self._buffer.extend(await self._fetch(self._max_wait))
        event = self._buffer.popleft()
        self._advance(event)
        return event

    def _advance(self, event: StoredEvent) -> None:
        self._token = self._token.advanced_to(event.global_sequence, self._max_gap_span)

    async def _fetch(self, max_wait: float) -> list[StoredEvent]:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + max(0.0, max_wait)
        while True:
            events = await self._store.read_after(self._token, self._batch_size)
            if events:
                return events
            remaining = deadline - loop.time()
            if remaining <= 0:
                return []
            await asyncio.sleep(min(self._poll_interval, remaining))


__all__ = ["CatchUpCursor"]
