"""Application event sourcing – TrackingProcessor.

A tracking processor is a named consumer of the global log.  It reads the
catch-up cursor, runs every event through the inbound pipeline (tenant and
correlation restored from the event) into a handler, and persists its
token only after the handler succeeded, so delivery is at-least-once.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Literal

from mp_eventstore.application.event_sourcing.cursor import CatchUpCursor
from mp_eventstore.application.event_sourcing.errors import EventDeserializationError
from mp_eventstore.application.event_sourcing.store import EventStore
from mp_eventstore.application.event_sourcing.stored_event import StoredEvent
from mp_eventstore.application.event_sourcing.token_store import TokenStore
from mp_eventstore.application.pipeline import (
    CorrelationRestoringMiddleware,
    Pipeline,
    TenantRestoringMiddleware,
)
from mp_eventstore.kernel.errors import ValidationError
from mp_eventstore.observability.logging import get_logger
from mp_eventstore.resilience.retry import TenacityRetryPolicy

log = get_logger(__name__)

EventHandler = Callable[[StoredEvent], Awaitable[Any]]
DeserializationPolicy = Literal["abort", "skip"]


def default_inbound_pipeline() -> Pipeline:
    """Tenant then correlation restoration, outermost first."""
    return Pipeline().add(TenantRestoringMiddleware()).add(CorrelationRestoringMiddleware())


class TrackingProcessor:
    """Deliver every event of the log to *handler*, resuming from *token_store*.

    Parameters
    ----------
    name:
        Unique processor name; key of its token in *token_store*.
    store:
        Event store to read from.
    handler:
        ``async`` callable invoked once per event, inside the inbound pipeline.
    token_store:
        Where the position is persisted after each processed batch.
    pipeline:
        Inbound middleware chain (defaults to :func:`default_inbound_pipeline`).
    batch_size:
        Events per read (defaults to the store's configured batch size).
    retry_policy:
        Applied to reads; defaults to exponential backoff on
        retryable errors such as :class:`StorageUnavailableError`.
    on_deserialization_error:
        ``"abort"`` re-raises :class:`EventDeserializationError`;
        ``"skip"`` logs it and moves past the undecodable row.
    start_at_head:
        Without a stored token, start after the newest event instead of
        replaying from the tail.
    """

    def __init__(
        self,
        name: str,
        store: EventStore,
        handler: EventHandler,
        token_store: TokenStore,
        *,
        pipeline: Pipeline | None = None,
        batch_size: int | None = None,
        retry_policy: TenacityRetryPolicy | None = None,
        on_deserialization_error: DeserializationPolicy = "abort",
        start_at_head: bool = False,
    ) -> None:
        if on_deserialization_error not in ("abort", "skip"):
            raise ValidationError(
                f"on_deserialization_error must be 'abort' or 'skip', got {on_deserialization_error!r}"
            )
        self._name = name
        self._store = store
        self._handler = handler
        self._token_store = token_store
        self._pipeline = pipeline or default_inbound_pipeline()
        self._batch_size = batch_size
        self._retry = retry_policy or TenacityRetryPolicy()
        self._on_deserialization_error = on_deserialization_error
        self._start_at_head = start_at_head
        self._cursor: CatchUpCursor | None = None

    @property
    def name(self) -> str:
        return self._name

    async def _open_cursor(self) -> CatchUpCursor:
        if self._cursor is None:
            token = await self._token_store.load(self._name)
            if token is None:
                token = (
                    await self._store.create_head_token()
                    if self._start_at_head
                    else await self._store.create_tail_token()
                )
            self._cursor = self._store.open_catch_up_cursor(token, self._batch_size)
            log.info("tracking.started", processor=self._name, token=str(token))
        return self._cursor

    async def process_batch(self, max_wait: float = 0.0) -> int:
        """Read and handle one batch; return the number of events handled.

        If the handler fails, the token is stored up to the last handled
        event, the cursor is rewound there and the error propagates, so the
        failed event is redelivered on the next call.
        """
        cursor = await self._open_cursor()
        start = cursor.token
        try:
            events = await self._retry.execute_async(lambda: cursor.next_batch(max_wait))
        except EventDeserializationError as exc:
            if self._on_deserialization_error == "abort":
                log.error("tracking.undecodable_event", processor=self._name, position=exc.position)
                raise
            log.warning("tracking.event_skipped", processor=self._name, position=exc.position)
            cursor.skip(exc.position)
            await self._token_store.store(self._name, cursor.token)
            return 0
        if not events:
            return 0

        handled = start
        for event in events:
            try:
                await self._pipeline.execute(event, self._handler)
            except Exception:
                log.error(
                    "tracking.handler_failed",
                    processor=self._name,
                    global_sequence=event.global_sequence,
                    event_type=event.event_type,
                )
                cursor.seek(handled)
                if handled != start:
                    await self._token_store.store(self._name, handled)
                raise
            handled = handled.advanced_to(event.global_sequence, cursor.max_gap_span)
        await self._token_store.store(self._name, cursor.token)
        log.debug("tracking.batch_processed", processor=self._name, count=len(events))
        return len(events)

    async def run(self, stop: asyncio.Event | None = None, poll_wait: float = 1.0) -> None:
        """Process batches until *stop* is set (or forever)."""
        while stop is None or not stop.is_set():
            await self.process_batch(max_wait=poll_wait)
        log.info("tracking.stopped", processor=self._name)


__all__ = ["DeserializationPolicy", "EventHandler", "TrackingProcessor", "default_inbound_pipeline"]
