"""Application event sourcing – EventStore port and InMemoryEventStore."""

from __future__ import annotations

import abc
import copy
import dataclasses
from typing import TYPE_CHECKING, Any, Sequence, TypeAlias

from mp_eventstore.application.event_sourcing.errors import (
    DuplicateEventError,
    EventDeserializationError,
    OptimisticConcurrencyError,
)
from mp_eventstore.application.event_sourcing.serialization import dumps_object, loads_object
from mp_eventstore.application.event_sourcing.stored_event import EventData, StoredEvent
from mp_eventstore.application.event_sourcing.tracking import (
    DEFAULT_MAX_GAP_SPAN,
    GlobalSequenceToken,
)
from mp_eventstore.kernel.ddd.tenant import TenantContext
from mp_eventstore.kernel.errors import ValidationError
from mp_eventstore.kernel.time import Clock, SystemClock
from mp_eventstore.kernel.types.ids import uuid7_str
from mp_eventstore.observability.logging import get_logger

if TYPE_CHECKING:
    from mp_eventstore.application.event_sourcing.cursor import CatchUpCursor

log = get_logger(__name__)

DEFAULT_MAX_PAYLOAD_BYTES = 1024 * 1024

FetchedEvent: TypeAlias = StoredEvent | EventDeserializationError


def _require_text(value: object, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(
            f"{field} must be a non-blank string",
            errors=[{"field": field, "reason": "blank"}],
        )
    return value


class EventStore(abc.ABC):
    """Port – durable, append-only, tenant-isolated event store.

    ``expected_version`` is used for **optimistic concurrency control**:

    - Pass ``0`` when creating a new aggregate (no events exist yet).
    - Pass the last sequence number you loaded when appending to an
      existing aggregate.
    - Backends raise :class:`OptimisticConcurrencyError` when another
      writer got there first.  The check is the uniqueness of
      ``(tenant_id, aggregate_id, sequence_number)``, never a prior read.

    Validation, sequence numbering, event ids and timestamps are handled
    here; backends implement the ``_insert`` / ``_select_*`` primitives.

    Every tenant-scoped call takes ``tenant_id`` explicitly and checks it
    against :class:`TenantContext`: a different active tenant raises
    :class:`TenantMismatchError`; no active tenant raises
    :class:`MissingTenantError` only when ``require_tenant_context`` is set.
    """

    def __init__(
        self,
        *,
        clock: Clock | None = None,
        max_payload_bytes: int = DEFAULT_MAX_PAYLOAD_BYTES,
        require_tenant_context: bool = False,
        batch_size: int = 100,
        max_batch_size: int = 1000,
        poll_interval: float = 0.2,
        max_wait: float = 5.0,
        max_gap_span: int = DEFAULT_MAX_GAP_SPAN,
    ) -> None:
        self._clock: Clock = clock or SystemClock()
        self._max_payload_bytes = max_payload_bytes
        self._require_tenant_context = require_tenant_context
        self._batch_size = batch_size
        self._max_batch_size = max_batch_size
        self._poll_interval = poll_interval
        self._max_wait = max_wait
        self._max_gap_span = max_gap_span

    # ------------------------------------------------------------------
    # Append
    # ------------------------------------------------------------------

    async def append_events(
        self,
        tenant_id: str,
        aggregate_id: str,
        aggregate_type: str,
        expected_version: int,
        events: Sequence[EventData],
    ) -> int:
        """Atomically append *events* after *expected_version*; return the new version."""
        tenant = TenantContext.ensure_matches(
            tenant_id, "append_events", require=self._require_tenant_context
        ).value
        records = self._prepare(tenant, aggregate_id, aggregate_type, expected_version, events)
        try:
            await self._insert(records)
        except OptimisticConcurrencyError as exc:
            log.warning(
                "event_store.conflict",
                tenant_id=tenant,
                aggregate_id=aggregate_id,
                expected=expected_version,
                actual=exc.actual,
            )
            raise
        new_version = expected_version + len(records)
        log.debug(
            "event_store.appended",
            tenant_id=tenant,
            aggregate_id=aggregate_id,
            aggregate_type=aggregate_type,
            count=len(records),
            version=new_version,
        )
        return new_version

    def _prepare(
        self,
        tenant_id: str,
        aggregate_id: str,
        aggregate_type: str,
        expected_version: int,
        events: Sequence[EventData],
    ) -> list[StoredEvent]:
        _require_text(aggregate_id, "aggregate_id")
        _require_text(aggregate_type, "aggregate_type")
        if isinstance(expected_version, bool) or not isinstance(expected_version, int):
            raise ValidationError("expected_version must be an integer")
        if expected_version < 0:
            raise ValidationError(
                f"expected_version must be >= 0, got {expected_version}",
                errors=[{"field": "expected_version", "reason": "negative"}],
            )
        if not events:
            raise ValidationError("Cannot append an empty batch of events")

        recorded_at = self._clock.now()
        stream_id = f"{aggregate_type}-{aggregate_id}"
        seen_ids: set[str] = set()
        records: list[StoredEvent] = []
        for offset, data in enumerate(events, start=1):
            _require_text(data.event_type, "event_type")
            payload_text = dumps_object(data.payload, "payload")
            if len(payload_text.encode("utf-8")) > self._max_payload_bytes:
                raise ValidationError(
                    f"payload of event #{offset} exceeds {self._max_payload_bytes} bytes",
                    errors=[{"field": "payload", "reason": "too_large"}],
                )
            metadata_text = dumps_object(data.metadata, "metadata")
            event_id = uuid7_str() if data.event_id is None else _require_text(data.event_id, "event_id")
            if event_id in seen_ids:
                raise ValidationError(
                    f"Duplicate event_id '{event_id}' within one batch",
                    errors=[{"field": "event_id", "reason": "duplicate"}],
                )
            seen_ids.add(event_id)
            records.append(
                StoredEvent(
                    global_sequence=0,
                    event_id=event_id,
                    stream_id=stream_id,
                    aggregate_id=aggregate_id,
                    aggregate_type=aggregate_type,
                    tenant_id=tenant_id,
                    sequence_number=expected_version + offset,
                    event_type=data.event_type,
                    payload=loads_object(payload_text),
                    metadata=loads_object(metadata_text),
                    recorded_at=recorded_at,
                )
            )
        return records

    @abc.abstractmethod
    async def _insert(self, records: list[StoredEvent]) -> None:
        """Insert *records* (one aggregate, contiguous sequence numbers) atomically.

        Must raise :class:`OptimisticConcurrencyError` on a sequence-number
        uniqueness violation or when sequence ``expected_version`` does not
        exist yet (a version from the future would leave a hole) and :class:`DuplicateEventError` on an
        ``event_id`` violation, persisting nothing in either case.
        """

    # ------------------------------------------------------------------
    # Read by aggregate
    # ------------------------------------------------------------------

    async def read_events_by_aggregate(
        self,
        tenant_id: str,
        aggregate_id: str,
        after_sequence: int = 0,
        to_sequence: int | None = None,
    ) -> list[StoredEvent]:
        """Return the aggregate's events with ``after_sequence < sequence_number <= to_sequence``.

        Ordered by ``sequence_number``; an unknown aggregate yields ``[]``.
        """
        tenant = TenantContext.ensure_matches(
            tenant_id, "read_events_by_aggregate", require=self._require_tenant_context
        ).value
        _require_text(aggregate_id, "aggregate_id")
        if after_sequence < 0:
            raise ValidationError("after_sequence must be >= 0")
        if to_sequence is not None and to_sequence < after_sequence:
            raise ValidationError("to_sequence must not be lower than after_sequence")
        return await self._select_aggregate(tenant, aggregate_id, after_sequence, to_sequence)

    async def current_version(self, tenant_id: str, aggregate_id: str) -> int:
        """Return the highest stored sequence number of the aggregate (``0`` if none)."""
        tenant = TenantContext.ensure_matches(
            tenant_id, "current_version", require=self._require_tenant_context
        ).value
        return await self._select_version(tenant, aggregate_id)

    @abc.abstractmethod
    async def _select_aggregate(
        self,
        tenant_id: str,
        aggregate_id: str,
        after_sequence: int,
        to_sequence: int | None,
    ) -> list[StoredEvent]: ...

    @abc.abstractmethod
    async def _select_version(self, tenant_id: str, aggregate_id: str) -> int: ...

    # ------------------------------------------------------------------
    # Global log
    # ------------------------------------------------------------------

    async def read_after(self, token: GlobalSequenceToken, limit: int) -> list[StoredEvent]:
        """Return up to *limit* events not yet covered by *token*, by global sequence.

        If a row cannot be decoded, the events before it are returned; when
        it is the first row, :class:`EventDeserializationError` is raised.
        """
        limit = max(1, min(limit, self._max_batch_size))
        fetched = await self._select_after(token, limit)
        events: list[StoredEvent] = []
        for item in fetched:
            if isinstance(item, EventDeserializationError):
                if events:
                    break
                log.error("event_store.undecodable_event", position=item.position)
                raise item
            events.append(item)
        return events

    @abc.abstractmethod
    async def _select_after(self, token: GlobalSequenceToken, limit: int) -> list[FetchedEvent]:
        """Rows with ``global_sequence > token.position`` or in ``token.gaps``, ascending."""

    @abc.abstractmethod
    async def _select_head(self) -> int:
        """Return the highest committed global sequence (``0`` for an empty log)."""

    async def create_head_token(self) -> GlobalSequenceToken:
        """Token positioned at the newest committed event."""
        return GlobalSequenceToken(await self._select_head())

    async def create_tail_token(self) -> GlobalSequenceToken:
        """Token positioned before the oldest event."""
        return GlobalSequenceToken.tail()

    def open_catch_up_cursor(
        self,
        token: GlobalSequenceToken | None = None,
        batch_size: int | None = None,
    ) -> "CatchUpCursor":
        """Open a cursor over the whole log starting after *token* (tail if ``None``)."""
        from mp_eventstore.application.event_sourcing.cursor import CatchUpCursor

        size = self._batch_size if batch_size is None else batch_size
        if size < 1 or size > self._max_batch_size:
            raise ValidationError(
                f"batch_size must be between 1 and {self._max_batch_size}, got {size}"
            )
        return CatchUpCursor(
            self,
            token or GlobalSequenceToken.tail(),
            batch_size=size,
            poll_interval=self._poll_interval,
            max_wait=self._max_wait,
            max_gap_span=self._max_gap_span,
        )


def _detached(event: StoredEvent) -> StoredEvent:
    # readers get their own payload and metadata; stored rows stay write-once
    return dataclasses.replace(
        event, payload=copy.deepcopy(event.payload), metadata=copy.deepcopy(event.metadata)
    )


class InMemoryEventStore(EventStore):
    """In-memory :class:`EventStore` for tests and local development.

    Inserts run without yielding to the event loop, so a batch is atomic
    with respect to other coroutines.
    """

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._log: list[StoredEvent] = []
        # (tenant_id, aggregate_id) → ordered events
        self._aggregates: dict[tuple[str, str], list[StoredEvent]] = {}
        self._event_ids: set[str] = set()

    async def _insert(self, records: list[StoredEvent]) -> None:
        first = records[0]
        key = (first.tenant_id, first.aggregate_id)
        stream = self._aggregates.get(key, [])
        if len(stream) != first.sequence_number - 1:
            raise OptimisticConcurrencyError(
                first.tenant_id, first.aggregate_id, first.sequence_number - 1, len(stream)
            )
        for record in records:
            if record.event_id in self._event_ids:
                raise DuplicateEventError(record.event_id)
        for record in records:
            stored = dataclasses.replace(record, global_sequence=len(self._log) + 1)
            self._log.append(stored)
            self._aggregates.setdefault(key, []).append(stored)
            self._event_ids.add(stored.event_id)

    async def _select_aggregate(
        self,
        tenant_id: str,
        aggregate_id: str,
        after_sequence: int,
        to_sequence: int | None,
    ) -> list[StoredEvent]:
        stream = self._aggregates.get((tenant_id, aggregate_id), [])
        return [
            _detached(e)
            for e in stream
            if e.sequence_number > after_sequence
            and (to_sequence is None or e.sequence_number <= to_sequence)
        ]

    async def _select_version(self, tenant_id: str, aggregate_id: str) -> int:
        return len(self._aggregates.get((tenant_id, aggregate_id), []))

    async def _select_after(self, token: GlobalSequenceToken, limit: int) -> list[FetchedEvent]:
        selected = [
            e for e in self._log if e.global_sequence > token.position or e.global_sequence in token.gaps
        ]
        return [_detached(e) for e in selected[:limit]]

    async def _select_head(self) -> int:
        return len(self._log)

    def all_events(self, tenant_id: str | None = None) -> list[StoredEvent]:
        """Return all stored events in global order, optionally filtered by tenant."""
        if tenant_id is None:
            return [_detached(e) for e in self._log]
        return [_detached(e) for e in self._log if e.tenant_id == tenant_id]


__all__ = ["DEFAULT_MAX_PAYLOAD_BYTES", "EventStore", "FetchedEvent", "InMemoryEventStore"]
