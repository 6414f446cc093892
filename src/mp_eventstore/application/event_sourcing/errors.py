"""Application event sourcing – event store errors."""

from __future__ import annotations

from typing import Any

from mp_eventstore.kernel.errors.domain import ConflictError
from mp_eventstore.kernel.errors.infrastructure import (
    ConnectionError,
    InfrastructureError,
    SerializationError,
)


class OptimisticConcurrencyError(ConflictError):
    """Another writer appended to the aggregate since *expected* was read.

    ``actual`` is informational only: it is read after the failed insert
    and may already be stale.  Callers reload the aggregate and retry.
    """

    default_code = "optimistic_concurrency_conflict"

    def __init__(
        self,
        tenant_id: str,
        aggregate_id: str,
        expected: int,
        actual: int | None = None,
        **kwargs: Any,
    ) -> None:
        found = "unknown" if actual is None else str(actual)
        super().__init__(
            f"Concurrency conflict on aggregate '{aggregate_id}' (tenant '{tenant_id}'): "
            f"expected version {expected}, found {found}",
            detail={
                "tenant_id": tenant_id,
                "aggregate_id": aggregate_id,
                "expected": expected,
                "actual": actual,
            },
            **kwargs,
        )
        self.tenant_id = tenant_id
        self.aggregate_id = aggregate_id
        self.expected = expected
        self.actual = actual


class DuplicateEventError(ConflictError):
    """An event with the same ``event_id`` has already been stored."""

    default_code = "duplicate_event"

    def __init__(self, event_id: str | None = None, **kwargs: Any) -> None:
        message = (
            f"Event '{event_id}' has already been stored"
            if event_id
            else "An event in the batch has already been stored"
        )
        super().__init__(message, detail={"event_id": event_id}, **kwargs)
        self.event_id = event_id


class EventStoreError(InfrastructureError):
    """Unexpected failure of the event store backend."""

    default_code = "event_store_error"


class StorageUnavailableError(ConnectionError):
    """The backing database could not be reached; safe to retry later."""

    default_code = "storage_unavailable"

    def __init__(self, message: str | None = None, **kwargs: Any) -> None:
        super().__init__("event-store", message or "Event store storage is unavailable", **kwargs)


class SnapshotCorruptError(SerializationError):
    """A stored snapshot could not be decoded."""

    default_code = "snapshot_corrupt"

    def __init__(self, tenant_id: str, aggregate_id: str, reason: str, **kwargs: Any) -> None:
        super().__init__(
            f"Snapshot of aggregate '{aggregate_id}' (tenant '{tenant_id}') is corrupt: {reason}",
            payload_type="snapshot",
            detail={"tenant_id": tenant_id, "aggregate_id": aggregate_id},
            **kwargs,
        )
        self.tenant_id = tenant_id
        self.aggregate_id = aggregate_id


class EventDeserializationError(SerializationError):
    """The event stored at ``position`` (its global sequence) could not be decoded."""

    default_code = "event_deserialization_error"

    def __init__(self, position: int, reason: str, **kwargs: Any) -> None:
        super().__init__(
            f"Event at global sequence {position} could not be decoded: {reason}",
            payload_type="event",
            detail={"position": position},
            **kwargs,
        )
        self.position = position


__all__ = [
    "DuplicateEventError",
    "EventDeserializationError",
    "EventStoreError",
    "OptimisticConcurrencyError",
    "SnapshotCorruptError",
    "StorageUnavailableError",
]
