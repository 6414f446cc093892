"""Application event sourcing – StoredEvent and EventData."""

from __future__ import annotations

import dataclasses
from datetime import datetime
from typing import Any


@dataclasses.dataclass(frozen=True)
class StoredEvent:
    """An event as persisted in the event store.

    Records are write-once.  ``payload`` and ``metadata`` are JSON objects;
    ``metadata`` carries infrastructure-level concerns (correlation id,
    causation id, tenant id, …).
    """

    global_sequence: int
    """Position in the global log; ``0`` until the backend assigns it."""

    event_id: str
    """Globally unique id (UUIDv7 unless supplied by the caller)."""

    stream_id: str
    """By convention ``"<aggregate_type>-<aggregate_id>"``."""

    aggregate_id: str
    aggregate_type: str
    tenant_id: str

    sequence_number: int
    """1-based, contiguous sequence number within the aggregate."""

    event_type: str
    payload: dict[str, Any]
    metadata: dict[str, Any] = dataclasses.field(default_factory=dict)

    recorded_at: datetime | None = None
    """UTC time assigned by the store's clock at append."""


@dataclasses.dataclass(frozen=True)
class EventData:
    """A new event handed to :meth:`EventStore.append_events`.

    The store assigns the sequence number; ``event_id`` is generated when
    not supplied.
    """

    event_type: str
    payload: dict[str, Any]
    metadata: dict[str, Any] = dataclasses.field(default_factory=dict)
    event_id: str | None = None


__all__ = ["EventData", "StoredEvent"]
