"""Application event sourcing – stores, streams, snapshots and tracking."""
from mp_eventstore.application.event_sourcing.aggregate import EventSourcedAggregate
from mp_eventstore.application.event_sourcing.cursor import CatchUpCursor
from mp_eventstore.application.event_sourcing.errors import (
    DuplicateEventError,
    EventDeserializationError,
    EventStoreError,
    OptimisticConcurrencyError,
    SnapshotCorruptError,
    StorageUnavailableError,
)
from mp_eventstore.application.event_sourcing.metadata import event_metadata
from mp_eventstore.application.event_sourcing.processor import (
    TrackingProcessor,
    default_inbound_pipeline,
)
from mp_eventstore.application.event_sourcing.repository import EventSourcedRepository
from mp_eventstore.application.event_sourcing.snapshot import (
    InMemorySnapshotStore,
    SnapshotRecord,
    SnapshotStore,
)
from mp_eventstore.application.event_sourcing.store import EventStore, InMemoryEventStore
from mp_eventstore.application.event_sourcing.stored_event import EventData, StoredEvent
from mp_eventstore.application.event_sourcing.token_store import InMemoryTokenStore, TokenStore
from mp_eventstore.application.event_sourcing.tracking import GlobalSequenceToken

__all__ = [
    "CatchUpCursor",
    "DuplicateEventError",
    "EventData",
    "EventDeserializationError",
    "EventSourcedAggregate",
    "EventSourcedRepository",
    "EventStore",
    "EventStoreError",
    "GlobalSequenceToken",
    "InMemoryEventStore",
    "InMemorySnapshotStore",
    "InMemoryTokenStore",
    "OptimisticConcurrencyError",
    "SnapshotCorruptError",
    "SnapshotRecord",
    "SnapshotStore",
    "StorageUnavailableError",
    "StoredEvent",
    "TokenStore",
    "TrackingProcessor",
    "default_inbound_pipeline",
]
