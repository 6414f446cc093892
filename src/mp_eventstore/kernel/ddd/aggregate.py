"""AggregateRoot – consistency boundary that records domain events."""

from __future__ import annotations

from mp_eventstore.kernel.ddd.domain_event import DomainEvent
from mp_eventstore.kernel.types.ids import EntityId


class AggregateRoot:
    """Aggregate root – identified by ``id``, owns pending domain events.

    ``version`` is the sequence number of the last event applied, counting
    pending events that have not been persisted yet.  Equality is by type
    and id only; two copies loaded at different versions are equal.
    """

    _id: EntityId
    _version: int
    _events: list[DomainEvent]

    def __init__(self, id: EntityId | str) -> None:  # noqa: A002
        self._id = id if isinstance(id, EntityId) else EntityId(id)
        self._version = 0
        self._events = []

    @property
    def id(self) -> EntityId:
        return self._id

    @property
    def version(self) -> int:
        return self._version

    def _raise_event(self, event: DomainEvent) -> None:
        """Record a domain event and bump the version."""
        self._events.append(event)
        self._version += 1

    def pending_events(self) -> list[DomainEvent]:
        """Return pending domain events without clearing them."""
        return list(self._events)

    def pull_events(self) -> list[DomainEvent]:
        """Return and clear pending domain events."""
        events = list(self._events)
        self._events.clear()
        return events

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, type(self)):
            return NotImplemented
        return self._id == other._id

    def __hash__(self) -> int:
        return hash((type(self), self._id))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self._id.value!r}, version={self._version})"


__all__ = ["AggregateRoot"]
