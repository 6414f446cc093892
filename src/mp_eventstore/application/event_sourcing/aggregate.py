"""Application event sourcing – EventSourcedAggregate base class."""

from __future__ import annotations

import abc
from typing import Any

from mp_eventstore.application.event_sourcing.stored_event import StoredEvent
from mp_eventstore.kernel.ddd.aggregate import AggregateRoot


class EventSourcedAggregate(AggregateRoot, abc.ABC):
    """Aggregate root that can reconstruct its state by replaying stored events.

    Subclasses must implement :meth:`apply_stored_event` to update their
    state for each event type.  Override :meth:`snapshot_state` and
    :meth:`restore_snapshot` to take part in snapshotting.

    Example::

        class Account(EventSourcedAggregate):
            def __init__(self, id: EntityId) -> None:
                super().__init__(id)
                self.balance = 0

            def deposit(self, amount: int) -> None:
                self._raise_event(Deposited(amount=amount))
                self.balance += amount

            def apply_stored_event(self, event: StoredEvent) -> None:
                if event.event_type == "Deposited":
                    self.balance += event.payload["amount"]

            def snapshot_state(self) -> dict[str, Any]:
                return {"balance": self.balance}

            def restore_snapshot(self, state: dict[str, Any]) -> None:
                self.balance = state["balance"]
    """

    @abc.abstractmethod
    def apply_stored_event(self, event: StoredEvent) -> None:
        """Update internal state from a single persisted event.

        Called during event replay – must **not** raise domain events.
        """

    def snapshot_state(self) -> dict[str, Any] | None:
        """Return a JSON object capturing the current state, or ``None`` to never snapshot."""
        return None

    def restore_snapshot(self, state: dict[str, Any]) -> None:
        """Rebuild state from :meth:`snapshot_state` output."""
        raise NotImplementedError(f"{type(self).__name__} does not support snapshots")

    def _mark_replayed(self, sequence_number: int) -> None:
        self._version = sequence_number

    @classmethod
    def aggregate_type(cls) -> str:
        """Logical type stored with every event (defaults to the class name)."""
        return cls.__name__

    @classmethod
    def stream_id_for(cls, agg_id: object) -> str:
        """Build the canonical stream id: ``"<AggregateType>-<id>"``."""
        return f"{cls.aggregate_type()}-{agg_id}"


__all__ = ["EventSourcedAggregate"]
