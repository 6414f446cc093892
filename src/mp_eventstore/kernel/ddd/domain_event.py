"""Domain events raised by aggregates before they are persisted."""

from __future__ import annotations

import dataclasses
from datetime import UTC, datetime

from mp_eventstore.kernel.types.ids import uuid7_str


@dataclasses.dataclass(frozen=True, kw_only=True)
class DomainEvent:
    """Base class for domain events.

    Subclasses add their own payload fields; the event store persists them
    as the JSON payload of a :class:`~mp_eventstore.application.event_sourcing.StoredEvent`.

    Example::

        @dataclasses.dataclass(frozen=True)
        class OrderPlaced(DomainEvent):
            order_id: str
            total: int = 0
    """

    event_id: str = dataclasses.field(default_factory=uuid7_str)
    occurred_at: datetime = dataclasses.field(
        default_factory=lambda: datetime.now(UTC)
    )

    @property
    def event_type(self) -> str:
        return type(self).__name__


__all__ = ["DomainEvent"]
