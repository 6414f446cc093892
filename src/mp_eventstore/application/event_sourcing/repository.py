"""Application event sourcing – EventSourcedRepository."""

from __future__ import annotations

import abc
import dataclasses
import json
from typing import Any, Callable, Generic, TypeVar

from mp_eventstore.application.event_sourcing.aggregate import EventSourcedAggregate
from mp_eventstore.application.event_sourcing.metadata import event_metadata
from mp_eventstore.application.event_sourcing.snapshot import SnapshotStore
from mp_eventstore.application.event_sourcing.store import EventStore
from mp_eventstore.application.event_sourcing.stored_event import EventData
from mp_eventstore.kernel.ddd.domain_event import DomainEvent
from mp_eventstore.kernel.ddd.tenant import TenantContext
from mp_eventstore.observability.logging import get_logger

T = TypeVar("T", bound=EventSourcedAggregate)

log = get_logger(__name__)

_ENVELOPE_FIELDS = frozenset({"event_id", "occurred_at"})


def _default_serialise(event: DomainEvent) -> dict[str, Any]:
    """Turn a domain event's own fields into a JSON object (best-effort)."""
    data: dict[str, Any] = {}
    for field in dataclasses.fields(event):
        if field.name in _ENVELOPE_FIELDS:
            continue
        val = getattr(event, field.name)
        try:
            json.dumps(val)
            data[field.name] = val
        except (TypeError, ValueError):
            data[field.name] = str(val)
    return data


class EventSourcedRepository(Generic[T], abc.ABC):
    """Generic repository for event-sourced aggregates of the active tenant.

    The tenant is taken from :class:`TenantContext` (``require()``), so
    loads and saves cannot cross tenants by accident.  With a
    :class:`SnapshotStore`, :meth:`load` starts from the latest snapshot and
    :meth:`save` writes a new one whenever the version crosses a multiple
    of ``snapshot_interval``.

    Example::

        class AccountRepository(EventSourcedRepository[Account]):
            def _aggregate_class(self) -> type[Account]:
                return Account

            def _create_empty(self, agg_id: str) -> Account:
                return Account(EntityId(agg_id))

        async with TenantContext.scoped("acme"):
            account = await repo.load("acc-1")
            account.deposit(10)
            await repo.save(account)
    """

    def __init__(
        self,
        store: EventStore,
        snapshots: SnapshotStore | None = None,
        *,
        snapshot_interval: int = 100,
        serialise: Callable[[DomainEvent], dict[str, Any]] | None = None,
        metadata_factory: Callable[[DomainEvent], dict[str, Any]] | None = None,
    ) -> None:
        self._store = store
        self._snapshots = snapshots
        self._snapshot_interval = snapshot_interval
        self._serialise = serialise or _default_serialise
        self._metadata_factory = metadata_factory or (lambda _: {})

    @abc.abstractmethod
    def _aggregate_class(self) -> type[T]:
        """Return the concrete aggregate type."""

    @abc.abstractmethod
    def _create_empty(self, agg_id: str) -> T:
        """Return a blank aggregate instance with *agg_id*."""

    async def load(self, agg_id: str) -> T | None:
        """Rehydrate the aggregate; ``None`` if it has neither snapshot nor events."""
        tenant = TenantContext.require("load").value
        agg: T | None = None
        after = 0
        if self._snapshots is not None:
            snapshot = await self._snapshots.load_snapshot(tenant, agg_id)
            if snapshot is not None:
                agg = self._create_empty(agg_id)
                agg.restore_snapshot(snapshot.state_payload)
                agg._mark_replayed(snapshot.last_sequence_number)  # noqa: SLF001
                after = snapshot.last_sequence_number
        events = await self._store.read_events_by_aggregate(tenant, agg_id, after_sequence=after)
        if agg is None:
            if not events:
                return None
            agg = self._create_empty(agg_id)
        for event in events:
            agg.apply_stored_event(event)
            agg._mark_replayed(event.sequence_number)  # noqa: SLF001
        return agg

    async def save(self, agg: T) -> int:
        """Append pending domain events; return the aggregate's new version.

        Pending events are only cleared once the append succeeded, so a
        conflicting save leaves the aggregate untouched.  A failing snapshot
        is logged and does not fail the save.
        """
        tenant = TenantContext.require("save").value
        domain_events = agg.pending_events()
        if not domain_events:
            return agg.version

        cls = self._aggregate_class()
        agg_id = str(agg.id)
        prior_version = agg.version - len(domain_events)
        batch = [
            EventData(
                event_type=de.event_type,
                payload=self._serialise(de),
                metadata=event_metadata(
                    occurred_at=de.occurred_at.isoformat(), **self._metadata_factory(de)
                ),
                event_id=de.event_id,
            )
            for de in domain_events
        ]
        new_version = await self._store.append_events(
            tenant, agg_id, cls.aggregate_type(), prior_version, batch
        )
        agg.pull_events()

        if self._should_snapshot(prior_version, new_version):
            state = agg.snapshot_state()
            if state is not None and self._snapshots is not None:
                try:
                    await self._snapshots.save_snapshot(
                        tenant, agg_id, new_version, state, aggregate_type=cls.aggregate_type()
                    )
                except Exception as exc:
                    # the events are committed; the next load replays them instead
                    log.warning(
                        "repository.snapshot_failed",
                        aggregate_id=agg_id,
                        version=new_version,
                        error=type(exc).__name__,
                        exc_info=True,
                    )
                else:
                    log.info("repository.snapshot_taken", aggregate_id=agg_id, version=new_version)
        return new_version

    def _should_snapshot(self, prior_version: int, new_version: int) -> bool:
        if self._snapshots is None or self._snapshot_interval <= 0:
            return False
        return prior_version // self._snapshot_interval != new_version // self._snapshot_interval


__all__ = ["EventSourcedRepository"]
