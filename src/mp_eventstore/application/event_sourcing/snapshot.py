"""Application event sourcing – SnapshotStore port and InMemorySnapshotStore."""

from __future__ import annotations

import abc
import dataclasses
from datetime import datetime
from typing import Any

from mp_eventstore.application.event_sourcing.errors import SnapshotCorruptError
from mp_eventstore.application.event_sourcing.serialization import dumps_object, loads_object
from mp_eventstore.kernel.ddd.tenant import TenantContext
from mp_eventstore.kernel.errors import ValidationError
from mp_eventstore.kernel.time import Clock, SystemClock
from mp_eventstore.observability.logging import get_logger

log = get_logger(__name__)


@dataclasses.dataclass(frozen=True)
class SnapshotRecord:
    """The single live snapshot of one aggregate."""

    tenant_id: str
    aggregate_id: str
    aggregate_type: str
    last_sequence_number: int
    state_payload: dict[str, Any]
    version: int
    """Incremented on every overwrite, starting at 1."""
    recorded_at: datetime


class SnapshotStore(abc.ABC):
    """Port – store and retrieve aggregate state snapshots.

    One row per ``(tenant_id, aggregate_id)``; saving again overwrites it
    (last writer wins).  Snapshots are an optimisation only: a corrupt one
    is logged and reported as absent so callers replay from sequence 1.
    """

    def __init__(
        self,
        *,
        clock: Clock | None = None,
        require_tenant_context: bool = False,
    ) -> None:
        self._clock: Clock = clock or SystemClock()
        self._require_tenant_context = require_tenant_context

    async def save_snapshot(
        self,
        tenant_id: str,
        aggregate_id: str,
        last_sequence_number: int,
        state_payload: dict[str, Any],
        aggregate_type: str = "",
    ) -> None:
        """Upsert the snapshot of *aggregate_id* taken after *last_sequence_number*."""
        tenant = TenantContext.ensure_matches(
            tenant_id, "save_snapshot", require=self._require_tenant_context
        ).value
        if not isinstance(aggregate_id, str) or not aggregate_id.strip():
            raise ValidationError("aggregate_id must be a non-blank string")
        if isinstance(last_sequence_number, bool) or not isinstance(last_sequence_number, int):
            raise ValidationError("last_sequence_number must be an integer")
        if last_sequence_number < 0:
            raise ValidationError("last_sequence_number must be >= 0")
        state_json = dumps_object(state_payload, "state_payload")
        await self._upsert(
            tenant, aggregate_id, aggregate_type, last_sequence_number, state_json, self._clock.now()
        )
        log.debug(
            "snapshot.saved",
            tenant_id=tenant,
            aggregate_id=aggregate_id,
            last_sequence_number=last_sequence_number,
        )

    async def load_snapshot(self, tenant_id: str, aggregate_id: str) -> SnapshotRecord | None:
        """Return the live snapshot, or ``None`` when absent or unreadable."""
        tenant = TenantContext.ensure_matches(
            tenant_id, "load_snapshot", require=self._require_tenant_context
        ).value
        try:
            return await self._select(tenant, aggregate_id)
        except SnapshotCorruptError as exc:
            log.warning(
                "snapshot.corrupt",
                tenant_id=tenant,
                aggregate_id=aggregate_id,
                error=exc.message,
            )
            return None

    @staticmethod
    def _decode_state(tenant_id: str, aggregate_id: str, raw: str | bytes | None) -> dict[str, Any]:
        try:
            return loads_object(raw)
        except (TypeError, ValueError) as exc:
            raise SnapshotCorruptError(tenant_id, aggregate_id, str(exc), cause=exc) from exc

    @abc.abstractmethod
    async def _upsert(
        self,
        tenant_id: str,
        aggregate_id: str,
        aggregate_type: str,
        last_sequence_number: int,
        state_json: str,
        recorded_at: datetime,
    ) -> None:
        """Insert or overwrite the row, incrementing ``version`` atomically."""

    @abc.abstractmethod
    async def _select(self, tenant_id: str, aggregate_id: str) -> SnapshotRecord | None:
        """Return the row or ``None``; raise :class:`SnapshotCorruptError` if undecodable."""


class InMemorySnapshotStore(SnapshotStore):
    """In-memory :class:`SnapshotStore` for tests and local development.

    State is kept as JSON text so loads never alias the saved dict.
    """

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        # (tenant_id, aggregate_id) → (aggregate_type, last_seq, state_json, version, recorded_at)
        self._rows: dict[tuple[str, str], tuple[str, int, str, int, datetime]] = {}

    async def _upsert(
        self,
        tenant_id: str,
        aggregate_id: str,
        aggregate_type: str,
        last_sequence_number: int,
        state_json: str,
        recorded_at: datetime,
    ) -> None:
        key = (tenant_id, aggregate_id)
        previous = self._rows.get(key)
        version = 1 if previous is None else previous[3] + 1
        self._rows[key] = (aggregate_type, last_sequence_number, state_json, version, recorded_at)

    async def _select(self, tenant_id: str, aggregate_id: str) -> SnapshotRecord | None:
        row = self._rows.get((tenant_id, aggregate_id))
        if row is None:
            return None
        aggregate_type, last_seq, state_json, version, recorded_at = row
        return SnapshotRecord(
            tenant_id=tenant_id,
            aggregate_id=aggregate_id,
            aggregate_type=aggregate_type,
            last_sequence_number=last_seq,
            state_payload=self._decode_state(tenant_id, aggregate_id, state_json),
            version=version,
            recorded_at=recorded_at,
        )


__all__ = ["InMemorySnapshotStore", "SnapshotRecord", "SnapshotStore"]
