"""Config settings – EventStoreSettings."""
from __future__ import annotations

import dataclasses

from mp_eventstore.config.settings.base import Settings
from mp_eventstore.config.validation import InvalidSettingValueError


@dataclasses.dataclass
class EventStoreSettings(Settings):
    """Settings of the event store, read from ``EVENTSTORE_*`` variables.

    Example::

        settings = EnvSettingsLoader().load(EventStoreSettings)
        store = SqlAlchemyEventStore.from_settings(settings)
    """

    _prefix = "EVENTSTORE"

    database_url: str
    echo_sql: bool = False
    batch_size: int = 100
    max_batch_size: int = 1000
    poll_interval_seconds: float = 0.2
    max_wait_seconds: float = 5.0
    max_payload_bytes: int = 1024 * 1024
    max_gap_span: int = 10_000
    require_tenant_context: bool = False
    snapshot_interval: int = 100

    def _validate(self) -> None:
        if not self.database_url:
            raise InvalidSettingValueError("database_url", self.database_url, "must not be empty")
        for name in ("batch_size", "max_batch_size", "max_payload_bytes", "max_gap_span"):
            value = getattr(self, name)
            if value < 1:
                raise InvalidSettingValueError(name, value, "must be >= 1")
        if self.batch_size > self.max_batch_size:
            raise InvalidSettingValueError(
                "batch_size", self.batch_size, f"must not exceed max_batch_size ({self.max_batch_size})"
            )
        if self.poll_interval_seconds <= 0:
            raise InvalidSettingValueError(
                "poll_interval_seconds", self.poll_interval_seconds, "must be > 0"
            )
        if self.max_wait_seconds < 0:
            raise InvalidSettingValueError("max_wait_seconds", self.max_wait_seconds, "must be >= 0")
        if self.snapshot_interval < 0:
            raise InvalidSettingValueError(
                "snapshot_interval", self.snapshot_interval, "must be >= 0 (0 disables snapshots)"
            )

    def store_options(self) -> dict[str, object]:
        """Keyword arguments shared by the event store constructors."""
        return {
            "max_payload_bytes": self.max_payload_bytes,
            "require_tenant_context": self.require_tenant_context,
            "batch_size": self.batch_size,
            "max_batch_size": self.max_batch_size,
            "poll_interval": self.poll_interval_seconds,
            "max_wait": self.max_wait_seconds,
            "max_gap_span": self.max_gap_span,
        }


__all__ = ["EventStoreSettings"]
