"""SQLAlchemy adapter – table definitions (SQLAlchemy Core)."""
from __future__ import annotations

from typing import Any

from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    Index,
    Integer,
    MetaData,
    PrimaryKeyConstraint,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.ext.asyncio import AsyncEngine

metadata = MetaData()

# SQLite only autoincrements an INTEGER PRIMARY KEY (the rowid alias).
_GlobalSequence = BigInteger().with_variant(Integer(), "sqlite")

SEQUENCE_CONSTRAINT = "uq_domain_events_tenant_aggregate_sequence"
EVENT_ID_CONSTRAINT = "uq_domain_events_event_id"

domain_events = Table(
    "domain_events",
    metadata,
    Column("global_sequence", _GlobalSequence, primary_key=True, autoincrement=True),
    Column("event_id", String(64), nullable=False),
    Column("stream_id", String(512), nullable=False),
    Column("aggregate_id", String(255), nullable=False),
    Column("aggregate_type", String(255), nullable=False),
    Column("tenant_id", String(64), nullable=False),
    Column("sequence_number", Integer, nullable=False),
    Column("event_type", String(255), nullable=False),
    Column("payload", Text, nullable=False),
    Column("metadata", Text, nullable=False, default="{}"),
    Column("recorded_at", DateTime(timezone=True), nullable=False),
    UniqueConstraint("event_id", name=EVENT_ID_CONSTRAINT),
    UniqueConstraint("tenant_id", "aggregate_id", "sequence_number", name=SEQUENCE_CONSTRAINT),
    Index("ix_domain_events_stream", "stream_id", "sequence_number"),
    Index("ix_domain_events_tenant_type", "tenant_id", "event_type"),
    sqlite_autoincrement=True,
)

aggregate_snapshots = Table(
    "aggregate_snapshots",
    metadata,
    Column("tenant_id", String(64), nullable=False),
    Column("aggregate_id", String(255), nullable=False),
    Column("aggregate_type", String(255), nullable=False, default=""),
    Column("last_sequence_number", Integer, nullable=False),
    Column("state_payload", Text, nullable=False),
    Column("version", Integer, nullable=False, default=1),
    Column("recorded_at", DateTime(timezone=True), nullable=False),
    PrimaryKeyConstraint("tenant_id", "aggregate_id", name="pk_aggregate_snapshots"),
)

tracking_tokens = Table(
    "tracking_tokens",
    metadata,
    Column("processor_name", String(255), primary_key=True),
    Column("token", Text, nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)


async def create_schema(bind: Any) -> None:
    """Create all event store tables if they do not exist.

    *bind* should be an :class:`~sqlalchemy.ext.asyncio.AsyncEngine` or a
    synchronous :class:`~sqlalchemy.engine.Engine`.
    """
    if isinstance(bind, AsyncEngine):
        async with bind.begin() as conn:
            await conn.run_sync(metadata.create_all)
    else:
        metadata.create_all(bind)


async def drop_schema(bind: Any) -> None:
    """Drop all event store tables (tests and local development only)."""
    if isinstance(bind, AsyncEngine):
        async with bind.begin() as conn:
            await conn.run_sync(metadata.drop_all)
    else:
        metadata.drop_all(bind)


__all__ = [
    "EVENT_ID_CONSTRAINT",
    "SEQUENCE_CONSTRAINT",
    "aggregate_snapshots",
    "create_schema",
    "domain_events",
    "drop_schema",
    "metadata",
    "tracking_tokens",
]
