"""SQLAlchemy adapter – event, snapshot and token stores."""
from mp_eventstore.adapters.sqlalchemy.event_store import SqlAlchemyEventStore
from mp_eventstore.adapters.sqlalchemy.schema import create_schema, drop_schema, metadata
from mp_eventstore.adapters.sqlalchemy.session import SqlAlchemySessionFactory
from mp_eventstore.adapters.sqlalchemy.snapshot_store import SqlAlchemySnapshotStore
from mp_eventstore.adapters.sqlalchemy.token_store import SqlAlchemyTokenStore
from mp_eventstore.adapters.sqlalchemy.uow import SqlAlchemyUnitOfWork

__all__ = [
    "SqlAlchemyEventStore",
    "SqlAlchemySessionFactory",
    "SqlAlchemySnapshotStore",
    "SqlAlchemyTokenStore",
    "SqlAlchemyUnitOfWork",
    "create_schema",
    "drop_schema",
    "metadata",
]
