"""SQLAlchemy adapter – translation of driver errors into event store errors."""
from __future__ import annotations

import contextlib
import re
from typing import AsyncIterator

from sqlalchemy.exc import DBAPIError, IntegrityError, InterfaceError, OperationalError

from mp_eventstore.adapters.sqlalchemy.schema import EVENT_ID_CONSTRAINT, SEQUENCE_CONSTRAINT
from mp_eventstore.application.event_sourcing.errors import StorageUnavailableError
from mp_eventstore.observability.logging import get_logger

log = get_logger(__name__)


@contextlib.asynccontextmanager
async def storage_errors(operation: str) -> AsyncIterator[None]:
    """Map connectivity failures raised inside the block to :class:`StorageUnavailableError`.

    Integrity and programming errors pass through untouched.
    """
    try:
        yield
    except (OperationalError, InterfaceError) as exc:
        log.warning("event_store.storage_unavailable", operation=operation, error=str(exc.orig))
        raise StorageUnavailableError(f"{operation} failed: {exc.orig}", cause=exc) from exc
    except DBAPIError as exc:
        if not exc.connection_invalidated:
            raise
        log.warning("event_store.connection_invalidated", operation=operation)
        raise StorageUnavailableError(f"{operation} failed: connection lost", cause=exc) from exc
    except OSError as exc:
        log.warning("event_store.storage_unavailable", operation=operation, error=str(exc))
        raise StorageUnavailableError(f"{operation} failed: {exc}", cause=exc) from exc


_KIND_BY_CONSTRAINT = {SEQUENCE_CONSTRAINT: "sequence", EVENT_ID_CONSTRAINT: "event_id"}
_KIND_BY_COLUMNS = {
    frozenset({"tenant_id", "aggregate_id", "sequence_number"}): "sequence",
    frozenset({"event_id"}): "event_id",
}
_QUOTED_CONSTRAINT = re.compile(r'constraint "([^"]+)"')
_SQLITE_UNIQUE = "UNIQUE constraint failed:"


def violated_constraint(exc: IntegrityError) -> str | None:
    """Return ``"sequence"``, ``"event_id"`` or ``None`` for an integrity error.

    A constraint name (exposed by asyncpg and psycopg, or quoted in the
    message) is compared exactly; row values in the message are never
    searched.  SQLite reports column names instead, which are matched as
    a set.
    """
    orig = exc.orig
    name = getattr(getattr(orig, "__cause__", None), "constraint_name", None)
    if name is None:
        name = getattr(getattr(orig, "diag", None), "constraint_name", None)
    message = str(orig)
    if name is None and message.startswith(_SQLITE_UNIQUE):
        columns = frozenset(
            column.strip().rsplit(".", 1)[-1] for column in message[len(_SQLITE_UNIQUE):].split(",")
        )
        return _KIND_BY_COLUMNS.get(columns)
    if name is None:
        quoted = _QUOTED_CONSTRAINT.search(message)
        name = quoted.group(1) if quoted else None
    return _KIND_BY_CONSTRAINT.get(name) if name else None


__all__ = ["storage_errors", "violated_constraint"]
