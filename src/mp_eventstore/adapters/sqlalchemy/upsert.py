"""SQLAlchemy adapter – dialect-aware ``INSERT … ON CONFLICT DO UPDATE``."""
from __future__ import annotations

from typing import Any, Callable

from sqlalchemy import Table
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession


async def upsert(
    session: AsyncSession,
    table: Table,
    values: dict[str, Any],
    key_columns: list[str],
    update: Callable[[Any], dict[str, Any]],
) -> None:
    """Insert *values* or, on a key conflict, apply ``update(excluded)`` to the row.

    *update* receives the dialect's ``excluded`` namespace and returns the
    ``SET`` clause, so counters can be bumped in the same statement.
    """
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        stmt = postgresql.insert(table).values(**values)
    elif dialect == "sqlite":
        stmt = sqlite.insert(table).values(**values)
    else:
        raise NotImplementedError(f"Upsert is not supported on dialect {dialect!r}")
    await session.execute(
        stmt.on_conflict_do_update(index_elements=key_columns, set_=update(stmt.excluded))
    )


__all__ = ["upsert"]
