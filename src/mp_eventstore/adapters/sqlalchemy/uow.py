"""SQLAlchemy adapter – SqlAlchemyUnitOfWork."""
from __future__ import annotations

from typing import Callable

from sqlalchemy.ext.asyncio import AsyncSession

from mp_eventstore.kernel.ddd import UnitOfWork


class SqlAlchemyUnitOfWork(UnitOfWork):
    """SQLAlchemy async unit of work around one :class:`AsyncSession`.

    The session is created on enter; the transaction itself starts lazily
    with the first statement (``BEGIN IMMEDIATE`` on SQLite, see
    :class:`SqlAlchemySessionFactory`).
    """

    session: AsyncSession

    def __init__(self, session_factory: Callable[[], AsyncSession]) -> None:
        self._factory = session_factory

    async def _begin(self) -> None:
        self.session = self._factory()

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()

    async def _close(self) -> None:
        await self.session.close()


__all__ = ["SqlAlchemyUnitOfWork"]
