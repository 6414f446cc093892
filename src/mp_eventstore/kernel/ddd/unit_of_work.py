"""Unit of Work port – transactional boundary of one store call."""

from __future__ import annotations

import abc
from typing import Any, Self


class UnitOfWork(abc.ABC):
    """Port: one transaction, opened on enter and always released on exit.

    Commits when the ``async with`` block exits normally and rolls back on
    any exception, ``asyncio.CancelledError`` included.  :meth:`_close`
    runs even when commit or rollback fail, so a cancelled append never
    leaves a connection checked out with an open transaction.
    """

    async def __aenter__(self) -> Self:
        await self._begin()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        try:
            if exc_type is None:
                await self.commit()
            else:
                await self.rollback()
        finally:
            await self._close()

    @abc.abstractmethod
    async def _begin(self) -> None: ...

    @abc.abstractmethod
    async def commit(self) -> None: ...

    @abc.abstractmethod
    async def rollback(self) -> None: ...

    @abc.abstractmethod
    async def _close(self) -> None: ...


__all__ = ["UnitOfWork"]
