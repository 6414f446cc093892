"""Kernel time – recording clocks.

Every timestamp the store persists (``recorded_at`` of events, snapshots
and tokens) comes from a :class:`Clock` and is timezone-aware UTC.
"""
from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Protocol


def ensure_utc(value: datetime) -> datetime:
    """Return *value* in UTC; naive values (backends without tz support) are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class Clock(Protocol):
    """Port: source of recording timestamps."""

    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return datetime.now(UTC)


class FrozenClock:
    """Clock pinned to one instant until moved explicitly.

    The instant is normalised with :func:`ensure_utc`, so tests compare
    ``recorded_at`` values read back from any backend with ``==``.
    """

    def __init__(self, fixed: datetime) -> None:
        self._fixed = ensure_utc(fixed)

    def now(self) -> datetime:
        return self._fixed

    def advance(self, delta: timedelta | None = None, **kwargs: float) -> datetime:
        """Move forward by *delta* or by ``timedelta(**kwargs)``; return the new instant."""
        step = delta if delta is not None else timedelta(**kwargs)
        if step < timedelta(0):
            raise ValueError("FrozenClock cannot move backwards")
        self._fixed += step
        return self._fixed


__all__ = ["Clock", "FrozenClock", "SystemClock", "ensure_utc"]
