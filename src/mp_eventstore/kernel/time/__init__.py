"""Kernel time – Clock port + implementations."""
from mp_eventstore.kernel.time.clock import Clock, FrozenClock, SystemClock, ensure_utc

__all__ = ["Clock", "FrozenClock", "SystemClock", "ensure_utc"]
