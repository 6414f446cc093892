"""Resilience – retry policies for transient storage failures."""

from mp_eventstore.resilience.retry import TenacityRetryPolicy

__all__ = ["TenacityRetryPolicy"]
