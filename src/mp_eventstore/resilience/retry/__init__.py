"""Resilience – tenacity-backed retry."""
from mp_eventstore.resilience.retry.tenacity_adapter import TenacityRetryPolicy, is_retryable

__all__ = ["TenacityRetryPolicy", "is_retryable"]
