"""Observability – correlation context and structured logging."""

from mp_eventstore.observability.correlation import CorrelationContext, RequestContext
from mp_eventstore.observability.logging import ContextProcessor, JsonLoggerFactory, get_logger

__all__ = [
    "ContextProcessor",
    "CorrelationContext",
    "JsonLoggerFactory",
    "RequestContext",
    "get_logger",
]
