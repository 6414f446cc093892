"""Observability – correlation context."""
from mp_eventstore.observability.correlation.context import CorrelationContext, RequestContext

__all__ = ["CorrelationContext", "RequestContext"]
