"""Application pipeline – built-in middleware implementations."""
from __future__ import annotations

import time
from typing import Any

import structlog

from mp_eventstore.application.pipeline.pipeline import Middleware, Next
from mp_eventstore.kernel.ddd.tenant import TenantContext
from mp_eventstore.kernel.types.ids import uuid7_str
from mp_eventstore.observability.correlation import CorrelationContext, RequestContext


def _request_name(request: Any) -> str:
    return getattr(request, "command_type", None) or getattr(request, "event_type", None) or type(request).__name__


class LoggingMiddleware(Middleware):
    """Log request start/end with timing."""

    async def __call__(self, request: Any, next_: Next) -> Any:
        name = _request_name(request)
        start = time.perf_counter()
        try:
            result = await next_(request)
        except Exception:
            duration = (time.perf_counter() - start) * 1000
            structlog.get_logger().error("use_case.failed", request=name, duration_ms=round(duration, 2))
            raise
        duration = (time.perf_counter() - start) * 1000
        structlog.get_logger().info("use_case.completed", request=name, duration_ms=round(duration, 2))
        return result


class CorrelationMiddleware(Middleware):
    """Stamp ``correlation_id`` / ``command_type`` on a command message and
    install a :class:`RequestContext` for the handler.

    The correlation id comes from the message metadata, then the ambient
    context, else a new one.  The message id becomes the causation id of
    everything the handler produces.
    """

    async def __call__(self, request: Any, next_: Next) -> Any:
        metadata: dict[str, Any] = getattr(request, "metadata", None) or {}
        current = CorrelationContext.get()
        correlation_id = (
            metadata.get("correlation_id")
            or (current.correlation_id if current is not None else None)
            or uuid7_str()
        )
        command_type = getattr(request, "command_type", None) or type(request).__name__
        user_id = metadata.get("user_id") or (current.user_id if current is not None else None)
        if hasattr(request, "and_metadata"):
            request = request.and_metadata(correlation_id=correlation_id, command_type=command_type)
        tenant = TenantContext.get()
        ctx = RequestContext(
            correlation_id=correlation_id,
            tenant_id=tenant.value if tenant is not None else metadata.get("tenant_id"),
            user_id=user_id,
            causation_id=getattr(request, "message_id", None),
            command_type=command_type,
        )
        async with CorrelationContext.scoped(ctx):
            return await next_(request)


class ValidationMiddleware(Middleware):
    """Call ``request.validate()`` if it exists."""

    async def __call__(self, request: Any, next_: Next) -> Any:
        validate = getattr(request, "validate", None)
        if callable(validate):
            validate()
        return await next_(request)


__all__ = [
    "CorrelationMiddleware",
    "LoggingMiddleware",
    "ValidationMiddleware",
]
