"""Observability – structlog processors and get_logger helper.

``ContextProcessor`` injects correlation_id / tenant_id / user_id into log events.
``get_logger(name)`` returns a bound structlog logger.
"""
from __future__ import annotations

from typing import Any

import structlog

from mp_eventstore.kernel.ddd.tenant import TenantContext
from mp_eventstore.observability.correlation import CorrelationContext


class ContextProcessor:
    """structlog processor that injects the ambient request and tenant context.

    Injects the following fields when available:

    * ``correlation_id``
    * ``tenant_id`` (from :class:`TenantContext`, else the request context)
    * ``user_id``

    Explicitly bound values always win.

    Usage::

        structlog.configure(processors=[ContextProcessor(), ...])
    """

    def __call__(
        self,
        logger: Any,           # noqa: ARG002
        method_name: str,      # noqa: ARG002
        event_dict: dict[str, Any],
    ) -> dict[str, Any]:
        ctx = CorrelationContext.get()
        if ctx is not None:
            event_dict.setdefault("correlation_id", ctx.correlation_id)
            if ctx.user_id is not None:
                event_dict.setdefault("user_id", ctx.user_id)
        tenant = TenantContext.get()
        if tenant is not None:
            event_dict.setdefault("tenant_id", tenant.value)
        elif ctx is not None and ctx.tenant_id is not None:
            event_dict.setdefault("tenant_id", ctx.tenant_id)
        return event_dict


def get_logger(name: str | None = None, **initial_values: Any) -> Any:
    """Return a bound structlog logger.

    Parameters
    ----------
    name:
        Logger name (typically ``__name__`` of the calling module).
    **initial_values:
        Key-value pairs to bind on the returned logger.
    """
    logger = structlog.get_logger(name)
    if initial_values:
        logger = logger.bind(**initial_values)
    return logger


__all__ = ["ContextProcessor", "get_logger"]
