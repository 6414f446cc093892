"""Application event sourcing – metadata stamped on produced events."""

from __future__ import annotations

from typing import Any

from mp_eventstore.kernel.ddd.tenant import TenantContext
from mp_eventstore.observability.correlation import CorrelationContext


def event_metadata(**extra: Any) -> dict[str, Any]:
    """Build event metadata from the ambient tenant and request context.

    Keys are only present when known: ``tenant_id``, ``correlation_id``,
    ``causation_id``, ``user_id``, ``command_type``.  *extra* wins over
    ambient values.

    Example::

        async with TenantContext.scoped("acme"):
            EventData("OrderPlaced", {"total": 10}, metadata=event_metadata())
    """
    metadata: dict[str, Any] = {}
    tenant = TenantContext.get()
    if tenant is not None:
        metadata["tenant_id"] = tenant.value
    ctx = CorrelationContext.get()
    if ctx is not None:
        metadata["correlation_id"] = ctx.correlation_id
        if ctx.causation_id is not None:
            metadata["causation_id"] = ctx.causation_id
        if ctx.user_id is not None:
            metadata["user_id"] = ctx.user_id
        if ctx.command_type is not None:
            metadata["command_type"] = ctx.command_type
        if tenant is None and ctx.tenant_id is not None:
            metadata["tenant_id"] = ctx.tenant_id
    metadata.update(extra)
    return metadata


__all__ = ["event_metadata"]
