"""Application pipeline – tenant-aware interceptors.

Outbound (command dispatch) and inbound (event handling) middlewares that
establish :class:`TenantContext` for the downstream handler and tear it
down afterwards.
"""
from __future__ import annotations

from typing import Any

from mp_eventstore.application.pipeline.pipeline import Middleware, Next
from mp_eventstore.kernel.ddd.tenant import TenantContext
from mp_eventstore.kernel.errors import MissingTenantError, TenantMismatchError
from mp_eventstore.kernel.types.ids import TenantId, uuid7_str
from mp_eventstore.observability.correlation import CorrelationContext, RequestContext


class TenantStampingMiddleware(Middleware):
    """Resolve the tenant of an outgoing command and stamp it into the metadata.

    The tenant is taken from ``metadata["tenant_id"]`` or, failing that,
    from the active :class:`TenantContext`.  Both present but different →
    :class:`TenantMismatchError`.  Neither present → :class:`MissingTenantError`
    when the command requires a tenant (``Command.requires_tenant``,
    default ``require_by_default``), otherwise the message passes through
    unstamped.  The rest of the chain runs inside ``TenantContext.scoped``.
    """

    def __init__(self, require_by_default: bool = True) -> None:
        self._require_by_default = require_by_default

    def _requires_tenant(self, request: Any) -> bool:
        command = getattr(request, "command", request)
        return bool(getattr(command, "requires_tenant", self._require_by_default))

    async def __call__(self, request: Any, next_: Next) -> Any:
        metadata: dict[str, Any] = getattr(request, "metadata", None) or {}
        command_type = getattr(request, "command_type", None) or type(request).__name__
        operation = f"dispatch of {command_type}"
        stamped = metadata.get("tenant_id")
        active = TenantContext.get()

        if stamped:
            tenant = TenantId.of(stamped)
            if active is not None and active != tenant:
                raise TenantMismatchError(tenant.value, active.value, operation)
        elif active is not None:
            tenant = active
        elif self._requires_tenant(request):
            raise MissingTenantError(operation)
        else:
            return await next_(request)

        if hasattr(request, "and_metadata"):
            request = request.and_metadata(tenant_id=tenant.value)
        async with TenantContext.scoped(tenant):
            return await next_(request)


class TenantRestoringMiddleware(Middleware):
    """Establish the tenant of an incoming event around its handler.

    Live and replayed events are treated the same way: the tenant comes
    from ``event.tenant_id`` only, and the previous context is restored
    when the handler returns or raises.
    """

    async def __call__(self, request: Any, next_: Next) -> Any:
        tenant_id = getattr(request, "tenant_id", None)
        if not tenant_id:
            raise MissingTenantError(f"handling of {type(request).__name__}")
        async with TenantContext.scoped(tenant_id):
            return await next_(request)


class CorrelationRestoringMiddleware(Middleware):
    """Rebuild the :class:`RequestContext` of an incoming event from its metadata.

    The event's own id becomes the causation id, so anything the handler
    produces points back at it.
    """

    async def __call__(self, request: Any, next_: Next) -> Any:
        metadata: dict[str, Any] = getattr(request, "metadata", None) or {}
        ctx = RequestContext(
            correlation_id=str(metadata.get("correlation_id") or uuid7_str()),
            tenant_id=getattr(request, "tenant_id", None) or metadata.get("tenant_id"),
            user_id=metadata.get("user_id"),
            causation_id=getattr(request, "event_id", None),
            command_type=metadata.get("command_type"),
        )
        async with CorrelationContext.scoped(ctx):
            return await next_(request)


__all__ = [
    "CorrelationRestoringMiddleware",
    "TenantRestoringMiddleware",
    "TenantStampingMiddleware",
]
