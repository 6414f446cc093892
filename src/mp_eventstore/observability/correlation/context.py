"""Observability – RequestContext, CorrelationContext."""
from __future__ import annotations

import contextlib
import contextvars
import dataclasses
from contextvars import ContextVar
from typing import Any, AsyncIterator

from mp_eventstore.kernel.types.ids import uuid7_str


@dataclasses.dataclass(frozen=True)
class RequestContext:
    """Ambient context for a single command / event handling execution."""
    correlation_id: str
    tenant_id: str | None = None
    user_id: str | None = None
    causation_id: str | None = None
    command_type: str | None = None

    @classmethod
    def new(cls, tenant_id: str | None = None, user_id: str | None = None) -> "RequestContext":
        return cls(correlation_id=uuid7_str(), tenant_id=tenant_id, user_id=user_id)

    @classmethod
    def from_metadata(cls, metadata: dict[str, Any]) -> "RequestContext":
        """Rebuild a context from event or command metadata (missing id → new one)."""
        return cls(
            correlation_id=str(metadata.get("correlation_id") or uuid7_str()),
            tenant_id=metadata.get("tenant_id"),
            user_id=metadata.get("user_id"),
            causation_id=metadata.get("causation_id"),
            command_type=metadata.get("command_type"),
        )


_CTX_VAR: ContextVar[RequestContext | None] = ContextVar("_mp_request_ctx", default=None)


class CorrelationContext:
    """Ambient correlation context stored in a ``ContextVar``."""

    @staticmethod
    def set(ctx: RequestContext) -> contextvars.Token[RequestContext | None]:
        return _CTX_VAR.set(ctx)

    @staticmethod
    def get() -> RequestContext | None:
        return _CTX_VAR.get()

    @staticmethod
    def require() -> RequestContext:
        ctx = _CTX_VAR.get()
        if ctx is None:
            raise RuntimeError("No RequestContext in current context")
        return ctx

    @staticmethod
    def get_or_new() -> RequestContext:
        ctx = _CTX_VAR.get()
        if ctx is None:
            ctx = RequestContext.new()
            _CTX_VAR.set(ctx)
        return ctx

    @staticmethod
    def reset(token: contextvars.Token[RequestContext | None]) -> None:
        _CTX_VAR.reset(token)

    @staticmethod
    def clear() -> None:
        _CTX_VAR.set(None)

    @staticmethod
    @contextlib.asynccontextmanager
    async def scoped(ctx: RequestContext) -> AsyncIterator[RequestContext]:
        """Install *ctx* for the duration of the block, restoring the previous one."""
        token = _CTX_VAR.set(ctx)
        try:
            yield ctx
        finally:
            _CTX_VAR.reset(token)


__all__ = ["CorrelationContext", "RequestContext"]
