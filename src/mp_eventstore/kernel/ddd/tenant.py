"""Multi-tenancy context scoped to the current unit of work."""

from __future__ import annotations

import contextlib
import contextvars
import functools
import inspect
from contextvars import ContextVar
from typing import Any, AsyncIterator, Callable, Iterator, TypeVar

from mp_eventstore.kernel.errors.domain import MissingTenantError, TenantMismatchError
from mp_eventstore.kernel.types.ids import TenantId

T = TypeVar("T")

_TENANT_CTX_VAR: ContextVar[TenantId | None] = ContextVar(
    "_mp_tenant_ctx", default=None
)


class TenantContext:
    """Ambient tenant context using ``contextvars``.

    Every asyncio task runs on a copy of its parent's context, so a child
    task inherits the tenant *by value*: setting a tenant inside the child
    never leaks back to the parent or to sibling tasks.  Threads start
    with an empty context; use :meth:`bind` to hand the current tenant to
    a worker thread.

    Prefer :meth:`scoped` / :meth:`using` over bare :meth:`set` /
    :meth:`clear` pairs: they restore the previous value on every exit
    path, including cancellation.
    """

    @staticmethod
    def set(tenant_id: TenantId | str) -> contextvars.Token[TenantId | None]:
        return _TENANT_CTX_VAR.set(TenantId.of(tenant_id))

    @staticmethod
    def get() -> TenantId | None:
        return _TENANT_CTX_VAR.get()

    @staticmethod
    def require(operation: str = "operation") -> TenantId:
        tenant = _TENANT_CTX_VAR.get()
        if tenant is None:
            raise MissingTenantError(operation)
        return tenant

    @staticmethod
    def reset(token: contextvars.Token[TenantId | None]) -> None:
        _TENANT_CTX_VAR.reset(token)

    @staticmethod
    def clear() -> None:
        _TENANT_CTX_VAR.set(None)

    @staticmethod
    @contextlib.asynccontextmanager
    async def scoped(tenant_id: TenantId | str) -> AsyncIterator[TenantId]:
        """Async context manager – sets *tenant_id* for the duration of the block.

        The previous tenant (if any) is restored on exit, even on error or
        cancellation.

        Example::

            async with TenantContext.scoped("acme"):
                await handler.handle(cmd)
        """
        tenant = TenantId.of(tenant_id)
        token = _TENANT_CTX_VAR.set(tenant)
        try:
            yield tenant
        finally:
            _TENANT_CTX_VAR.reset(token)

    @staticmethod
    @contextlib.contextmanager
    def using(tenant_id: TenantId | str) -> Iterator[TenantId]:
        """Synchronous counterpart of :meth:`scoped`."""
        tenant = TenantId.of(tenant_id)
        token = _TENANT_CTX_VAR.set(tenant)
        try:
            yield tenant
        finally:
            _TENANT_CTX_VAR.reset(token)

    @staticmethod
    async def run_scoped(
        tenant_id: TenantId | str,
        fn: Callable[..., Any],
        *args: Any,
        **kwargs: Any,
    ) -> Any:
        """Run *fn* (sync or async) with *tenant_id* established, then tear it down."""
        async with TenantContext.scoped(tenant_id):
            result = fn(*args, **kwargs)
            if inspect.isawaitable(result):
                result = await result
            return result

    @staticmethod
    def bind(fn: Callable[..., T]) -> Callable[..., T]:
        """Capture the current tenant so *fn* sees it when run on another thread.

        Each call runs in a fresh context copy, so the bound callable may be
        invoked concurrently from several pool threads.

        Example::

            loop.run_in_executor(None, TenantContext.bind(export_report))
        """
        captured = _TENANT_CTX_VAR.get()

        def _run(*args: Any, **kwargs: Any) -> T:
            token = _TENANT_CTX_VAR.set(captured)
            try:
                return fn(*args, **kwargs)
            finally:
                _TENANT_CTX_VAR.reset(token)

        @functools.wraps(fn)
        def _bound(*args: Any, **kwargs: Any) -> T:
            return contextvars.copy_context().run(_run, *args, **kwargs)

        return _bound

    @staticmethod
    def ensure_matches(
        tenant_id: TenantId | str,
        operation: str = "operation",
        *,
        require: bool = False,
    ) -> TenantId:
        """Validate an explicitly passed tenant against the active context.

        Raises :class:`TenantMismatchError` when a different tenant is
        active, and :class:`MissingTenantError` when *require* is set and no
        tenant is active.
        """
        tenant = TenantId.of(tenant_id)
        active = _TENANT_CTX_VAR.get()
        if active is None:
            if require:
                raise MissingTenantError(operation)
            return tenant
        if active != tenant:
            raise TenantMismatchError(tenant.value, active.value, operation)
        return tenant


__all__ = ["TenantContext"]
