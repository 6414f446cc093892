"""Application pipeline – Middleware base and the Pipeline that chains them.

The same chain type runs both directions: outbound around command
handlers (tenant and correlation stamped onto the message) and inbound
around event handlers (tenant and correlation restored from the event).
"""
from __future__ import annotations

import abc
import functools
from typing import Any, Awaitable, Callable, Iterable

Handler = Callable[[Any], Awaitable[Any]]
Next = Callable[[Any], Awaitable[Any]]


class Middleware(abc.ABC):
    """Single node in the chain; calls ``next_`` to continue or returns early."""

    @abc.abstractmethod
    async def __call__(self, request: Any, next_: Next) -> Any: ...


class Pipeline:
    """Ordered middleware around a terminal handler; first added runs outermost."""

    def __init__(self, middlewares: Iterable[Middleware] = ()) -> None:
        self._middlewares: list[Middleware] = list(middlewares)

    def add(self, middleware: Middleware) -> "Pipeline":
        self._middlewares.append(middleware)
        return self

    @property
    def middlewares(self) -> tuple[Middleware, ...]:
        return tuple(self._middlewares)

    def bind(self, handler: Handler) -> Handler:
        """Return *handler* wrapped by every middleware, ready to be called."""
        chain = handler
        for middleware in reversed(self._middlewares):
            chain = functools.partial(middleware, next_=chain)
        return chain

    async def execute(self, request: Any, handler: Handler) -> Any:
        return await self.bind(handler)(request)


__all__ = ["Handler", "Middleware", "Next", "Pipeline"]
