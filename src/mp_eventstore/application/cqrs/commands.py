"""Application CQRS – Command, CommandHandler, InProcessCommandBus, CommandGateway."""
from __future__ import annotations

import abc
from typing import Any, ClassVar, Generic, Mapping, TypeVar

from mp_eventstore.application.cqrs.messages import CommandMessage
from mp_eventstore.application.pipeline import (
    CorrelationMiddleware,
    LoggingMiddleware,
    Pipeline,
    TenantStampingMiddleware,
    ValidationMiddleware,
)

C = TypeVar("C", bound="Command")


class Command:
    """Marker base for commands (intent to change state).

    ``requires_tenant`` tells :class:`TenantStampingMiddleware` whether the
    command may be dispatched without a tenant.
    """

    requires_tenant: ClassVar[bool] = True


class CommandHandler(abc.ABC, Generic[C]):
    """Handle a single command type."""

    @abc.abstractmethod
    async def handle(self, command: C) -> Any: ...


class CommandBus(abc.ABC):
    """Dispatches commands to their registered handlers."""

    @abc.abstractmethod
    def register(self, command_type: type[Command], handler: CommandHandler[Any]) -> None: ...

    @abc.abstractmethod
    async def dispatch(self, command: Command) -> Any: ...


class InProcessCommandBus(CommandBus):
    """In-process command bus (synchronous registry, async dispatch)."""

    def __init__(self) -> None:
        self._handlers: dict[type[Command], CommandHandler[Any]] = {}

    def register(self, command_type: type[Command], handler: CommandHandler[Any]) -> None:
        self._handlers[command_type] = handler

    async def dispatch(self, command: Command) -> Any:
        handler = self._handlers.get(type(command))
        if handler is None:
            raise KeyError(f"No handler registered for {type(command).__name__!r}")
        return await handler.handle(command)


def default_outbound_pipeline() -> Pipeline:
    """Tenant stamping, correlation, validation and logging, outermost first."""
    return (
        Pipeline()
        .add(TenantStampingMiddleware())
        .add(CorrelationMiddleware())
        .add(ValidationMiddleware())
        .add(LoggingMiddleware())
    )


class CommandGateway:
    """Wraps a command in a :class:`CommandMessage`, runs the outbound
    pipeline and dispatches it on the bus.

    Example::

        gateway = CommandGateway(bus)
        async with TenantContext.scoped("acme"):
            await gateway.send(OpenAccount(account_id="acc-1"))
    """

    def __init__(self, bus: CommandBus, pipeline: Pipeline | None = None) -> None:
        self._bus = bus
        self._pipeline = pipeline or default_outbound_pipeline()

    async def send(self, command: Command, metadata: Mapping[str, Any] | None = None) -> Any:
        message: CommandMessage[Command] = CommandMessage(command, dict(metadata or {}))
        return await self._pipeline.execute(message, self._dispatch)

    async def _dispatch(self, message: CommandMessage[Command]) -> Any:
        return await self._bus.dispatch(message.command)


__all__ = [
    "Command",
    "CommandBus",
    "CommandGateway",
    "CommandHandler",
    "InProcessCommandBus",
    "default_outbound_pipeline",
]
