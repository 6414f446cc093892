"""Unit tests for the command gateway and event metadata."""

from __future__ import annotations

import asyncio
import dataclasses
from typing import Any, ClassVar

import pytest

from mp_eventstore.application.cqrs import (
    Command,
    CommandGateway,
    CommandHandler,
    CommandMessage,
    InProcessCommandBus,
)
from mp_eventstore.application.event_sourcing import event_metadata
from mp_eventstore.kernel.ddd import TenantContext
from mp_eventstore.kernel.errors import MissingTenantError, TenantMismatchError, ValidationError
from mp_eventstore.observability.correlation import CorrelationContext, RequestContext


def _run(coro: Any) -> Any:
    return asyncio.run(coro)


@dataclasses.dataclass(frozen=True)
class OpenAccount(Command):
    account_id: str

    def validate(self) -> None:
        if not self.account_id:
            raise ValidationError("account_id is required")


@dataclasses.dataclass(frozen=True)
class HealthCheck(Command):
    requires_tenant: ClassVar[bool] = False


class CapturingHandler(CommandHandler[Any]):
    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []

    async def handle(self, command: Any) -> dict[str, Any]:
        tenant = TenantContext.get()
        ctx = CorrelationContext.get()
        call = {
            "command": command,
            "tenant_id": tenant.value if tenant is not None else None,
            "metadata": event_metadata(),
            "correlation_id": ctx.correlation_id if ctx is not None else None,
        }
        self.calls.append(call)
        return call


def _gateway() -> tuple[CommandGateway, CapturingHandler]:
    bus = InProcessCommandBus()
    handler = CapturingHandler()
    bus.register(OpenAccount, handler)
    bus.register(HealthCheck, handler)
    return CommandGateway(bus), handler


class TestInProcessCommandBus:
    def test_unregistered_command_raises(self) -> None:
        with pytest.raises(KeyError):
            _run(InProcessCommandBus().dispatch(OpenAccount("a")))


class TestCommandMessage:
    def test_and_metadata_returns_copy(self) -> None:
        msg = CommandMessage(OpenAccount("a"), {"x": 1})
        other = msg.and_metadata(y=2)
        assert msg.metadata == {"x": 1}
        assert other.metadata == {"x": 1, "y": 2}
        assert other.message_id == msg.message_id
        assert msg.command_type == "OpenAccount"


class TestCommandGateway:
    def test_handler_runs_in_sender_tenant(self) -> None:
        gateway, handler = _gateway()

        async def run() -> Any:
            async with TenantContext.scoped("acme"):
                return await gateway.send(OpenAccount("acc-1"))

        call = _run(run())
        assert call["tenant_id"] == "acme"
        assert call["metadata"]["tenant_id"] == "acme"
        assert call["metadata"]["command_type"] == "OpenAccount"
        assert call["metadata"]["correlation_id"] == call["correlation_id"]
        assert call["metadata"]["causation_id"]

    def test_explicit_tenant_metadata(self) -> None:
        gateway, handler = _gateway()
        call = _run(gateway.send(OpenAccount("acc-1"), {"tenant_id": "globex", "correlation_id": "c-1"}))
        assert call["tenant_id"] == "globex"
        assert call["correlation_id"] == "c-1"

    def test_mismatching_tenant_never_reaches_handler(self) -> None:
        gateway, handler = _gateway()

        async def run() -> None:
            async with TenantContext.scoped("acme"):
                await gateway.send(OpenAccount("acc-1"), {"tenant_id": "globex"})

        with pytest.raises(TenantMismatchError):
            _run(run())
        assert handler.calls == []

    def test_missing_tenant_rejected(self) -> None:
        gateway, handler = _gateway()
        with pytest.raises(MissingTenantError):
            _run(gateway.send(OpenAccount("acc-1")))
        assert handler.calls == []

    def test_tenantless_command_allowed(self) -> None:
        gateway, handler = _gateway()
        call = _run(gateway.send(HealthCheck()))
        assert call["tenant_id"] is None

    def test_validation_runs_before_handler(self) -> None:
        gateway, handler = _gateway()

        async def run() -> None:
            async with TenantContext.scoped("acme"):
                await gateway.send(OpenAccount(""))

        with pytest.raises(ValidationError):
            _run(run())
        assert handler.calls == []

    def test_context_cleared_after_send(self) -> None:
        gateway, _ = _gateway()

        async def run() -> tuple[Any, Any]:
            await gateway.send(OpenAccount("acc-1"), {"tenant_id": "acme"})
            return TenantContext.get(), CorrelationContext.get()

        assert _run(run()) == (None, None)


class TestEventMetadata:
    def test_empty_without_context(self) -> None:
        assert event_metadata() == {}

    def test_collects_ambient_values_and_extras_win(self) -> None:
        async def run() -> dict[str, Any]:
            ctx = RequestContext(correlation_id="c-1", causation_id="m-1", user_id="u-1")
            async with TenantContext.scoped("acme"), CorrelationContext.scoped(ctx):
                return event_metadata(user_id="override", source="import")

        assert _run(run()) == {
            "tenant_id": "acme",
            "correlation_id": "c-1",
            "causation_id": "m-1",
            "user_id": "override",
            "source": "import",
        }
