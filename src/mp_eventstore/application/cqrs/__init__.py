"""Application CQRS – in-process command dispatch."""
from mp_eventstore.application.cqrs.commands import (
    Command,
    CommandBus,
    CommandGateway,
    CommandHandler,
    InProcessCommandBus,
    default_outbound_pipeline,
)
from mp_eventstore.application.cqrs.messages import CommandMessage

__all__ = [
    "Command",
    "CommandBus",
    "CommandGateway",
    "CommandHandler",
    "CommandMessage",
    "InProcessCommandBus",
    "default_outbound_pipeline",
]
