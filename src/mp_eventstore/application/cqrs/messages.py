"""Application CQRS – CommandMessage envelope."""
from __future__ import annotations

import dataclasses
from typing import Any, Generic, TypeVar

from mp_eventstore.kernel.types.ids import uuid7_str

C = TypeVar("C")


@dataclasses.dataclass(frozen=True)
class CommandMessage(Generic[C]):
    """A command plus the metadata that travels with it through the pipeline.

    Middlewares never mutate a message; :meth:`and_metadata` returns a copy.
    """

    command: C
    metadata: dict[str, Any] = dataclasses.field(default_factory=dict)
    message_id: str = dataclasses.field(default_factory=uuid7_str)

    @property
    def command_type(self) -> str:
        return type(self.command).__name__

    def and_metadata(self, **values: Any) -> "CommandMessage[C]":
        return dataclasses.replace(self, metadata={**self.metadata, **values})

    def validate(self) -> None:
        """Delegate to ``command.validate()`` when the command defines one."""
        validate = getattr(self.command, "validate", None)
        if callable(validate):
            validate()


__all__ = ["CommandMessage"]
