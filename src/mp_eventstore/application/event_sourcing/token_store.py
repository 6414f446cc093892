"""Application event sourcing – TokenStore port and InMemoryTokenStore."""

from __future__ import annotations

import abc

from mp_eventstore.application.event_sourcing.tracking import GlobalSequenceToken


class TokenStore(abc.ABC):
    """Port – durable position of named tracking processors."""

    @abc.abstractmethod
    async def load(self, processor_name: str) -> GlobalSequenceToken | None:
        """Return the stored token for *processor_name*, or ``None`` if it never ran."""

    @abc.abstractmethod
    async def store(self, processor_name: str, token: GlobalSequenceToken) -> None:
        """Persist *token* as the position of *processor_name*."""


class InMemoryTokenStore(TokenStore):
    """In-memory :class:`TokenStore` for tests and local development."""

    def __init__(self) -> None:
        self._tokens: dict[str, GlobalSequenceToken] = {}

    async def load(self, processor_name: str) -> GlobalSequenceToken | None:
        return self._tokens.get(processor_name)

    async def store(self, processor_name: str, token: GlobalSequenceToken) -> None:
        self._tokens[processor_name] = token


__all__ = ["InMemoryTokenStore", "TokenStore"]
