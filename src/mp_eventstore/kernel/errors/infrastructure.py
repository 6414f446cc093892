"""Infrastructure errors – the database misbehaved, not the caller."""

from __future__ import annotations

from typing import Any

from mp_eventstore.kernel.errors.base import BaseError


class InfrastructureError(BaseError):
    """A storage failure that is neither a rule violation nor a conflict."""

    default_code = "infrastructure_error"


class ConnectionError(InfrastructureError):  # noqa: A001
    """*resource* could not be reached; the same call may succeed later."""

    default_code = "connection_error"
    retryable = True

    def __init__(
        self,
        resource: str,
        message: str | None = None,
        **kwargs: Any,
    ) -> None:
        kwargs.setdefault("detail", {"resource": resource})
        super().__init__(message or f"Could not reach '{resource}'", **kwargs)
        self.resource = resource


class SerializationError(InfrastructureError):
    """A stored row holds bytes that no longer decode into the expected shape.

    ``payload_type`` names what was being decoded (``"event"``, ``"snapshot"``).
    """

    default_code = "serialization_error"

    def __init__(
        self,
        message: str,
        *,
        payload_type: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.payload_type = payload_type


__all__ = [
    "ConnectionError",
    "InfrastructureError",
    "SerializationError",
]
