"""String-based identifier value objects."""

from __future__ import annotations

import dataclasses
import re

import uuid_utils

from mp_eventstore.kernel.errors.domain import ValidationError

MAX_TENANT_ID_LENGTH = 64
_TENANT_ID_PATTERN = re.compile(r"[A-Za-z0-9_-]+")


def uuid7_str() -> str:
    """Return a time-ordered UUID v7 string."""
    return str(uuid_utils.uuid7())


@dataclasses.dataclass(frozen=True, slots=True)
class _StrId:
    """Base for string-typed identifiers."""

    value: str

    def __post_init__(self) -> None:
        if not self.value or not self.value.strip():
            raise ValidationError(f"{type(self).__name__} must not be empty")

    def __str__(self) -> str:
        return self.value


@dataclasses.dataclass(frozen=True, slots=True)
class EntityId(_StrId):
    """Generic entity / aggregate identifier.

    Examples::

        eid = EntityId.generate()           # new UUIDv7 id
        eid = EntityId("order-1")           # from existing string
    """

    @classmethod
    def generate(cls) -> "EntityId":
        """Return a new random ``EntityId``."""
        return cls(uuid7_str())


@dataclasses.dataclass(frozen=True, slots=True)
class TenantId(_StrId):
    """Identifies a tenant in a multi-tenant system.

    Only ``[A-Za-z0-9_-]`` and at most 64 characters are accepted.  Invalid
    values are rejected rather than rewritten, so two distinct raw ids can
    never collapse into the same tenant.
    """

    def __post_init__(self) -> None:
        _StrId.__post_init__(self)
        if len(self.value) > MAX_TENANT_ID_LENGTH:
            raise ValidationError(
                f"TenantId must be at most {MAX_TENANT_ID_LENGTH} characters",
                errors=[{"field": "tenant_id", "value": self.value[:80]}],
            )
        if not _TENANT_ID_PATTERN.fullmatch(self.value):
            raise ValidationError(
                "TenantId may only contain letters, digits, '_' and '-'",
                errors=[{"field": "tenant_id", "value": self.value}],
            )

    @classmethod
    def of(cls, value: "TenantId | str") -> "TenantId":
        """Coerce a raw string (or an existing ``TenantId``) into a ``TenantId``."""
        if isinstance(value, TenantId):
            return value
        if not isinstance(value, str):
            raise ValidationError(f"TenantId must be a string, got {type(value).__name__}")
        return cls(value)


@dataclasses.dataclass(frozen=True, slots=True)
class CorrelationId(_StrId):
    """Request correlation / trace identifier."""

    @classmethod
    def generate(cls) -> "CorrelationId":
        """Return a new random ``CorrelationId``."""
        return cls(uuid7_str())


__all__ = [
    "MAX_TENANT_ID_LENGTH",
    "CorrelationId",
    "EntityId",
    "TenantId",
    "uuid7_str",
]
