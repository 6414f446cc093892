"""Config settings – Settings base class."""
from __future__ import annotations

import dataclasses
from typing import Any, ClassVar


@dataclasses.dataclass
class Settings:
    """Base class for settings read from prefixed environment variables.

    Subclasses are dataclasses that set ``_prefix``; field ``batch_size``
    of a class with prefix ``EVENTSTORE`` is read from
    ``EVENTSTORE_BATCH_SIZE``.  Cross-field rules go in :meth:`_validate`,
    which runs on construction whatever the source of the values.
    """

    _prefix: ClassVar[str] = ""

    def __post_init__(self) -> None:
        self._validate()

    def _validate(self) -> None:
        """Override to add cross-field validation."""

    @classmethod
    def env_key(cls, field_name: str) -> str:
        """Environment variable holding *field_name*."""
        if not cls._prefix:
            return field_name.upper()
        return f"{cls._prefix}_{field_name}".upper()

    @classmethod
    def is_required(cls, field: dataclasses.Field[Any]) -> bool:
        return (
            field.default is dataclasses.MISSING
            and field.default_factory is dataclasses.MISSING
        )


__all__ = ["Settings"]
