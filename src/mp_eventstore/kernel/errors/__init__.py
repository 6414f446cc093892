"""Kernel error hierarchy – public re-export surface.

Hierarchy::

    BaseError
    ├── DomainError          (domain.py)
    │   ├── ValidationError
    │   ├── ConflictError
    │   └── TenantError
    │       ├── MissingTenantError
    │       └── TenantMismatchError
    ├── ApplicationError     (application.py)
    └── InfrastructureError  (infrastructure.py)
        ├── ConnectionError
        └── SerializationError

Event-store specific errors live in
:mod:`mp_eventstore.application.event_sourcing.errors`.
"""

from mp_eventstore.kernel.errors.application import ApplicationError
from mp_eventstore.kernel.errors.base import BaseError
from mp_eventstore.kernel.errors.domain import (
    ConflictError,
    DomainError,
    MissingTenantError,
    TenantError,
    TenantMismatchError,
    ValidationError,
)
from mp_eventstore.kernel.errors.infrastructure import (
    ConnectionError,
    InfrastructureError,
    SerializationError,
)

__all__ = [
    "ApplicationError",
    "BaseError",
    "ConflictError",
    "ConnectionError",
    "DomainError",
    "InfrastructureError",
    "MissingTenantError",
    "SerializationError",
    "TenantError",
    "TenantMismatchError",
    "ValidationError",
]
