"""Kernel value-object types – public re-export surface."""

from mp_eventstore.kernel.types.ids import (
    MAX_TENANT_ID_LENGTH,
    CorrelationId,
    EntityId,
    TenantId,
    uuid7_str,
)

__all__ = [
    "MAX_TENANT_ID_LENGTH",
    "CorrelationId",
    "EntityId",
    "TenantId",
    "uuid7_str",
]
