"""DDD building blocks – public re-export surface."""

from mp_eventstore.kernel.ddd.aggregate import AggregateRoot
from mp_eventstore.kernel.ddd.domain_event import DomainEvent
from mp_eventstore.kernel.ddd.tenant import TenantContext
from mp_eventstore.kernel.ddd.unit_of_work import UnitOfWork

__all__ = [
    "AggregateRoot",
    "DomainEvent",
    "TenantContext",
    "UnitOfWork",
]
