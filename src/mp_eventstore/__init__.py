"""
mp_eventstore – Tenant-isolated event store.

Import path convention::

    from mp_eventstore.kernel.ddd import TenantContext
    from mp_eventstore.application.event_sourcing import EventData, EventStore
    from mp_eventstore.adapters.sqlalchemy import SqlAlchemyEventStore
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
