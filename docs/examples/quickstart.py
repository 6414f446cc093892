"""End-to-end walkthrough: bank accounts on a SQLite event store.

Opens two accounts for two tenants, deposits money through the command
gateway, then runs a tracking processor that projects balances from the
global log.

Run with::

    pip install -e ".[sqlite]"
    python docs/examples/quickstart.py

Point ``EVENTSTORE_DATABASE_URL`` at PostgreSQL (``postgresql+asyncpg://…``)
to run the same flow against a server.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import os
from typing import Any

from mp_eventstore.adapters.sqlalchemy import (
    SqlAlchemyEventStore,
    SqlAlchemySessionFactory,
    SqlAlchemySnapshotStore,
    SqlAlchemyTokenStore,
    create_schema,
)
from mp_eventstore.application.cqrs import Command, CommandGateway, CommandHandler, InProcessCommandBus
from mp_eventstore.application.event_sourcing import (
    EventSourcedAggregate,
    EventSourcedRepository,
    StoredEvent,
    TrackingProcessor,
)
from mp_eventstore.config import EnvSettingsLoader, EventStoreSettings
from mp_eventstore.kernel.ddd import DomainEvent, TenantContext
from mp_eventstore.kernel.types import EntityId
from mp_eventstore.observability import JsonLoggerFactory, get_logger

log = get_logger("quickstart")


# ---------------------------------------------------------------------------
# Domain
# ---------------------------------------------------------------------------


@dataclasses.dataclass(frozen=True, kw_only=True)
class Deposited(DomainEvent):
    amount: int


class Account(EventSourcedAggregate):
    def __init__(self, id: EntityId) -> None:  # noqa: A002
        super().__init__(id)
        self.balance = 0

    def deposit(self, amount: int) -> None:
        self._raise_event(Deposited(amount=amount))
        self.balance += amount

    def apply_stored_event(self, event: StoredEvent) -> None:
        if event.event_type == "Deposited":
            self.balance += event.payload["amount"]

    def snapshot_state(self) -> dict[str, Any]:
        return {"balance": self.balance}

    def restore_snapshot(self, state: dict[str, Any]) -> None:
        self.balance = state["balance"]


class AccountRepository(EventSourcedRepository[Account]):
    def _aggregate_class(self) -> type[Account]:
        return Account

    def _create_empty(self, agg_id: str) -> Account:
        return Account(EntityId(agg_id))


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@dataclasses.dataclass(frozen=True)
class Deposit(Command):
    account_id: str
    amount: int


class DepositHandler(CommandHandler[Deposit]):
    def __init__(self, repo: AccountRepository) -> None:
        self._repo = repo

    async def handle(self, command: Deposit) -> int:
        account = await self._repo.load(command.account_id) or Account(EntityId(command.account_id))
        account.deposit(command.amount)
        return await self._repo.save(account)


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------


async def main() -> None:
    os.environ.setdefault("EVENTSTORE_DATABASE_URL", "sqlite+aiosqlite:///quickstart.db")
    settings = EnvSettingsLoader().load(EventStoreSettings)
    factory = SqlAlchemySessionFactory(settings.database_url)
    await create_schema(factory.engine)

    store = SqlAlchemyEventStore.from_settings(settings, session_factory=factory)
    snapshots = SqlAlchemySnapshotStore.from_settings(settings, session_factory=factory)
    repo = AccountRepository(store, snapshots, snapshot_interval=settings.snapshot_interval)

    bus = InProcessCommandBus()
    bus.register(Deposit, DepositHandler(repo))
    gateway = CommandGateway(bus)

    for tenant, amount in (("acme", 10), ("globex", 25), ("acme", 5)):
        async with TenantContext.scoped(tenant):
            await gateway.send(Deposit(account_id="acc-1", amount=amount))

    balances: dict[str, int] = {}

    async def project(event: StoredEvent) -> None:
        tenant = TenantContext.require().value
        balances[tenant] = balances.get(tenant, 0) + event.payload["amount"]

    processor = TrackingProcessor("balances", store, project, SqlAlchemyTokenStore(factory))
    while await processor.process_batch():
        pass
    log.info("quickstart.projected", balances=balances)
    await factory.dispose()


if __name__ == "__main__":
    JsonLoggerFactory.configure(logging.INFO)
    asyncio.run(main())
