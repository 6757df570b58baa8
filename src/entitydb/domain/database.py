"""Top-level entry point: find/add/update/remove/query/join/reconcile."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, overload

from entitydb.common.batching import DEFAULT_BATCH_SIZE
from entitydb.domain.model import DatabaseAction, Entity, QueryRule, identity_reset

from .query import JoinQuery, Query
from .reconciliation import ReconciliationEngine, ReconciliationPlan
from .transaction import TransactionScope, TransactionState

if TYPE_CHECKING:
    from collections.abc import Sequence

    from entitydb.domain.ports import Mapper, TransactionBackend

    from .reconciliation import ReconciliationResult
    from .registry import EntityRef, MapperRegistry
    from .transaction import Transaction

log = logging.getLogger(__name__)


class Database:
    """Facade over a mapper registry and one backend connection.

    Every backend call runs in a private transaction: joined to ``transaction``
    when the caller passes its handle, otherwise begun and committed (or rolled
    back) around the call. One instance is not safe for concurrent use.
    """

    def __init__(
        self,
        registry: MapperRegistry,
        backend: TransactionBackend,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be positive")
        self.registry = registry
        self.batch_size = batch_size
        self.transactions = TransactionScope(backend)
        self.reconciliation = ReconciliationEngine(
            registry=registry,
            transactions=self.transactions,
            batch_size=batch_size,
        )
        self._id_fields: dict[str, str] = {}
        log.debug("Database created for entity types %s", registry.entity_types())

    # Transactions --------------------------------------------------------------

    def begin_transaction(self, ticket: str | None = None) -> Transaction:
        return self.transactions.begin(ticket)

    @property
    def in_transaction(self) -> bool:
        return self.transactions.state is TransactionState.ACTIVE

    # Reads ---------------------------------------------------------------------

    def find[TEntity: Entity](
        self,
        entity_cls: type[TEntity],
        *rules: QueryRule,
        transaction: Transaction | None = None,
    ) -> list[TEntity]:
        mapper: Mapper[TEntity] = self.registry.resolve(entity_cls)
        with self.transactions.private(transaction):
            return mapper.find(*rules)

    def count(
        self,
        entity_cls: type[Entity],
        *rules: QueryRule,
        transaction: Transaction | None = None,
    ) -> int:
        mapper = self.registry.resolve(entity_cls)
        with self.transactions.private(transaction):
            return mapper.count(*rules)

    def find_by_id[TEntity: Entity](
        self,
        entity_cls: type[TEntity],
        entity_id: Any,
        *,
        transaction: Transaction | None = None,
    ) -> TEntity | None:
        """Return the entity with ``entity_id`` or ``None`` when no row matches."""

        rule = QueryRule.equals(self.id_field(entity_cls), entity_id)
        results = self.find(entity_cls, rule, transaction=transaction)
        return results[0] if results else None

    def find_by_example[TEntity: Entity](
        self,
        example: TEntity,
        *,
        transaction: Transaction | None = None,
    ) -> list[TEntity]:
        """Match every non-null field of ``example``; list fields match with IN."""

        query = self.query(type(example), transaction=transaction)
        for name in example.fields:
            value = example.get(name)
            if value is None:
                continue
            if isinstance(value, list):
                query.in_(name, value)  # pyright: ignore[reportUnknownArgumentType]
            else:
                query.equals(name, value)
        return query.find()

    def query[TEntity: Entity](
        self,
        entity_cls: type[TEntity],
        *,
        transaction: Transaction | None = None,
    ) -> Query[TEntity]:
        return Query(self, entity_cls, transaction=transaction)

    def join(
        self,
        *entity_classes: type[Entity],
        transaction: Transaction | None = None,
    ) -> JoinQuery:
        return JoinQuery(self, *entity_classes, transaction=transaction)

    # Writes --------------------------------------------------------------------

    @overload
    def add(self, entities: Entity, *, transaction: Transaction | None = None) -> int: ...

    @overload
    def add(
        self, entities: Sequence[Entity], *, transaction: Transaction | None = None
    ) -> int: ...

    def add(
        self,
        entities: Entity | Sequence[Entity],
        *,
        transaction: Transaction | None = None,
    ) -> int:
        batch = _as_batch(entities)
        if not batch:
            return 0
        mapper = self.registry.resolve_for(batch)
        with self.transactions.private(transaction):
            self.transactions.on_rollback(identity_reset(batch))
            return mapper.add(batch)

    @overload
    def update(self, entities: Entity, *, transaction: Transaction | None = None) -> int: ...

    @overload
    def update(
        self, entities: Sequence[Entity], *, transaction: Transaction | None = None
    ) -> int: ...

    def update(
        self,
        entities: Entity | Sequence[Entity],
        *,
        transaction: Transaction | None = None,
    ) -> int:
        batch = _as_batch(entities)
        if not batch:
            return 0
        mapper = self.registry.resolve_for(batch)
        with self.transactions.private(transaction):
            return mapper.update(batch)

    @overload
    def remove(self, entities: Entity, *, transaction: Transaction | None = None) -> int: ...

    @overload
    def remove(
        self, entities: Sequence[Entity], *, transaction: Transaction | None = None
    ) -> int: ...

    def remove(
        self,
        entities: Entity | Sequence[Entity],
        *,
        transaction: Transaction | None = None,
    ) -> int:
        batch = _as_batch(entities)
        if not batch:
            return 0
        mapper = self.registry.resolve_for(batch)
        with self.transactions.private(transaction):
            return mapper.remove(batch)

    def reconcile(
        self,
        entities: Sequence[Entity],
        action: DatabaseAction | str,
        key_fields: Sequence[str],
        *,
        transaction: Transaction | None = None,
        key_identity: bool = False,
    ) -> int:
        """Add/update/remove ``entities`` by key lookup; see ReconciliationEngine."""

        return self.reconciliation.reconcile(
            entities,
            action,
            key_fields,
            transaction=transaction,
            key_identity=key_identity,
        )

    def reconcile_result(
        self,
        entities: Sequence[Entity],
        action: DatabaseAction | str,
        key_fields: Sequence[str],
        *,
        transaction: Transaction | None = None,
        key_identity: bool = False,
    ) -> ReconciliationResult:
        return self.reconciliation.run(
            entities,
            action,
            key_fields,
            transaction=transaction,
            key_identity=key_identity,
        )

    def plan(
        self,
        entities: Sequence[Entity],
        action: DatabaseAction | str,
        key_fields: Sequence[str],
        *,
        transaction: Transaction | None = None,
    ) -> ReconciliationPlan:
        """Classify ``entities`` as new or existing without writing."""

        resolved_action = DatabaseAction.coerce(action)
        keys = tuple(key_fields)
        if not entities:
            return ReconciliationPlan(entity_type="", key_fields=keys)
        with self.transactions.private(transaction):
            return self.reconciliation.plan(entities, resolved_action, keys)

    # Metadata ------------------------------------------------------------------

    def id_field(self, ref: EntityRef) -> str:
        entity_type = ref if isinstance(ref, str) else ref.ENTITY_TYPE
        cached = self._id_fields.get(entity_type)
        if cached is None:
            cached = self.registry.resolve(entity_type).create().id_field
            self._id_fields[entity_type] = cached
        return cached

    def entity_types(self) -> list[str]:
        return self.registry.entity_types()

    def class_for_name(self, name: str) -> type[Entity] | None:
        return self.registry.class_for_name(name)

    def close(self) -> None:
        """Roll back a transaction left open; the backend connection belongs to the caller."""

        ticket = self.transactions.active_ticket
        if ticket is not None:
            log.warning("Closing database with open transaction '%s'; rolling back", ticket)
            self.transactions.rollback(ticket)


def _as_batch(entities: Entity | Sequence[Entity]) -> list[Entity]:
    if isinstance(entities, Entity):
        return [entities]
    return list(entities)
