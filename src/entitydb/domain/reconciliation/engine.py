"""Key-based reconciliation of entity batches against stored rows.

Stages of one call:
1) index candidates by composite key (or degrade when keys are missing)
2) look up stored rows matching any candidate key
3) partition into existing (stored) and new (unmatched candidates)
4) merge candidate values into existing entities for update actions
5) dispatch add/update/remove per DatabaseAction

All backend work of a call runs in one private transaction, so a failure
leaves storage exactly as it was (or, when joined to the caller's
transaction, leaves the rollback to the caller).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from entitydb.common.batching import DEFAULT_BATCH_SIZE
from entitydb.domain.errors import (
    DatabaseError,
    DuplicateKeyError,
    MissingEntityError,
    MissingKeyError,
    MissingLabelFieldsError,
    UnknownActionError,
)
from entitydb.domain.model import DatabaseAction, identity_reset

from .keys import KeyIndex, is_keyless
from .lookup import lookup_rules
from .merge import merge_by_key, merge_by_label_fields
from .plan import ReconciliationPlan, ReconciliationResult

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from entitydb.domain.model import Entity
    from entitydb.domain.ports import Mapper
    from entitydb.domain.registry import MapperRegistry
    from entitydb.domain.transaction import Transaction, TransactionScope

log = logging.getLogger(__name__)


@dataclass(slots=True)
class ReconciliationEngine:
    """Classify candidates as new/existing and dispatch them per action."""

    registry: MapperRegistry
    transactions: TransactionScope
    batch_size: int = DEFAULT_BATCH_SIZE

    def reconcile(
        self,
        entities: Sequence[Entity],
        action: DatabaseAction | str,
        key_fields: Sequence[str],
        *,
        transaction: Transaction | None = None,
        key_identity: bool = False,
    ) -> int:
        """Return the number of affected rows.

        ``key_identity=True`` merges update candidates into stored entities by
        the reconciliation key instead of by label fields; it is required for
        update actions on entity types that declare no label fields.
        """

        result = self.run(
            entities,
            action,
            key_fields,
            transaction=transaction,
            key_identity=key_identity,
        )
        return result.affected

    def run(
        self,
        entities: Sequence[Entity],
        action: DatabaseAction | str,
        key_fields: Sequence[str],
        *,
        transaction: Transaction | None = None,
        key_identity: bool = False,
    ) -> ReconciliationResult:
        if not entities:
            return ReconciliationResult()
        resolved_action = DatabaseAction.coerce(action)
        keys = tuple(key_fields)
        if not keys:
            raise DatabaseError("Reconciliation needs at least one key field")
        mapper = self.registry.resolve_for(entities)

        with self.transactions.private(transaction):
            plan = self.plan(entities, resolved_action, keys, mapper=mapper)
            if resolved_action.is_add:
                self.transactions.on_rollback(identity_reset(plan.new))
            if plan.existing and resolved_action.updates_existing:
                self._merge(plan, entities, key_identity=key_identity)
            return self._dispatch(plan, resolved_action, mapper)

    def plan(
        self,
        entities: Sequence[Entity],
        action: DatabaseAction | str,
        key_fields: tuple[str, ...],
        *,
        mapper: Mapper[Any] | None = None,
    ) -> ReconciliationPlan:
        """Partition ``entities`` into new and existing without writing anything."""

        if not entities:
            return ReconciliationPlan(entity_type="", key_fields=key_fields)
        resolved_action = DatabaseAction.coerce(action)
        first = entities[0]
        plan = ReconciliationPlan(entity_type=first.entity_type, key_fields=key_fields)
        index = KeyIndex.build(entities, key_fields)

        if index.has_keyless:
            if resolved_action.is_add and key_fields == (first.id_field,):
                # fresh entities without ids: nothing to look up
                plan.new = list(entities)
                return plan
            positions = [
                f"#{position}"
                for position, entity in enumerate(entities)
                if is_keyless(entity, key_fields)
            ]
            raise MissingKeyError(plan.entity_type, key_fields, positions)

        resolved_mapper = mapper or self.registry.resolve_for(entities)
        plan.candidates_by_key = index.snapshot()
        for rules in lookup_rules(key_fields, index.key_values(), batch_size=self.batch_size):
            for stored in resolved_mapper.find(*rules):
                if index.claim(stored) is None:
                    log.debug("Ignoring stored %r: no candidate left for its key", stored)
                    continue
                plan.existing.append(stored)
        plan.new = index.remaining()
        plan.looked_up = True
        return plan

    def _merge(
        self,
        plan: ReconciliationPlan,
        entities: Sequence[Entity],
        *,
        key_identity: bool,
    ) -> None:
        if key_identity:
            merged = merge_by_key(plan.existing, plan.candidates_by_key, plan.key_fields)
        elif not plan.existing[0].label_fields:
            raise MissingLabelFieldsError(plan.entity_type, plan.key_fields)
        else:
            merged = merge_by_label_fields(plan.existing, entities)
        log.debug(
            "Merged %s incoming %s values into %s existing entities",
            merged,
            plan.entity_type,
            len(plan.existing),
        )

    def _dispatch(
        self,
        plan: ReconciliationPlan,
        action: DatabaseAction,
        mapper: Mapper[Any],
    ) -> ReconciliationResult:
        result = ReconciliationResult()
        new, existing = plan.new, plan.existing

        if action is DatabaseAction.ADD:
            if existing:
                raise DuplicateKeyError(plan.entity_type, plan.key_fields, plan.existing_keys())
            result.added = _write(mapper.add, new)
        elif action is DatabaseAction.ADD_IGNORE_EXISTING:
            log.debug(
                "%s(%s) will skip %s existing entities", action, plan.entity_type, len(existing)
            )
            result.added = _write(mapper.add, new)
            result.skipped = len(existing)
        elif action is DatabaseAction.ADD_UPDATE_EXISTING:
            log.debug(
                "%s(%s) will update %s existing entities and add %s new entities",
                action,
                plan.entity_type,
                len(existing),
                len(new),
            )
            result.added = _write(mapper.add, new)
            result.updated = _write(mapper.update, existing)
        elif action is DatabaseAction.UPDATE:
            if new:
                raise MissingEntityError(plan.entity_type, plan.key_fields, plan.new_keys())
            result.updated = _write(mapper.update, existing)
        elif action is DatabaseAction.UPDATE_IGNORE_MISSING:
            log.debug(
                "%s(%s) will update %s existing entities and skip %s new entities",
                action,
                plan.entity_type,
                len(existing),
                len(new),
            )
            result.updated = _write(mapper.update, existing)
            result.skipped = len(new)
        elif action is DatabaseAction.REMOVE:
            if new:
                raise MissingEntityError(plan.entity_type, plan.key_fields, plan.new_keys())
            result.removed = _write(mapper.remove, existing)
        elif action is DatabaseAction.REMOVE_IGNORE_MISSING:
            log.debug(
                "%s(%s) will remove %s existing entities and skip %s new entities",
                action,
                plan.entity_type,
                len(existing),
                len(new),
            )
            result.removed = _write(mapper.remove, existing)
            result.skipped = len(new)
        else:
            raise UnknownActionError(action)
        return result


def _write(operation: Callable[[Sequence[Entity]], int], entities: list[Entity]) -> int:
    if not entities:
        return 0
    return operation(entities)
