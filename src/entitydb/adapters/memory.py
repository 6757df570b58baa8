"""In-memory backend: rows held in dictionaries, rules evaluated in Python.

Comparison semantics follow SQL where it matters for tests that switch between
this store and sqlite: ``NULL`` never satisfies a comparison other than
``equals(field, None)``, ``LIKE`` is case-insensitive with ``%``/``_``
wildcards, and ascending sorts put ``NULL`` first.
"""

from __future__ import annotations

import copy
import logging
import re
from functools import cmp_to_key
from typing import TYPE_CHECKING, Any

from entitydb.domain.errors import DatabaseError, UnknownFieldError
from entitydb.domain.model import Entity, Operator, partition_rules

if TYPE_CHECKING:
    from collections.abc import Sequence

    from entitydb.domain.model import QueryRule

log = logging.getLogger(__name__)

type Row = dict[str, Any]


class InMemoryTransaction:
    """Rollback log for one ``begin``.

    A table is copied the first time it is written inside the transaction, so
    read-only work never copies anything. Rollback puts the copies back and
    drops tables that did not exist before.
    """

    def __init__(self, store: InMemoryStore) -> None:
        self._store = store
        self._saved: dict[str, dict[Any, Row] | None] = {}
        self._sequences: dict[str, int] | None = None
        self._closed = False

    def save(self, entity_type: str) -> None:
        if self._closed or entity_type in self._saved:
            return
        if self._sequences is None:
            self._sequences = self._store.sequences()
        table = self._store.tables.get(entity_type)
        self._saved[entity_type] = None if table is None else copy.deepcopy(table)
        self._store.tables_saved += 1

    def commit(self) -> None:
        self._close()

    def rollback(self) -> None:
        self._close()
        self._store.restore(self._saved, self._sequences)

    def _close(self) -> None:
        if self._closed:
            raise DatabaseError("In-memory transaction already closed")
        self._closed = True
        self._store.release(self)


class InMemoryStore:
    """Tables keyed by entity type; satisfies the transaction backend port."""

    def __init__(self) -> None:
        self.tables: dict[str, dict[Any, Row]] = {}
        self._sequences: dict[str, int] = {}
        self._active: InMemoryTransaction | None = None
        self.begun = 0
        self.tables_saved = 0

    def begin(self) -> InMemoryTransaction:
        self.begun += 1
        self._active = InMemoryTransaction(self)
        return self._active

    def release(self, transaction: InMemoryTransaction) -> None:
        if self._active is transaction:
            self._active = None

    def table(self, entity_type: str) -> dict[Any, Row]:
        return self.tables.setdefault(entity_type, {})

    def writable_table(self, entity_type: str) -> dict[Any, Row]:
        """Return the table for ``entity_type`` after logging it for rollback."""
        if self._active is not None:
            self._active.save(entity_type)
        return self.table(entity_type)

    def next_id(self, entity_type: str) -> int:
        table = self.table(entity_type)
        current = self._sequences.get(entity_type, 0)
        numeric = [key for key in table if isinstance(key, int)]
        candidate = max([current, *numeric]) + 1
        self._sequences[entity_type] = candidate
        return candidate

    def sequences(self) -> dict[str, int]:
        return dict(self._sequences)

    def restore(
        self, saved: dict[str, dict[Any, Row] | None], sequences: dict[str, int] | None
    ) -> None:
        for entity_type, table in saved.items():
            if table is None:
                self.tables.pop(entity_type, None)
            else:
                self.tables[entity_type] = table
        if sequences is not None:
            self._sequences = sequences


class InMemoryMapper[TEntity: Entity]:
    """Mapper over one table of an :class:`InMemoryStore`."""

    def __init__(self, store: InMemoryStore, entity_cls: type[TEntity]) -> None:
        self.store = store
        self.entity_cls = entity_cls
        self.entity_type = entity_cls.ENTITY_TYPE

    def create(self) -> TEntity:
        return self.entity_cls()

    def find(self, *rules: QueryRule) -> list[TEntity]:
        partitioned = partition_rules(rules)
        self._check_fields(partitioned.fields | {rule.field for rule in partitioned.order_by})  # pyright: ignore[reportArgumentType]
        rows = [
            row
            for row in self.store.table(self.entity_type).values()
            if _matches_groups(row, partitioned.groups)
        ]
        for rule in reversed(partitioned.order_by):
            descending = rule.operator is Operator.SORTDESC
            field_name = rule.field
            rows.sort(
                key=cmp_to_key(lambda a, b, name=field_name: _compare(a[name], b[name])),
                reverse=descending,
            )
        start = partitioned.offset or 0
        stop = None if partitioned.limit is None else start + partitioned.limit
        return [self.entity_cls.from_values(row) for row in rows[start:stop]]

    def count(self, *rules: QueryRule) -> int:
        return len(self.find(*rules))

    def add(self, entities: Sequence[TEntity]) -> int:
        table = self.store.writable_table(self.entity_type)
        for entity in entities:
            if entity.id is None:
                entity.set(entity.id_field, self.store.next_id(self.entity_type))
            elif entity.id in table:
                raise DatabaseError(
                    f"Duplicate primary key for {self.entity_type}: {entity.id!r}"
                )
            table[entity.id] = entity.values()
        log.debug("Added %s %s rows", len(entities), self.entity_type)
        return len(entities)

    def update(self, entities: Sequence[TEntity]) -> int:
        table = self.store.writable_table(self.entity_type)
        updated = 0
        for entity in entities:
            if entity.id is None or entity.id not in table:
                continue
            table[entity.id] = entity.values()
            updated += 1
        return updated

    def remove(self, entities: Sequence[TEntity]) -> int:
        table = self.store.writable_table(self.entity_type)
        removed = 0
        for entity in entities:
            if table.pop(entity.id, None) is not None:
                removed += 1
        return removed

    def _check_fields(self, names: set[str] | frozenset[str]) -> None:
        for name in names:
            if name not in self.entity_cls.FIELDS:
                raise UnknownFieldError(self.entity_type, name)


def _matches_groups(row: Row, groups: tuple[tuple[QueryRule, ...], ...]) -> bool:
    if not groups:
        return True
    return any(all(_matches(row, rule) for rule in group) for group in groups)


def _matches(row: Row, rule: QueryRule) -> bool:
    operator = rule.operator
    if operator is Operator.NESTED:
        return _matches_groups(row, partition_rules(rule.value).groups)

    actual = row[rule.field]  # pyright: ignore[reportArgumentType]
    expected = rule.value
    if operator is Operator.EQUALS:
        if expected is None:
            return actual is None
        return actual is not None and actual == expected
    if actual is None:
        return False
    if operator is Operator.NOT:
        if expected is None:
            return True
        return actual != expected
    if operator is Operator.IN:
        return actual in expected
    if operator is Operator.LIKE:
        return _like_pattern(str(expected)).fullmatch(str(actual)) is not None
    if expected is None:
        return False
    if operator is Operator.LESS:
        return actual < expected
    if operator is Operator.LESS_EQUAL:
        return actual <= expected
    if operator is Operator.GREATER:
        return actual > expected
    if operator is Operator.GREATER_EQUAL:
        return actual >= expected
    raise DatabaseError(f"Operator {operator} cannot be evaluated on a row")


def _like_pattern(pattern: str) -> re.Pattern[str]:
    parts: list[str] = []
    for char in pattern:
        if char == "%":
            parts.append(".*")
        elif char == "_":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    return re.compile("".join(parts), re.IGNORECASE | re.DOTALL)


def _compare(left: Any, right: Any) -> int:
    if left is None and right is None:
        return 0
    if left is None:
        return -1
    if right is None:
        return 1
    if left < right:
        return -1
    if left > right:
        return 1
    return 0
