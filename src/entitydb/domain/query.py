"""Fluent rule builders bound to a database facade."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Self

from entitydb.common.batching import chunked
from entitydb.domain.errors import DatabaseError
from entitydb.domain.model import Entity, QueryRule

if TYPE_CHECKING:
    from collections.abc import Iterator

    from entitydb.domain.database import Database
    from entitydb.domain.transaction import Transaction

log = logging.getLogger(__name__)


class Query[TEntity: Entity]:
    """Ordered rule sequence executed against one entity type."""

    def __init__(
        self,
        database: Database,
        entity_cls: type[TEntity],
        *,
        transaction: Transaction | None = None,
    ) -> None:
        self._database = database
        self._entity_cls = entity_cls
        self._transaction = transaction
        self._rules: list[QueryRule] = []

    @property
    def entity_cls(self) -> type[TEntity]:
        return self._entity_cls

    @property
    def rules(self) -> tuple[QueryRule, ...]:
        return tuple(self._rules)

    def add_rule(self, rule: QueryRule) -> Self:
        self._rules.append(rule)
        return self

    def add_rules(self, *rules: QueryRule) -> Self:
        self._rules.extend(rules)
        return self

    def equals(self, field: str, value: Any) -> Self:
        return self.add_rule(QueryRule.equals(field, value))

    def not_equals(self, field: str, value: Any) -> Self:
        return self.add_rule(QueryRule.not_equals(field, value))

    def like(self, field: str, pattern: str) -> Self:
        return self.add_rule(QueryRule.like(field, pattern))

    def in_(self, field: str, values: Iterable[Any]) -> Self:
        """Add an IN rule; an empty value list adds nothing."""

        values = list(values)
        if not values:
            log.debug("Skipping empty IN rule on %s.%s", self._entity_cls.ENTITY_TYPE, field)
            return self
        return self.add_rule(QueryRule.in_(field, values))

    def less(self, field: str, value: Any) -> Self:
        return self.add_rule(QueryRule.less(field, value))

    def less_equal(self, field: str, value: Any) -> Self:
        return self.add_rule(QueryRule.less_equal(field, value))

    def greater(self, field: str, value: Any) -> Self:
        return self.add_rule(QueryRule.greater(field, value))

    def greater_equal(self, field: str, value: Any) -> Self:
        return self.add_rule(QueryRule.greater_equal(field, value))

    def or_(self) -> Self:
        return self.add_rule(QueryRule.or_())

    def and_(self) -> Self:
        return self.add_rule(QueryRule.and_())

    def nested(self, *rules: QueryRule) -> Self:
        return self.add_rule(QueryRule.nested(*rules))

    def sort_asc(self, field: str) -> Self:
        return self.add_rule(QueryRule.sort_asc(field))

    def sort_desc(self, field: str) -> Self:
        return self.add_rule(QueryRule.sort_desc(field))

    def limit(self, count: int) -> Self:
        return self.add_rule(QueryRule.limit(count))

    def offset(self, count: int) -> Self:
        return self.add_rule(QueryRule.offset(count))

    def find(self) -> list[TEntity]:
        return self._database.find(self._entity_cls, *self._rules, transaction=self._transaction)

    def find_one(self) -> TEntity | None:
        results = self.find()
        return results[0] if results else None

    def count(self) -> int:
        return self._database.count(self._entity_cls, *self._rules, transaction=self._transaction)


@dataclass(slots=True)
class JoinRow:
    """One correlated combination of entities, keyed by entity type tag."""

    entities: dict[str, Entity] = field(default_factory=dict[str, Entity])

    def __getitem__(self, ref: type[Entity] | str) -> Entity:
        key = ref if isinstance(ref, str) else ref.ENTITY_TYPE
        return self.entities[key]

    def __iter__(self) -> Iterator[Entity]:
        return iter(self.entities.values())


@dataclass(frozen=True, slots=True)
class _JoinEdge:
    """How a participant links to an already joined one.

    ``owner`` holds the reference ``field`` pointing at ``target``'s id.
    """

    participant: str
    joined: str
    owner: str
    target: str
    field: str


class JoinQuery:
    """Correlates several entity types through their ``REFERENCES`` fields.

    The first type is queried with its own rules; every following type must
    reference, or be referenced by, a type earlier in the list. Related rows are
    fetched with batched IN queries and combined into :class:`JoinRow` objects.
    """

    def __init__(
        self,
        database: Database,
        *entity_classes: type[Entity],
        transaction: Transaction | None = None,
    ) -> None:
        if len(entity_classes) < 2:
            raise DatabaseError("A join needs at least two entity types")
        for entity_cls in entity_classes:
            # fails with MapperNotFoundError for unregistered participants
            database.registry.resolve(entity_cls)
        self._database = database
        self._classes = {entity_cls.ENTITY_TYPE: entity_cls for entity_cls in entity_classes}
        if len(self._classes) != len(entity_classes):
            raise DatabaseError("A join may list each entity type only once")
        self._transaction = transaction
        self._rules: dict[str, list[QueryRule]] = {tag: [] for tag in self._classes}
        self._edges = self._plan_edges(entity_classes)

    @property
    def entity_types(self) -> tuple[str, ...]:
        return tuple(self._classes)

    def where(self, entity_cls: type[Entity] | str, *rules: QueryRule) -> JoinQuery:
        """Scope ``rules`` to one participant."""

        tag = entity_cls if isinstance(entity_cls, str) else entity_cls.ENTITY_TYPE
        if tag not in self._rules:
            raise DatabaseError(f"{tag} does not take part in this join")
        self._rules[tag].extend(rules)
        return self

    def find(self) -> list[JoinRow]:
        tags = list(self._classes)
        first = tags[0]
        rows = [
            JoinRow({first: entity})
            for entity in self._database.find(
                self._classes[first], *self._rules[first], transaction=self._transaction
            )
        ]
        for edge in self._edges:
            if not rows:
                break
            rows = self._extend(rows, edge)
        return rows

    def count(self) -> int:
        return len(self.find())

    def _extend(self, rows: list[JoinRow], edge: _JoinEdge) -> list[JoinRow]:
        participant_cls = self._classes[edge.participant]
        if edge.owner == edge.participant:
            # participant.field -> joined.id
            link_field = edge.field
            link_values = {row[edge.joined].id for row in rows}
        else:
            # joined.field -> participant.id
            link_field = participant_cls.ID_FIELD
            link_values = {row[edge.joined].get(edge.field) for row in rows}
        link_values.discard(None)
        if not link_values:
            return []

        related: dict[Any, list[Entity]] = {}
        for chunk in chunked(sorted(link_values, key=str), self._database.batch_size):
            for entity in self._database.find(
                participant_cls,
                *self._scoped(edge.participant, QueryRule.in_(link_field, chunk)),
                transaction=self._transaction,
            ):
                related.setdefault(entity.get(link_field), []).append(entity)

        extended: list[JoinRow] = []
        for row in rows:
            if edge.owner == edge.participant:
                key = row[edge.joined].id
            else:
                key = row[edge.joined].get(edge.field)
            for entity in related.get(key, ()):
                extended.append(JoinRow({**row.entities, edge.participant: entity}))
        return extended

    def _scoped(self, tag: str, link_rule: QueryRule) -> tuple[QueryRule, ...]:
        own_rules = self._rules[tag]
        if not own_rules:
            return (link_rule,)
        return (link_rule, QueryRule.nested(*own_rules))

    def _plan_edges(self, entity_classes: tuple[type[Entity], ...]) -> list[_JoinEdge]:
        edges: list[_JoinEdge] = []
        joined: list[type[Entity]] = [entity_classes[0]]
        for participant in entity_classes[1:]:
            edge = _find_edge(participant, joined)
            if edge is None:
                raise DatabaseError(
                    f"{participant.ENTITY_TYPE} has no reference to or from "
                    f"{[entity_cls.ENTITY_TYPE for entity_cls in joined]}"
                )
            edges.append(edge)
            joined.append(participant)
        return edges


def _find_edge(participant: type[Entity], joined: list[type[Entity]]) -> _JoinEdge | None:
    for other in joined:
        for field_name, target in participant.REFERENCES.items():
            if target == other.ENTITY_TYPE:
                return _JoinEdge(
                    participant=participant.ENTITY_TYPE,
                    joined=other.ENTITY_TYPE,
                    owner=participant.ENTITY_TYPE,
                    target=other.ENTITY_TYPE,
                    field=field_name,
                )
        for field_name, target in other.REFERENCES.items():
            if target == participant.ENTITY_TYPE:
                return _JoinEdge(
                    participant=participant.ENTITY_TYPE,
                    joined=other.ENTITY_TYPE,
                    owner=other.ENTITY_TYPE,
                    target=participant.ENTITY_TYPE,
                    field=field_name,
                )
    return None

