"""Predicate rules and the left-to-right composition of rule sequences."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Final

from entitydb.domain.errors import InvalidRuleError


class Operator(StrEnum):
    EQUALS = "equals"
    NOT = "not"
    LIKE = "like"
    IN = "in"
    LESS = "less"
    LESS_EQUAL = "less_equal"
    GREATER = "greater"
    GREATER_EQUAL = "greater_equal"

    AND = "and"
    OR = "or"
    NESTED = "nested"

    SORTASC = "sortasc"
    SORTDESC = "sortdesc"
    LIMIT = "limit"
    OFFSET = "offset"


FIELD_OPERATORS: Final[frozenset[Operator]] = frozenset(
    {
        Operator.EQUALS,
        Operator.NOT,
        Operator.LIKE,
        Operator.IN,
        Operator.LESS,
        Operator.LESS_EQUAL,
        Operator.GREATER,
        Operator.GREATER_EQUAL,
    }
)
COMBINATORS: Final[frozenset[Operator]] = frozenset({Operator.AND, Operator.OR})
SORT_OPERATORS: Final[frozenset[Operator]] = frozenset({Operator.SORTASC, Operator.SORTDESC})
PAGING_OPERATORS: Final[frozenset[Operator]] = frozenset({Operator.LIMIT, Operator.OFFSET})


@dataclass(frozen=True, slots=True)
class QueryRule:
    """One filter condition, combinator, group or ordering/paging modifier."""

    operator: Operator
    field: str | None = None
    value: Any = None

    def __post_init__(self) -> None:
        try:
            operator = Operator(self.operator)
        except ValueError:
            raise InvalidRuleError(f"Unknown operator: {self.operator!r}") from None
        object.__setattr__(self, "operator", operator)
        if operator in COMBINATORS:
            if self.field is not None or self.value is not None:
                raise InvalidRuleError(f"{operator} rule takes neither field nor value")
        elif operator in FIELD_OPERATORS:
            if not self.field:
                raise InvalidRuleError(f"{operator} rule requires a field")
            if operator is Operator.IN:
                self._check_in_values()
        elif operator is Operator.NESTED:
            if self.field is not None:
                raise InvalidRuleError("nested rule takes no field")
            if not isinstance(self.value, tuple) or not self.value:
                raise InvalidRuleError("nested rule requires a non-empty tuple of rules")
            if not all(isinstance(rule, QueryRule) for rule in self.value):  # pyright: ignore[reportUnknownVariableType]
                raise InvalidRuleError("nested rule may only contain rules")
        elif operator in SORT_OPERATORS:
            if not self.field or self.value is not None:
                raise InvalidRuleError(f"{operator} rule requires a field and no value")
        elif operator in PAGING_OPERATORS:
            if self.field is not None:
                raise InvalidRuleError(f"{operator} rule takes no field")
            if isinstance(self.value, bool) or not isinstance(self.value, int) or self.value < 0:
                raise InvalidRuleError(f"{operator} rule requires a non-negative integer")

    def _check_in_values(self) -> None:
        if not isinstance(self.value, (list, tuple, set, frozenset)):
            raise InvalidRuleError(f"in rule on '{self.field}' requires a collection of values")
        if not self.value:
            raise InvalidRuleError(f"in rule on '{self.field}' requires at least one value")
        # freeze so the rule stays immutable
        object.__setattr__(self, "value", tuple(self.value))  # pyright: ignore[reportUnknownArgumentType]

    @property
    def is_combinator(self) -> bool:
        return self.operator in COMBINATORS

    # Factories -----------------------------------------------------------------

    @classmethod
    def equals(cls, field: str, value: Any) -> QueryRule:
        return cls(Operator.EQUALS, field, value)

    @classmethod
    def not_equals(cls, field: str, value: Any) -> QueryRule:
        return cls(Operator.NOT, field, value)

    @classmethod
    def like(cls, field: str, pattern: str) -> QueryRule:
        return cls(Operator.LIKE, field, pattern)

    @classmethod
    def in_(cls, field: str, values: Iterable[Any]) -> QueryRule:
        if not isinstance(values, (list, tuple, set, frozenset)):
            values = list(values)
        return cls(Operator.IN, field, values)

    @classmethod
    def less(cls, field: str, value: Any) -> QueryRule:
        return cls(Operator.LESS, field, value)

    @classmethod
    def less_equal(cls, field: str, value: Any) -> QueryRule:
        return cls(Operator.LESS_EQUAL, field, value)

    @classmethod
    def greater(cls, field: str, value: Any) -> QueryRule:
        return cls(Operator.GREATER, field, value)

    @classmethod
    def greater_equal(cls, field: str, value: Any) -> QueryRule:
        return cls(Operator.GREATER_EQUAL, field, value)

    @classmethod
    def and_(cls) -> QueryRule:
        return cls(Operator.AND)

    @classmethod
    def or_(cls) -> QueryRule:
        return cls(Operator.OR)

    @classmethod
    def nested(cls, *rules: QueryRule) -> QueryRule:
        return cls(Operator.NESTED, value=tuple(rules))

    @classmethod
    def sort_asc(cls, field: str) -> QueryRule:
        return cls(Operator.SORTASC, field)

    @classmethod
    def sort_desc(cls, field: str) -> QueryRule:
        return cls(Operator.SORTDESC, field)

    @classmethod
    def limit(cls, count: int) -> QueryRule:
        return cls(Operator.LIMIT, value=count)

    @classmethod
    def offset(cls, count: int) -> QueryRule:
        return cls(Operator.OFFSET, value=count)


@dataclass(slots=True)
class PartitionedRules:
    """A rule sequence split into OR-ed groups of AND-ed conditions plus modifiers.

    An empty ``groups`` tuple means "no filter". Conditions are field rules or
    ``NESTED`` rules; nested rules are partitioned again by the consumer.
    """

    groups: tuple[tuple[QueryRule, ...], ...] = ()
    order_by: tuple[QueryRule, ...] = ()
    limit: int | None = None
    offset: int | None = None
    fields: frozenset[str] = frozenset()


def partition_rules(rules: Iterable[QueryRule]) -> PartitionedRules:
    """Split ``rules`` at OR positions; everything between two ORs is AND-ed."""

    groups: list[tuple[QueryRule, ...]] = []
    current: list[QueryRule] = []
    order_by: list[QueryRule] = []
    limit: int | None = None
    offset: int | None = None
    fields: set[str] = set()

    for rule in rules:
        operator = rule.operator
        if operator is Operator.OR:
            if current:
                groups.append(tuple(current))
            current = []
        elif operator is Operator.AND:
            continue
        elif operator in SORT_OPERATORS:
            order_by.append(rule)
        elif operator is Operator.LIMIT:
            limit = rule.value
        elif operator is Operator.OFFSET:
            offset = rule.value
        else:
            current.append(rule)
            fields.update(referenced_fields(rule))
    if current:
        groups.append(tuple(current))

    return PartitionedRules(
        groups=tuple(groups),
        order_by=tuple(order_by),
        limit=limit,
        offset=offset,
        fields=frozenset(fields),
    )


def referenced_fields(rule: QueryRule) -> set[str]:
    """Return every field name a condition (or nested group) refers to."""

    if rule.operator is Operator.NESTED:
        names: set[str] = set()
        for inner in rule.value:
            names.update(referenced_fields(inner))
        return names
    if rule.field is None:
        return set()
    return {rule.field}
