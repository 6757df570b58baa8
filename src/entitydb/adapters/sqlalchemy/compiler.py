"""Translate rule sequences into SQLAlchemy Core clauses."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from sqlalchemy import and_, or_

from entitydb.domain.errors import InvalidRuleError, UnknownFieldError
from entitydb.domain.model import Operator, partition_rules

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sqlalchemy import ColumnElement, Select, Table

    from entitydb.domain.model import QueryRule


@dataclass(frozen=True, slots=True)
class CompiledRules:
    where: ColumnElement[bool] | None = None
    order_by: tuple[ColumnElement[Any], ...] = ()
    limit: int | None = None
    offset: int | None = None

    def apply[TSelect: Select[Any]](self, statement: TSelect) -> TSelect:
        if self.where is not None:
            statement = statement.where(self.where)
        if self.order_by:
            statement = statement.order_by(*self.order_by)
        if self.limit is not None:
            statement = statement.limit(self.limit)
        if self.offset is not None:
            statement = statement.offset(self.offset)
        return statement


def compile_rules(table: Table, rules: Iterable[QueryRule]) -> CompiledRules:
    partitioned = partition_rules(rules)
    order_by: list[ColumnElement[Any]] = []
    for rule in partitioned.order_by:
        column = _column(table, rule.field)
        order_by.append(column.desc() if rule.operator is Operator.SORTDESC else column.asc())
    return CompiledRules(
        where=_compile_groups(table, partitioned.groups),
        order_by=tuple(order_by),
        limit=partitioned.limit,
        offset=partitioned.offset,
    )


def _compile_groups(
    table: Table, groups: tuple[tuple[QueryRule, ...], ...]
) -> ColumnElement[bool] | None:
    if not groups:
        return None
    clauses = [and_(*(_compile_condition(table, rule) for rule in group)) for group in groups]
    if len(clauses) == 1:
        return clauses[0]
    return or_(*clauses)


def _compile_condition(table: Table, rule: QueryRule) -> ColumnElement[bool]:
    operator = rule.operator
    if operator is Operator.NESTED:
        nested = _compile_groups(table, partition_rules(rule.value).groups)
        if nested is None:
            raise InvalidRuleError("nested rule holds no conditions")
        return nested

    column = _column(table, rule.field)
    value = rule.value
    if operator is Operator.EQUALS:
        return column.is_(None) if value is None else column == value
    if operator is Operator.NOT:
        return column.is_not(None) if value is None else column != value
    if operator is Operator.LIKE:
        return column.like(value)
    if operator is Operator.IN:
        return column.in_(value)
    if operator is Operator.LESS:
        return column < value
    if operator is Operator.LESS_EQUAL:
        return column <= value
    if operator is Operator.GREATER:
        return column > value
    if operator is Operator.GREATER_EQUAL:
        return column >= value
    raise InvalidRuleError(f"{operator} is not a condition")


def _column(table: Table, field: str | None) -> ColumnElement[Any]:
    if field is None or field not in table.c:
        raise UnknownFieldError(table.name, str(field))
    return table.c[field]
