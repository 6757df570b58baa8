from __future__ import annotations

import pytest

from entitydb.domain import InvalidRuleError, Operator, QueryRule
from entitydb.domain.model import partition_rules
from entitydb.domain.model.rules import referenced_fields


def test_in_rule_requires_values() -> None:
    with pytest.raises(InvalidRuleError):
        QueryRule.in_("name", [])


def test_string_operator_is_checked_like_the_enum() -> None:
    with pytest.raises(InvalidRuleError):
        QueryRule("in", "name", [])  # pyright: ignore[reportArgumentType]

    rule = QueryRule("equals", "name", 1)  # pyright: ignore[reportArgumentType]

    assert rule.operator is Operator.EQUALS


def test_unknown_operator_is_rejected() -> None:
    with pytest.raises(InvalidRuleError, match="bogus"):
        QueryRule("bogus", "name", 1)  # pyright: ignore[reportArgumentType]


def test_in_rule_freezes_values() -> None:
    rule = QueryRule.in_("name", ["a", "b"])

    assert rule.value == ("a", "b")


def test_in_rule_accepts_generators() -> None:
    rule = QueryRule.in_("id", (index for index in range(3)))

    assert rule.value == (0, 1, 2)


@pytest.mark.parametrize(
    ("operator", "field", "value"),
    [
        (Operator.EQUALS, None, 1),
        (Operator.AND, "name", None),
        (Operator.SORTASC, "name", "x"),
        (Operator.LIMIT, None, -1),
        (Operator.LIMIT, None, True),
        (Operator.NESTED, None, ()),
    ],
)
def test_malformed_rules_are_rejected(operator: Operator, field: str | None, value: object) -> None:
    with pytest.raises(InvalidRuleError):
        QueryRule(operator, field, value)


def test_partition_splits_at_or_and_collects_modifiers() -> None:
    rules = [
        QueryRule.equals("name", "a"),
        QueryRule.and_(),
        QueryRule.greater("quantity", 3),
        QueryRule.or_(),
        QueryRule.equals("name", "b"),
        QueryRule.sort_desc("quantity"),
        QueryRule.limit(10),
        QueryRule.offset(5),
    ]

    partitioned = partition_rules(rules)

    assert partitioned.groups == (
        (QueryRule.equals("name", "a"), QueryRule.greater("quantity", 3)),
        (QueryRule.equals("name", "b"),),
    )
    assert partitioned.order_by == (QueryRule.sort_desc("quantity"),)
    assert partitioned.limit == 10
    assert partitioned.offset == 5
    assert partitioned.fields == frozenset({"name", "quantity"})


def test_partition_of_modifiers_only_has_no_groups() -> None:
    partitioned = partition_rules([QueryRule.sort_asc("name"), QueryRule.or_()])

    assert partitioned.groups == ()


def test_referenced_fields_descends_into_nested_rules() -> None:
    rule = QueryRule.nested(
        QueryRule.equals("investigation", 1),
        QueryRule.nested(QueryRule.equals("name", "a")),
    )

    assert referenced_fields(rule) == {"investigation", "name"}
