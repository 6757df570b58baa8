from __future__ import annotations

from typing import TYPE_CHECKING

from entitydb.domain import Operator, QueryRule
from tests.helpers.entities import Sample, make_samples

if TYPE_CHECKING:
    from entitydb.domain import Database


def test_builder_appends_rules_in_call_order(memory_database: Database) -> None:
    query = (
        memory_database.query(Sample)
        .equals("investigation", 1)
        .or_()
        .like("name", "x%")
        .sort_asc("name")
        .limit(3)
    )

    assert [rule.operator for rule in query.rules] == [
        Operator.EQUALS,
        Operator.OR,
        Operator.LIKE,
        Operator.SORTASC,
        Operator.LIMIT,
    ]


def test_empty_in_is_skipped(memory_database: Database) -> None:
    memory_database.add(make_samples(3))

    query = memory_database.query(Sample).in_("name", [])

    assert query.rules == ()
    assert query.count() == 3


def test_find_and_find_one_execute_rules(memory_database: Database) -> None:
    memory_database.add(make_samples(5))

    query = memory_database.query(Sample).in_("name", ["sample-1", "sample-3"]).sort_desc("name")

    assert [sample.get("name") for sample in query.find()] == ["sample-3", "sample-1"]
    assert query.find_one() == query.find()[0]
    assert memory_database.query(Sample).equals("name", "none").find_one() is None


def test_nested_groups_bind_tighter_than_or(memory_database: Database) -> None:
    memory_database.add(
        [
            Sample(investigation=1, name="a", quantity=1),
            Sample(investigation=1, name="b", quantity=5),
            Sample(investigation=2, name="a", quantity=9),
        ]
    )

    query = (
        memory_database.query(Sample)
        .nested(QueryRule.equals("investigation", 1), QueryRule.greater("quantity", 2))
        .or_()
        .nested(QueryRule.equals("investigation", 2), QueryRule.equals("name", "a"))
        .sort_asc("quantity")
    )

    assert [sample.get("quantity") for sample in query.find()] == [5, 9]
