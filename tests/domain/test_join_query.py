from __future__ import annotations

import pytest

from entitydb.adapters.memory import InMemoryStore
from entitydb.domain import (
    Database,
    DatabaseError,
    JoinQuery,
    MapperNotFoundError,
    MapperRegistry,
    QueryRule,
)
from tests.helpers.entities import Investigation, Measurement, Sample


def _seed(database: Database) -> None:
    study = Investigation(name="study")
    pilot = Investigation(name="pilot")
    database.add([study, pilot])
    samples = [
        Sample(investigation=study.id, name="s1"),
        Sample(investigation=study.id, name="s2"),
        Sample(investigation=pilot.id, name="p1"),
    ]
    database.add(samples)
    database.add(
        [
            Measurement(sample=samples[0].id, protocol="pcr", value=1.5),
            Measurement(sample=samples[0].id, protocol="elisa", value=2.0),
            Measurement(sample=samples[2].id, protocol="pcr", value=3.0),
        ]
    )


def test_join_follows_references_both_ways(memory_database: Database) -> None:
    _seed(memory_database)

    rows = (
        memory_database.join(Investigation, Sample, Measurement)
        .where(Investigation, QueryRule.equals("name", "study"))
        .find()
    )

    assert len(rows) == 2
    assert {row[Sample].get("name") for row in rows} == {"s1"}
    assert {row["measurement"].get("protocol") for row in rows} == {"pcr", "elisa"}
    assert all(row[Investigation].get("name") == "study" for row in rows)


def test_join_from_referencing_side(memory_database: Database) -> None:
    _seed(memory_database)

    rows = (
        memory_database.join(Measurement, Sample)
        .where(Measurement, QueryRule.equals("protocol", "pcr"))
        .where(Sample, QueryRule.like("name", "p%"))
        .find()
    )

    assert len(rows) == 1
    measurement, sample = list(rows[0])
    assert measurement.get("value") == 3.0
    assert sample.get("name") == "p1"


def test_join_count_matches_rows(memory_database: Database) -> None:
    _seed(memory_database)

    assert memory_database.join(Sample, Measurement).count() == 3


def test_join_needs_reference_path(memory_database: Database) -> None:
    with pytest.raises(DatabaseError):
        memory_database.join(Investigation, Measurement)


def test_join_rejects_single_or_repeated_types(memory_database: Database) -> None:
    with pytest.raises(DatabaseError):
        memory_database.join(Sample)
    with pytest.raises(DatabaseError):
        memory_database.join(Sample, Sample)


def test_join_rejects_rules_for_non_participants(memory_database: Database) -> None:
    join = memory_database.join(Sample, Measurement)

    with pytest.raises(DatabaseError):
        join.where(Investigation, QueryRule.equals("name", "x"))


def test_join_requires_registered_mappers() -> None:
    database = Database(MapperRegistry(), InMemoryStore())

    with pytest.raises(MapperNotFoundError):
        JoinQuery(database, Sample, Measurement)
