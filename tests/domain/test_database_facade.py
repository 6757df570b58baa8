from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from entitydb.domain import Database, DatabaseError, MapperRegistry, TransactionAlreadyActiveError
from tests.helpers.entities import Investigation, Sample, make_samples
from tests.helpers.spies import RecordingBackend, SpyMapper

if TYPE_CHECKING:
    from entitydb.adapters.memory import InMemoryStore


def test_add_single_entity_assigns_id_and_find_by_id_returns_it(
    memory_database: Database,
) -> None:
    sample = Sample(investigation=1, name="a", extra="x")

    assert memory_database.add(sample) == 1

    assert sample.id is not None
    assert memory_database.find_by_id(Sample, sample.id) == sample
    assert memory_database.find_by_id(Sample, 999) is None


def test_empty_lists_are_noops(memory_database: Database, memory_store: InMemoryStore) -> None:
    assert memory_database.add([]) == 0
    assert memory_database.update([]) == 0
    assert memory_database.remove([]) == 0
    assert memory_store.begun == 0


def test_update_and_remove_lists(memory_database: Database) -> None:
    samples = make_samples(3)
    memory_database.add(samples)
    for sample in samples:
        sample.set("extra", "changed")

    assert memory_database.update(samples) == 3
    assert {sample.get("extra") for sample in memory_database.find(Sample)} == {"changed"}
    assert memory_database.remove(samples[:2]) == 2
    assert memory_database.count(Sample) == 1


def test_find_by_example_matches_non_null_fields_and_lists(memory_database: Database) -> None:
    memory_database.add(make_samples(4, investigation=1) + make_samples(2, investigation=2))

    by_investigation = memory_database.find_by_example(Sample(investigation=2))
    by_names = memory_database.find_by_example(
        Sample(investigation=1, name=["sample-0", "sample-3"])  # pyright: ignore[reportArgumentType]
    )
    with_empty_list = memory_database.find_by_example(Sample(investigation=1, name=[]))

    assert len(by_investigation) == 2
    assert sorted(sample.get("name") for sample in by_names) == ["sample-0", "sample-3"]
    assert len(with_empty_list) == 4


def test_id_field_is_resolved_once_per_type() -> None:
    mapper = SpyMapper(Sample)
    registry = MapperRegistry()
    registry.register(Sample, mapper)
    database = Database(registry, RecordingBackend())

    assert database.id_field(Sample) == "id"
    assert database.id_field("sample") == "id"
    assert mapper.call_names() == ["create"]


def test_metadata_lookups(memory_database: Database) -> None:
    assert memory_database.entity_types() == ["investigation", "measurement", "sample"]
    assert memory_database.class_for_name("Investigation") is Investigation
    assert memory_database.class_for_name("unknown") is None


def test_caller_transaction_spans_several_calls(
    memory_database: Database, memory_store: InMemoryStore
) -> None:
    transaction = memory_database.begin_transaction()
    samples = make_samples(2)
    memory_database.add(samples, transaction=transaction)
    memory_database.add(Investigation(name="study"), transaction=transaction)

    assert memory_database.in_transaction
    assert memory_database.count(Sample, transaction=transaction) == 2

    transaction.rollback()

    assert not memory_database.in_transaction
    assert memory_database.count(Sample) == 0
    assert memory_database.count(Investigation) == 0
    assert memory_store.begun == 3
    assert [sample.id for sample in samples] == [None, None]


def test_calls_without_handle_fail_while_transaction_is_open(memory_database: Database) -> None:
    memory_database.begin_transaction("owner")

    with pytest.raises(TransactionAlreadyActiveError):
        memory_database.add(make_samples(1))


def test_failed_write_leaves_storage_untouched(memory_database: Database) -> None:
    existing = Sample(id=5, investigation=1, name="taken")
    memory_database.add(existing)

    fresh = Sample(investigation=1, name="fresh")

    with pytest.raises(DatabaseError):
        memory_database.add([fresh, Sample(id=5, name="dup")])

    assert [sample.get("name") for sample in memory_database.find(Sample)] == ["taken"]
    assert fresh.id is None


def test_close_rolls_back_open_transaction(memory_database: Database) -> None:
    transaction = memory_database.begin_transaction()
    memory_database.add(make_samples(1), transaction=transaction)

    memory_database.close()

    assert not transaction.is_active
    assert memory_database.count(Sample) == 0


def test_batch_size_must_be_positive(memory_store: InMemoryStore) -> None:
    with pytest.raises(ValueError, match="batch_size"):
        Database(MapperRegistry(), memory_store, batch_size=0)


def test_committed_ids_survive_later_rollback(memory_database: Database) -> None:
    kept = Sample(investigation=1, name="kept")
    memory_database.add(kept)

    transaction = memory_database.begin_transaction()
    memory_database.add(Sample(investigation=1, name="dropped"), transaction=transaction)
    transaction.rollback()

    assert kept.id == 1
    assert memory_database.find_by_id(Sample, 1) == kept
