"""Recording fakes for the mapper and transaction ports."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from entitydb.domain import Entity

if TYPE_CHECKING:
    from collections.abc import Sequence

    from entitydb.domain import QueryRule


@dataclass(slots=True)
class RecordingTransaction:
    backend: RecordingBackend

    def commit(self) -> None:
        self.backend.events.append("commit")

    def rollback(self) -> None:
        self.backend.events.append("rollback")


@dataclass(slots=True)
class RecordingBackend:
    events: list[str] = field(default_factory=list[str])
    fail_commit: bool = False

    def begin(self) -> RecordingTransaction:
        self.events.append("begin")
        if self.fail_commit:
            return _FailingTransaction(self)
        return RecordingTransaction(self)


class _FailingTransaction(RecordingTransaction):
    def commit(self) -> None:
        self.backend.events.append("commit")
        raise RuntimeError("disk full")


class SpyMapper[TEntity: Entity]:
    """Mapper that records calls and returns canned results."""

    def __init__(self, entity_cls: type[TEntity], stored: Sequence[TEntity] = ()) -> None:
        self.entity_cls = entity_cls
        self.stored = list(stored)
        self.calls: list[tuple[str, tuple[object, ...]]] = []

    def create(self) -> TEntity:
        self.calls.append(("create", ()))
        return self.entity_cls()

    def find(self, *rules: QueryRule) -> list[TEntity]:
        self.calls.append(("find", rules))
        return list(self.stored)

    def count(self, *rules: QueryRule) -> int:
        self.calls.append(("count", rules))
        return len(self.stored)

    def add(self, entities: Sequence[TEntity]) -> int:
        self.calls.append(("add", tuple(entities)))
        return len(entities)

    def update(self, entities: Sequence[TEntity]) -> int:
        self.calls.append(("update", tuple(entities)))
        return len(entities)

    def remove(self, entities: Sequence[TEntity]) -> int:
        self.calls.append(("remove", tuple(entities)))
        return len(entities)

    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]
