"""Port implemented by backend-specific entity mappers."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from entitydb.domain.model import Entity

if TYPE_CHECKING:
    from collections.abc import Sequence

    from entitydb.domain.model import QueryRule


@runtime_checkable
class Mapper[TEntity: Entity](Protocol):
    """Translates rules to native queries and entities to/from rows for one type."""

    def find(self, *rules: QueryRule) -> list[TEntity]: ...

    def count(self, *rules: QueryRule) -> int: ...

    def add(self, entities: Sequence[TEntity]) -> int: ...

    def update(self, entities: Sequence[TEntity]) -> int: ...

    def remove(self, entities: Sequence[TEntity]) -> int: ...

    def create(self) -> TEntity:
        """Return a new empty entity (used to discover the identity field)."""
        ...
