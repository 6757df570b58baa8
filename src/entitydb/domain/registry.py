"""Registry mapping entity type tags to their mappers.

The registry is populated before the database facade is built and is
read-mostly afterwards. Reads may happen concurrently; registering while other
threads resolve is not supported.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from entitydb.domain.errors import EmptyBatchError, MapperNotFoundError

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from entitydb.domain.model import Entity
    from entitydb.domain.ports import Mapper

log = logging.getLogger(__name__)

type EntityRef = type[Entity] | str


def entity_type_of(ref: EntityRef) -> str:
    """Return the kind tag for an entity class or tag."""

    if isinstance(ref, str):
        return ref
    return ref.ENTITY_TYPE


class MapperRegistry:
    """Explicit entity-type -> mapper table passed by reference to the facade."""

    def __init__(self) -> None:
        self._mappers: dict[str, Mapper[Any]] = {}
        self._classes: dict[str, type[Entity]] = {}

    def register[TEntity: Entity](
        self, entity_cls: type[TEntity], mapper: Mapper[TEntity]
    ) -> None:
        entity_type = entity_cls.ENTITY_TYPE
        if entity_type in self._mappers:
            log.debug("Replacing mapper for %s", entity_type)
        self._mappers[entity_type] = mapper
        self._classes[entity_type] = entity_cls

    def resolve(self, ref: EntityRef) -> Mapper[Any]:
        entity_type = entity_type_of(ref)
        try:
            return self._mappers[entity_type]
        except KeyError:
            raise MapperNotFoundError(entity_type) from None

    def resolve_for(self, entities: Sequence[Entity]) -> Mapper[Any]:
        """Resolve by the kind tag of the first entity in a non-empty batch."""

        if not entities:
            log.error("Trying to resolve a mapper for an empty entity list")
            raise EmptyBatchError
        return self.resolve(entities[0].entity_type)

    def entity_class(self, ref: EntityRef) -> type[Entity]:
        entity_type = entity_type_of(ref)
        try:
            return self._classes[entity_type]
        except KeyError:
            raise MapperNotFoundError(entity_type) from None

    def class_for_name(self, name: str) -> type[Entity] | None:
        """Case-insensitive lookup by kind tag or class name."""

        wanted = name.lower()
        for entity_type, entity_cls in self._classes.items():
            if wanted in (entity_type.lower(), entity_cls.__name__.lower()):
                return entity_cls
        return None

    def entity_types(self) -> list[str]:
        return sorted(self._mappers)

    def __contains__(self, ref: object) -> bool:
        if isinstance(ref, str):
            return ref in self._mappers
        if isinstance(ref, type):
            return getattr(ref, "ENTITY_TYPE", None) in self._mappers
        return False

    def __iter__(self) -> Iterator[type[Entity]]:
        return iter(list(self._classes.values()))

    def __len__(self) -> int:
        return len(self._mappers)
