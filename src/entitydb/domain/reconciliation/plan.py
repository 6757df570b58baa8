"""Partition of a candidate batch into new and existing entities.

The plan is the contract between the read-only lookup and the write dispatch:
``existing`` holds the *stored* entities (as returned by the mapper) so that
updates and removals target real rows, while ``new`` holds the caller's
candidates that matched nothing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from entitydb.domain.model import Entity


@dataclass(slots=True)
class ReconciliationPlan:
    entity_type: str
    key_fields: tuple[str, ...]
    new: list[Entity] = field(default_factory=list["Entity"])
    existing: list[Entity] = field(default_factory=list["Entity"])
    candidates_by_key: dict[str, Entity] = field(default_factory=dict[str, "Entity"])
    looked_up: bool = False

    def new_keys(self) -> list[str]:
        return [_describe_key(entity, self.key_fields) for entity in self.new]

    def existing_keys(self) -> list[str]:
        return [_describe_key(entity, self.key_fields) for entity in self.existing]


@dataclass(slots=True)
class ReconciliationResult:
    """Row counts affected by one reconciliation call."""

    added: int = 0
    updated: int = 0
    removed: int = 0
    skipped: int = 0

    @property
    def affected(self) -> int:
        return self.added + self.updated + self.removed


def _describe_key(entity: Entity, key_fields: tuple[str, ...]) -> str:
    if len(key_fields) == 1:
        return repr(entity.get(key_fields[0]))
    return "(" + ", ".join(repr(entity.get(name)) for name in key_fields) + ")"
