"""Composite-key index built once per reconciliation call."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Final

if TYPE_CHECKING:
    from collections.abc import Sequence

    from entitydb.domain.model import Entity

KEY_SEPARATOR: Final[str] = ";"


def composite_key(entity: Entity, key_fields: Sequence[str]) -> str:
    """Concatenate key values in key-name order, each prefixed by the separator.

    ``None`` renders as the empty string, so an all-null key is still a
    non-empty, distinguishable string. Integral numbers render without a
    fractional part, so a stored ``2.0`` and a candidate ``2`` share a key.
    """

    return "".join(KEY_SEPARATOR + _render(entity.get(name)) for name in key_fields)


def _render(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, Decimal) and value.is_finite() and value == value.to_integral_value():
        return str(int(value))
    return str(value)


def is_keyless(entity: Entity, key_fields: Sequence[str]) -> bool:
    """Every key field is unset."""

    return all(entity.get(name) is None for name in key_fields)


@dataclass(slots=True)
class KeyIndex:
    """Maps composite-key strings to candidate entities.

    ``claim`` removes the entry matching a stored entity; whatever is left
    afterwards is new. A later candidate with the same key replaces an earlier
    one.
    """

    key_fields: tuple[str, ...]
    entries: dict[str, Entity] = field(default_factory=dict[str, "Entity"])
    keyless: list[Entity] = field(default_factory=list["Entity"])

    @classmethod
    def build(cls, entities: Sequence[Entity], key_fields: Sequence[str]) -> KeyIndex:
        index = cls(key_fields=tuple(key_fields))
        for entity in entities:
            if is_keyless(entity, index.key_fields):
                index.keyless.append(entity)
                continue
            index.entries[composite_key(entity, index.key_fields)] = entity
        return index

    @property
    def has_keyless(self) -> bool:
        return bool(self.keyless)

    def key_values(self) -> list[dict[str, Any]]:
        """Key-field values per indexed candidate, in insertion order."""

        return [
            {name: entity.get(name) for name in self.key_fields}
            for entity in self.entries.values()
        ]

    def snapshot(self) -> dict[str, Entity]:
        return dict(self.entries)

    def claim(self, stored: Entity) -> Entity | None:
        return self.entries.pop(composite_key(stored, self.key_fields), None)

    def remaining(self) -> list[Entity]:
        return list(self.entries.values())
