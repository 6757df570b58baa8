"""Copy incoming values onto stored entities before they are updated."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .keys import composite_key

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from entitydb.domain.model import Entity


def same_value(left: Any, right: Any) -> bool:
    """Equality that tolerates stringly-typed input (``"1"`` matches ``1``)."""

    if left == right:
        return True
    if left is None or right is None:
        return False
    return str(left) == str(right)


def copy_set_values(source: Entity, target: Entity) -> None:
    """Copy every non-null field of ``source`` except the identity field."""

    target.update_values(
        {name: value for name, value in source.values().items() if name != target.id_field}
    )


def merge_by_label_fields(stored: Sequence[Entity], candidates: Sequence[Entity]) -> int:
    """Merge candidates into stored entities whose label fields all match.

    Returns the number of (stored, candidate) pairs merged. Candidates are
    applied in order, so later ones win on overlapping fields.
    """

    merged = 0
    for entity in stored:
        label_fields = entity.label_fields
        if not label_fields:
            continue
        for candidate in candidates:
            if all(same_value(entity.get(name), candidate.get(name)) for name in label_fields):
                copy_set_values(candidate, entity)
                merged += 1
    return merged


def merge_by_key(
    stored: Sequence[Entity],
    candidates_by_key: Mapping[str, Entity],
    key_fields: Sequence[str],
) -> int:
    """Merge each stored entity with the candidate sharing its composite key."""

    merged = 0
    for entity in stored:
        candidate = candidates_by_key.get(composite_key(entity, key_fields))
        if candidate is None:
            continue
        copy_set_values(candidate, entity)
        merged += 1
    return merged
