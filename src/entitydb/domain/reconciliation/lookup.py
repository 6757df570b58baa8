"""Existence-check rule construction for key-based lookup.

Single-field keys use one ``IN`` rule per batch. Composite keys need a
disjunction of per-candidate conjunctions::

    (k1 = a AND k2 = b) OR (k1 = c AND k2 = d) OR ...

That statement grows with ``candidates * key_fields`` terms and most backends
cannot use a plain index lookup for it, so it costs far more than the
single-field form. Prefer single-field keys (for example a unique name or the
identity field) when reconciling large batches.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from entitydb.common.batching import chunked
from entitydb.domain.model import QueryRule

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence


def single_key_rules(
    key_field: str,
    key_values: Sequence[dict[str, Any]],
    *,
    batch_size: int,
) -> Iterator[tuple[QueryRule, ...]]:
    """Yield one ``IN`` rule per batch of distinct key values."""

    values = list(dict.fromkeys(values[key_field] for values in key_values))
    for chunk in chunked(values, batch_size):
        yield (QueryRule.in_(key_field, chunk),)


def composite_key_rules(
    key_fields: Sequence[str],
    key_values: Sequence[dict[str, Any]],
    *,
    batch_size: int,
) -> Iterator[tuple[QueryRule, ...]]:
    """Yield one OR-of-nested-AND rule sequence per batch of candidates."""

    for chunk in chunked(key_values, batch_size):
        rules: list[QueryRule] = []
        for values in chunk:
            if rules:
                rules.append(QueryRule.or_())
            rules.append(
                QueryRule.nested(*(QueryRule.equals(name, values[name]) for name in key_fields))
            )
        yield tuple(rules)


def lookup_rules(
    key_fields: Sequence[str],
    key_values: Sequence[dict[str, Any]],
    *,
    batch_size: int,
) -> Iterator[tuple[QueryRule, ...]]:
    if not key_values:
        return iter(())
    if len(key_fields) == 1:
        return single_key_rules(key_fields[0], key_values, batch_size=batch_size)
    return composite_key_rules(key_fields, key_values, batch_size=batch_size)
