"""
Base building blocks:
field-addressable entities with an identity field and label fields.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import TYPE_CHECKING, Any, ClassVar, Self

from entitydb.domain.errors import IdentityChangeError, UnknownFieldError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping


class Entity:
    """A typed, field-addressable record mapped to one backend row.

    Subclasses declare their shape through class variables::

        class Sample(Entity):
            ENTITY_TYPE = "sample"
            FIELDS = ("id", "investigation", "name", "extra")
            LABEL_FIELDS = ("investigation", "name")
            REFERENCES = {"investigation": "investigation"}

    ``ENTITY_TYPE`` is the kind tag the mapper registry dispatches on.
    """

    # class-level discriminator; subclasses must override
    ENTITY_TYPE: ClassVar[str]
    FIELDS: ClassVar[tuple[str, ...]]
    ID_FIELD: ClassVar[str] = "id"
    LABEL_FIELDS: ClassVar[tuple[str, ...]] = ()
    REFERENCES: ClassVar[Mapping[str, str]] = MappingProxyType({})

    __hash__ = None  # type: ignore[assignment]

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if not getattr(cls, "ENTITY_TYPE", None):
            raise TypeError(f"{cls.__name__} must define ENTITY_TYPE")
        fields = tuple(getattr(cls, "FIELDS", ()))
        if len(set(fields)) != len(fields):
            raise TypeError(f"{cls.__name__}.FIELDS contains duplicates")
        if cls.ID_FIELD not in fields:
            raise TypeError(f"{cls.__name__}.ID_FIELD '{cls.ID_FIELD}' is not in FIELDS")
        unknown = [name for name in (*cls.LABEL_FIELDS, *cls.REFERENCES) if name not in fields]
        if unknown:
            raise TypeError(f"{cls.__name__} references undeclared fields: {unknown}")
        cls.FIELDS = fields
        cls.LABEL_FIELDS = tuple(cls.LABEL_FIELDS)
        cls.REFERENCES = MappingProxyType(dict(cls.REFERENCES))

    def __init__(self, **values: Any) -> None:
        self._values: dict[str, Any] = dict.fromkeys(self.FIELDS)
        for name, value in values.items():
            self.set(name, value)

    @classmethod
    def from_values(cls, values: Mapping[str, Any]) -> Self:
        """Build an entity from a row-like mapping, ignoring unknown keys."""

        entity = cls()
        for name in cls.FIELDS:
            if name in values:
                entity._values[name] = values[name]
        return entity

    @property
    def entity_type(self) -> str:
        return self.ENTITY_TYPE

    @property
    def fields(self) -> tuple[str, ...]:
        return self.FIELDS

    @property
    def id_field(self) -> str:
        return self.ID_FIELD

    @property
    def label_fields(self) -> tuple[str, ...]:
        return self.LABEL_FIELDS

    @property
    def id(self) -> Any:
        return self._values[self.ID_FIELD]

    def get(self, field: str) -> Any:
        try:
            return self._values[field]
        except KeyError:
            raise UnknownFieldError(self.ENTITY_TYPE, field) from None

    def set(self, field: str, value: Any) -> None:
        if field not in self._values:
            raise UnknownFieldError(self.ENTITY_TYPE, field)
        if field == self.ID_FIELD:
            current = self._values[field]
            if current is not None and value != current:
                raise IdentityChangeError(
                    f"{self.ENTITY_TYPE}.{field} is already assigned ({current!r})"
                )
        self._values[field] = value

    def discard_identity(self) -> None:
        """Forget an id generated by an insert that was later rolled back."""

        self._values[self.ID_FIELD] = None

    def update_values(self, values: Mapping[str, Any], *, skip_none: bool = True) -> None:
        """Copy values for declared fields; ``None`` values are skipped by default."""

        for name, value in values.items():
            if skip_none and value is None:
                continue
            self.set(name, value)

    def values(self) -> dict[str, Any]:
        """Return an ordered copy of all field values."""

        return {name: _copy_value(self._values[name]) for name in self.FIELDS}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Entity):
            return NotImplemented
        return self.ENTITY_TYPE == other.ENTITY_TYPE and self._values == other._values

    def __repr__(self) -> str:
        rendered = ", ".join(f"{name}={self._values[name]!r}" for name in self.FIELDS)
        return f"{type(self).__name__}({rendered})"


def _copy_value(value: Any) -> Any:
    if isinstance(value, list):
        return list(value)  # pyright: ignore[reportUnknownArgumentType]
    return value


def identity_reset(entities: Iterable[Entity]) -> Callable[[], None]:
    """Return a callback that clears ids on those of ``entities`` that have none yet.

    Inserts write generated ids back onto the caller's entities; register the
    callback as a rollback hook so a rolled back insert leaves them unsaved.
    """

    fresh = [entity for entity in entities if entity.id is None]

    def reset() -> None:
        for entity in fresh:
            entity.discard_identity()

    return reset
