"""Bulk action policies for reconciliation."""

from __future__ import annotations

from enum import StrEnum

from entitydb.domain.errors import UnknownActionError


class DatabaseAction(StrEnum):
    """How reconciliation treats new versus already existing entities."""

    ADD = "add"
    ADD_IGNORE_EXISTING = "add_ignore_existing"
    ADD_UPDATE_EXISTING = "add_update_existing"
    UPDATE = "update"
    UPDATE_IGNORE_MISSING = "update_ignore_missing"
    REMOVE = "remove"
    REMOVE_IGNORE_MISSING = "remove_ignore_missing"

    @classmethod
    def coerce(cls, value: DatabaseAction | str) -> DatabaseAction:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise UnknownActionError(value) from None

    @property
    def is_add(self) -> bool:
        return self in _ADD_ACTIONS

    @property
    def updates_existing(self) -> bool:
        return self in _UPDATE_EXISTING_ACTIONS


_ADD_ACTIONS = frozenset(
    {
        DatabaseAction.ADD,
        DatabaseAction.ADD_IGNORE_EXISTING,
        DatabaseAction.ADD_UPDATE_EXISTING,
    }
)
_UPDATE_EXISTING_ACTIONS = frozenset(
    {
        DatabaseAction.ADD_UPDATE_EXISTING,
        DatabaseAction.UPDATE,
        DatabaseAction.UPDATE_IGNORE_MISSING,
    }
)
