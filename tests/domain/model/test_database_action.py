from __future__ import annotations

import pytest

from entitydb.domain import DatabaseAction, UnknownActionError


def test_coerce_accepts_names_case_insensitively() -> None:
    assert DatabaseAction.coerce("ADD_UPDATE_EXISTING") is DatabaseAction.ADD_UPDATE_EXISTING
    assert DatabaseAction.coerce(DatabaseAction.REMOVE) is DatabaseAction.REMOVE


def test_coerce_rejects_unknown_actions() -> None:
    with pytest.raises(UnknownActionError):
        DatabaseAction.coerce("upsert")


def test_action_classification() -> None:
    assert DatabaseAction.ADD_IGNORE_EXISTING.is_add
    assert not DatabaseAction.UPDATE.is_add
    assert DatabaseAction.UPDATE_IGNORE_MISSING.updates_existing
    assert not DatabaseAction.REMOVE.updates_existing
    assert not DatabaseAction.ADD.updates_existing
