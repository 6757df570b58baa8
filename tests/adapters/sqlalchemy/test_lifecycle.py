from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine, text

from entitydb.adapters.sqlalchemy import (
    StartupError,
    configured_engine,
    connect,
    create_all_tables,
    is_started,
    open_database,
    shutdown,
    startup,
)
from entitydb.config import DatabaseConfig
from entitydb.domain import DatabaseAction
from tests.helpers.entities import TABLES, Investigation, entity_metadata

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


@pytest.fixture(autouse=True)
def reset_adapter_state() -> Iterator[None]:
    shutdown()
    yield
    shutdown()


def test_connect_requires_startup() -> None:
    with pytest.raises(StartupError), connect():
        pass


def test_startup_requires_force_for_reconfiguration() -> None:
    engine_a = create_engine("sqlite+pysqlite:///:memory:")
    engine_b = create_engine("sqlite+pysqlite:///:memory:")

    startup(engine=engine_a)

    with pytest.raises(StartupError):
        startup(engine=engine_b)

    startup(engine=engine_b, force=True)
    assert configured_engine() is engine_b


def test_shutdown_resets_state() -> None:
    startup(database_uri="sqlite+pysqlite:///:memory:")
    assert is_started()

    shutdown()

    assert not is_started()
    assert configured_engine() is None


def test_connect_yields_usable_connection() -> None:
    startup(database_uri="sqlite+pysqlite:///:memory:")

    with connect() as connection:
        assert connection.execute(text("SELECT 1")).scalar_one() == 1


def test_open_database_persists_across_connections(tmp_path: Path) -> None:
    config = DatabaseConfig(uri=f"sqlite+pysqlite:///{tmp_path / 'entities.db'}", batch_size=2)
    engine = startup(database_uri=config.uri)
    create_all_tables(engine, entity_metadata)

    with open_database(TABLES, config) as database:
        assert database.batch_size == 2
        database.reconcile(
            [Investigation(name=name) for name in ("a", "b", "c")],
            DatabaseAction.ADD,
            ("name",),
        )

    with open_database(TABLES, config) as database:
        assert sorted(entity.get("name") for entity in database.find(Investigation)) == [
            "a",
            "b",
            "c",
        ]
