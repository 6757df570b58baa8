from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine

from entitydb.adapters.memory import InMemoryMapper, InMemoryStore
from entitydb.adapters.sqlalchemy import build_database, create_all_tables
from entitydb.domain import Database, MapperRegistry
from tests.helpers.entities import ENTITY_CLASSES, TABLES, entity_metadata

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy import Connection
    from sqlalchemy.engine import Engine


@pytest.fixture
def memory_store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def memory_database(memory_store: InMemoryStore) -> Iterator[Database]:
    registry = MapperRegistry()
    for entity_cls in ENTITY_CLASSES:
        registry.register(entity_cls, InMemoryMapper(memory_store, entity_cls))
    database = Database(registry, memory_store)
    try:
        yield database
    finally:
        database.close()


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:")
    create_all_tables(engine, entity_metadata)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_connection(sqlite_engine: Engine) -> Iterator[Connection]:
    with sqlite_engine.connect() as connection:
        yield connection


@pytest.fixture
def sqlite_database(sqlite_connection: Connection) -> Iterator[Database]:
    database = build_database(sqlite_connection, TABLES)
    try:
        yield database
    finally:
        database.close()
