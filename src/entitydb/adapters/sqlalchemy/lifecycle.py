"""Engine lifecycle and database assembly for the SQLAlchemy adapter."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sqlalchemy import create_engine

from entitydb.config import get_database_config
from entitydb.domain import Database, MapperRegistry

from .mapper import SqlAlchemyMapper

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

    from sqlalchemy import Connection, Table
    from sqlalchemy.engine import Engine

    from entitydb.config import DatabaseConfig
    from entitydb.domain.model import Entity

log = logging.getLogger(__name__)


class StartupError(RuntimeError):
    """Raised when the SQLAlchemy adapter is used before initialisation."""


@dataclass(slots=True)
class _AdapterState:
    engine: Engine | None = None

    def require_engine(self) -> Engine:
        if self.engine is None:
            raise StartupError(
                "SQLAlchemy adapter not initialised. Call entitydb.adapters.sqlalchemy."
                "startup() before opening a connection."
            )
        return self.engine


_STATE = _AdapterState()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    echo: bool = False,
    force: bool = False,
) -> Engine:
    """Initialise the managed engine, from ``engine``, ``database_uri`` or config."""

    if _STATE.engine is not None and not force:
        raise StartupError(
            "SQLAlchemy adapter already initialised. Pass force=True to reconfigure."
        )
    if _STATE.engine is not None:
        _STATE.engine.dispose()

    resolved_engine = engine or create_engine(
        database_uri or get_database_config().uri, echo=echo
    )
    _STATE.engine = resolved_engine
    log.info("SQLAlchemy adapter started on %s", resolved_engine.url.render_as_string())
    return resolved_engine


def configured_engine() -> Engine | None:
    """Return the engine currently managed by the adapter (if any)."""

    return _STATE.engine


def is_started() -> bool:
    """Return whether the adapter has been initialised."""

    return _STATE.engine is not None


def shutdown() -> None:
    """Dispose the managed engine and reset state (primarily for tests)."""

    if _STATE.engine is not None:
        _STATE.engine.dispose()
        log.info("SQLAlchemy adapter shut down")
    _STATE.engine = None


@contextmanager
def connect() -> Iterator[Connection]:
    """Open a connection on the managed engine; closed when the block exits."""

    with _STATE.require_engine().connect() as connection:
        yield connection


def build_database(
    connection: Connection,
    tables: Mapping[type[Entity], Table],
    *,
    batch_size: int | None = None,
) -> Database:
    """Register one :class:`SqlAlchemyMapper` per entity class on ``connection``."""

    registry = MapperRegistry()
    kwargs = {} if batch_size is None else {"batch_size": batch_size}
    for entity_cls, table in tables.items():
        registry.register(entity_cls, SqlAlchemyMapper(connection, entity_cls, table, **kwargs))
    return Database(registry, connection, **kwargs)


@contextmanager
def open_database(
    tables: Mapping[type[Entity], Table],
    config: DatabaseConfig | None = None,
) -> Iterator[Database]:
    """Yield a database on a fresh connection, starting the adapter if needed."""

    resolved = config or get_database_config()
    if not is_started():
        startup(database_uri=resolved.uri, echo=resolved.echo)
    with connect() as connection:
        database = build_database(connection, tables, batch_size=resolved.batch_size)
        try:
            yield database
        finally:
            database.close()
