"""Table metadata shared by SQLAlchemy-backed mappers."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import MetaData, Table

if TYPE_CHECKING:
    from sqlalchemy import Column
    from sqlalchemy.engine import Engine

    from entitydb.domain.model import Entity

log = logging.getLogger(__name__)

metadata = MetaData(
    naming_convention={
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_label)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    }
)


def entity_table(
    entity_cls: type[Entity],
    *columns: Column[object],
    table_metadata: MetaData | None = None,
) -> Table:
    """Declare the table backing ``entity_cls``; named after its ENTITY_TYPE.

    Every declared field needs a column of the same name.
    """

    names = {column.name for column in columns}
    missing = [name for name in entity_cls.FIELDS if name not in names]
    if missing:
        raise ValueError(f"Table for {entity_cls.ENTITY_TYPE} lacks columns for {missing}")
    return Table(entity_cls.ENTITY_TYPE, table_metadata or metadata, *columns)


def create_all_tables(engine: Engine, table_metadata: MetaData | None = None) -> None:
    """Create database tables for the declared metadata."""

    log.info("Creating all tables")
    (table_metadata or metadata).create_all(engine)
