"""Mapper implementation backed by a SQLAlchemy Core table and connection."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.exc import SQLAlchemyError

from entitydb.common.batching import DEFAULT_BATCH_SIZE, chunked
from entitydb.domain.errors import DatabaseError
from entitydb.domain.model import Entity

from .compiler import compile_rules

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy import Connection, Table

    from entitydb.domain.model import QueryRule

log = logging.getLogger(__name__)


class SqlAlchemyMapper[TEntity: Entity]:
    """Reads and writes one entity type through one table.

    The connection is borrowed: transactions are begun and ended by the
    database facade, never here.
    """

    def __init__(
        self,
        connection: Connection,
        entity_cls: type[TEntity],
        table: Table,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        self.connection = connection
        self.entity_cls = entity_cls
        self.table = table
        self.batch_size = batch_size
        self._id_column = table.c[entity_cls.ID_FIELD]

    def create(self) -> TEntity:
        return self.entity_cls()

    def find(self, *rules: QueryRule) -> list[TEntity]:
        statement = compile_rules(self.table, rules).apply(select(self.table))
        try:
            rows = self.connection.execute(statement).mappings().all()
        except SQLAlchemyError as exc:
            raise DatabaseError(f"Query on {self.table.name} failed") from exc
        return [self.entity_cls.from_values(row) for row in rows]

    def count(self, *rules: QueryRule) -> int:
        selection = compile_rules(self.table, rules).apply(select(self._id_column))
        statement = select(func.count()).select_from(selection.subquery())
        try:
            return int(self.connection.execute(statement).scalar_one())
        except SQLAlchemyError as exc:
            raise DatabaseError(f"Count on {self.table.name} failed") from exc

    def add(self, entities: Sequence[TEntity]) -> int:
        with_id = [entity for entity in entities if entity.id is not None]
        without_id = [entity for entity in entities if entity.id is None]
        try:
            for chunk in chunked(with_id, self.batch_size):
                self.connection.execute(
                    insert(self.table), [self._row(entity) for entity in chunk]
                )
            # one statement each, so generated keys can be written back
            for entity in without_id:
                result = self.connection.execute(insert(self.table).values(self._row(entity)))
                primary_key = result.inserted_primary_key
                if primary_key is not None:
                    entity.set(entity.id_field, primary_key[0])
        except SQLAlchemyError as exc:
            raise DatabaseError(f"Insert into {self.table.name} failed") from exc
        log.debug("Inserted %s rows into %s", len(entities), self.table.name)
        return len(entities)

    def update(self, entities: Sequence[TEntity]) -> int:
        updated = 0
        try:
            for entity in entities:
                if entity.id is None:
                    continue
                values = self._row(entity)
                del values[entity.id_field]
                result = self.connection.execute(
                    update(self.table).where(self._id_column == entity.id).values(values)
                )
                updated += result.rowcount
        except SQLAlchemyError as exc:
            raise DatabaseError(f"Update of {self.table.name} failed") from exc
        return updated

    def remove(self, entities: Sequence[TEntity]) -> int:
        ids = [entity.id for entity in entities if entity.id is not None]
        removed = 0
        try:
            for chunk in chunked(ids, self.batch_size):
                result = self.connection.execute(
                    delete(self.table).where(self._id_column.in_(chunk))
                )
                removed += result.rowcount
        except SQLAlchemyError as exc:
            raise DatabaseError(f"Delete from {self.table.name} failed") from exc
        return removed

    def _row(self, entity: Entity) -> dict[str, Any]:
        values = entity.values()
        if values[entity.id_field] is None:
            del values[entity.id_field]
        return values
