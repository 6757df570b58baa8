"""Sample entity types shared across tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import Column, Float, ForeignKey, Integer, MetaData, String

from entitydb.adapters.sqlalchemy import entity_table
from entitydb.domain import Entity

if TYPE_CHECKING:
    from sqlalchemy import Table


class Investigation(Entity):
    ENTITY_TYPE = "investigation"
    FIELDS = ("id", "name", "description")
    LABEL_FIELDS = ("name",)


class Sample(Entity):
    ENTITY_TYPE = "sample"
    FIELDS = ("id", "investigation", "name", "extra", "quantity")
    LABEL_FIELDS = ("investigation", "name")
    REFERENCES = {"investigation": "investigation"}


class Measurement(Entity):
    ENTITY_TYPE = "measurement"
    FIELDS = ("id", "sample", "protocol", "value")
    REFERENCES = {"sample": "sample"}


ENTITY_CLASSES: tuple[type[Entity], ...] = (Investigation, Sample, Measurement)

entity_metadata = MetaData()

investigation_table = entity_table(
    Investigation,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("description", String(1024)),
    table_metadata=entity_metadata,
)

sample_table = entity_table(
    Sample,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("investigation", Integer, ForeignKey("investigation.id")),
    Column("name", String(255)),
    Column("extra", String(255)),
    Column("quantity", Integer),
    table_metadata=entity_metadata,
)

measurement_table = entity_table(
    Measurement,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("sample", Integer, ForeignKey("sample.id")),
    Column("protocol", String(64)),
    Column("value", Float),
    table_metadata=entity_metadata,
)

TABLES: dict[type[Entity], Table] = {
    Investigation: investigation_table,
    Sample: sample_table,
    Measurement: measurement_table,
}


def make_samples(
    count: int,
    *,
    investigation: int = 1,
    prefix: str = "sample",
    extra: str | None = None,
) -> list[Sample]:
    return [
        Sample(investigation=investigation, name=f"{prefix}-{index}", extra=extra)
        for index in range(count)
    ]
