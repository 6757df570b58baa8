"""SQLAlchemy adapter package for entitydb."""

from __future__ import annotations

from .compiler import CompiledRules, compile_rules
from .lifecycle import (
    StartupError,
    build_database,
    configured_engine,
    connect,
    is_started,
    open_database,
    shutdown,
    startup,
)
from .mapper import SqlAlchemyMapper
from .mappings import create_all_tables, entity_table, metadata

__all__ = [
    "CompiledRules",
    "SqlAlchemyMapper",
    "StartupError",
    "build_database",
    "compile_rules",
    "configured_engine",
    "connect",
    "create_all_tables",
    "entity_table",
    "is_started",
    "metadata",
    "open_database",
    "shutdown",
    "startup",
]
