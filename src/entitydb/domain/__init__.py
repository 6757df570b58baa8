"""Backend-independent persistence engine."""

from __future__ import annotations

from .database import Database
from .errors import (
    DatabaseError,
    DuplicateKeyError,
    EmptyBatchError,
    IdentityChangeError,
    InvalidRuleError,
    MapperNotFoundError,
    MissingEntityError,
    MissingKeyError,
    MissingLabelFieldsError,
    ReconciliationError,
    TransactionAlreadyActiveError,
    TransactionError,
    UnknownActionError,
    UnknownFieldError,
)
from .model import DatabaseAction, Entity, Operator, QueryRule
from .query import JoinQuery, JoinRow, Query
from .registry import MapperRegistry
from .transaction import Transaction, TransactionScope, TransactionState

__all__ = [
    "Database",
    "DatabaseAction",
    "DatabaseError",
    "DuplicateKeyError",
    "EmptyBatchError",
    "Entity",
    "IdentityChangeError",
    "InvalidRuleError",
    "JoinQuery",
    "JoinRow",
    "MapperNotFoundError",
    "MapperRegistry",
    "MissingEntityError",
    "MissingKeyError",
    "MissingLabelFieldsError",
    "Operator",
    "Query",
    "QueryRule",
    "ReconciliationError",
    "Transaction",
    "TransactionAlreadyActiveError",
    "TransactionError",
    "TransactionScope",
    "TransactionState",
    "UnknownActionError",
    "UnknownFieldError",
]
