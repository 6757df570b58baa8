"""Domain model: entities, predicate rules and bulk action policies."""

from __future__ import annotations

from .actions import DatabaseAction
from .entity import Entity, identity_reset
from .rules import Operator, PartitionedRules, QueryRule, partition_rules

__all__ = [
    "DatabaseAction",
    "Entity",
    "Operator",
    "PartitionedRules",
    "QueryRule",
    "identity_reset",
    "partition_rules",
]
