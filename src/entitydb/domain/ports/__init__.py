"""Domain port definitions for adapters."""

from __future__ import annotations

from .mapper import Mapper
from .transaction import BackendTransaction, TransactionBackend

__all__ = [
    "BackendTransaction",
    "Mapper",
    "TransactionBackend",
]
