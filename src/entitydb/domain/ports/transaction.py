"""Port for the backend connection's transaction primitive."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class BackendTransaction(Protocol):
    def commit(self) -> None: ...

    def rollback(self) -> None: ...


@runtime_checkable
class TransactionBackend(Protocol):
    """Anything that can open a transaction; a SQLAlchemy ``Connection`` qualifies."""

    def begin(self) -> BackendTransaction: ...
