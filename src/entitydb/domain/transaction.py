"""Single active transaction per connection, with explicit ownership handles.

A :class:`Transaction` handle doubles as the "private transaction" ticket:
whoever begins a transaction owns it, and only the owner commits or rolls
back. Nested batch operations join the owner's transaction by receiving its
handle instead of starting their own, so all of them share one boundary.
"""

from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from enum import StrEnum
from typing import TYPE_CHECKING, Literal

from entitydb.domain.errors import (
    DatabaseError,
    TransactionAlreadyActiveError,
    TransactionError,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from types import TracebackType

    from entitydb.domain.ports import BackendTransaction, TransactionBackend

log = logging.getLogger(__name__)


class TransactionState(StrEnum):
    IDLE = "idle"
    ACTIVE = "active"


class Transaction:
    """Handle for the active transaction of a :class:`TransactionScope`."""

    def __init__(self, scope: TransactionScope, ticket: str) -> None:
        self._scope = scope
        self.ticket = ticket

    @property
    def is_active(self) -> bool:
        return self._scope.active_ticket == self.ticket

    def commit(self) -> None:
        if not self._scope.commit(self.ticket):
            raise TransactionError(f"Transaction '{self.ticket}' is no longer active")

    def rollback(self) -> None:
        if not self._scope.rollback(self.ticket):
            raise TransactionError(f"Transaction '{self.ticket}' is no longer active")

    def __enter__(self) -> Transaction:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        if not self.is_active:
            return False
        if exc_type is not None:
            self.rollback()
        else:
            self.commit()
        return False

    def __repr__(self) -> str:
        return f"Transaction(ticket={self.ticket!r}, active={self.is_active})"


class TransactionScope:
    """IDLE -> ACTIVE -> IDLE state machine over a backend connection."""

    def __init__(self, backend: TransactionBackend) -> None:
        self._backend = backend
        self._active: BackendTransaction | None = None
        self._ticket: str | None = None
        self._rollback_hooks: list[Callable[[], None]] = []

    @property
    def state(self) -> TransactionState:
        return TransactionState.ACTIVE if self._active is not None else TransactionState.IDLE

    @property
    def active_ticket(self) -> str | None:
        return self._ticket

    def begin(self, ticket: str | None = None) -> Transaction:
        if self._ticket is not None:
            raise TransactionAlreadyActiveError(self._ticket)
        resolved_ticket = ticket or uuid.uuid4().hex
        self._active = self._backend.begin()
        self._ticket = resolved_ticket
        log.debug("Begin transaction '%s'", resolved_ticket)
        return Transaction(self, resolved_ticket)

    def commit(self, ticket: str | None) -> bool:
        """Commit if ``ticket`` owns the active transaction; otherwise a no-op."""

        active = self._owned(ticket, "commit")
        if active is None:
            return False
        hooks = self._take_hooks()
        self._clear()
        try:
            active.commit()
        except Exception as exc:
            active.rollback()
            _run_hooks(hooks)
            raise DatabaseError(f"Commit of transaction '{ticket}' failed") from exc
        log.debug("Commit transaction '%s'", ticket)
        return True

    def rollback(self, ticket: str | None) -> bool:
        """Roll back if ``ticket`` owns the active transaction; otherwise a no-op."""

        active = self._owned(ticket, "rollback")
        if active is None:
            return False
        hooks = self._take_hooks()
        self._clear()
        active.rollback()
        _run_hooks(hooks)
        log.debug("Rollback transaction '%s'", ticket)
        return True

    def on_rollback(self, hook: Callable[[], None]) -> None:
        """Call ``hook`` if the active transaction is rolled back; dropped on commit."""

        if self._active is None:
            raise TransactionError("No active transaction to attach a rollback hook to")
        self._rollback_hooks.append(hook)

    @contextmanager
    def private(self, transaction: Transaction | None = None) -> Iterator[Transaction]:
        """Run a block inside ``transaction``, or inside a new one owned by the block.

        A joined transaction is left for its owner to commit or roll back.
        """

        if transaction is not None:
            if not transaction.is_active:
                raise TransactionError(f"Transaction '{transaction.ticket}' is no longer active")
            yield transaction
            return

        owned = self.begin()
        try:
            yield owned
        except BaseException:
            self.rollback(owned.ticket)
            raise
        self.commit(owned.ticket)

    def _owned(self, ticket: str | None, operation: str) -> BackendTransaction | None:
        if ticket is None or ticket != self._ticket or self._active is None:
            log.debug(
                "Ignoring %s for '%s'; active transaction is '%s'",
                operation,
                ticket,
                self._ticket,
            )
            return None
        return self._active

    def _clear(self) -> None:
        self._active = None
        self._ticket = None

    def _take_hooks(self) -> list[Callable[[], None]]:
        hooks, self._rollback_hooks = self._rollback_hooks, []
        return hooks


def _run_hooks(hooks: list[Callable[[], None]]) -> None:
    for hook in reversed(hooks):
        hook()
