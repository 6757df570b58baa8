"""Error hierarchy for the persistence engine."""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from collections.abc import Sequence

SAMPLE_SIZE: Final[int] = 5


class DatabaseError(Exception):
    """Base error; also wraps backend-level failures."""


class MapperNotFoundError(DatabaseError):
    """Raised when no mapper is registered for an entity type."""

    def __init__(self, entity_type: str) -> None:
        self.entity_type = entity_type
        super().__init__(f"No mapper registered for entity type '{entity_type}'")


class EmptyBatchError(DatabaseError):
    """Raised when a mapper is requested for an empty entity list."""

    def __init__(self) -> None:
        super().__init__("Cannot resolve a mapper from an empty entity list")


class InvalidRuleError(DatabaseError):
    """Raised when a query rule violates its shape invariants."""


class UnknownActionError(DatabaseError):
    """Raised for values outside the DatabaseAction enumeration."""

    def __init__(self, action: object) -> None:
        self.action = action
        super().__init__(f"Unknown database action: {action!r}")


class UnknownFieldError(DatabaseError):
    """Raised when an entity is accessed with a field it does not declare."""

    def __init__(self, entity_type: str, field: str) -> None:
        self.entity_type = entity_type
        self.field = field
        super().__init__(f"{entity_type} has no field '{field}'")


class IdentityChangeError(DatabaseError):
    """Raised when an assigned identity value would be overwritten."""


class TransactionError(DatabaseError):
    """Raised for invalid transaction handle usage."""


class TransactionAlreadyActiveError(TransactionError):
    """Raised when a transaction is begun while another one is active."""

    def __init__(self, active_ticket: str) -> None:
        self.active_ticket = active_ticket
        super().__init__(f"A transaction is already active (ticket '{active_ticket}')")


def describe_sample(values: Sequence[object], *, sample_size: int = SAMPLE_SIZE) -> str:
    """Render at most ``sample_size`` values followed by an "and N more" suffix."""

    shown = ", ".join(str(value) for value in values[:sample_size])
    remaining = len(values) - sample_size
    if remaining > 0:
        return f"[{shown}] and {remaining} more"
    return f"[{shown}]"


class ReconciliationError(DatabaseError):
    """Data-policy violation detected while reconciling an entity batch."""

    reason: str = "reconciliation failed"

    def __init__(
        self,
        entity_type: str,
        key_fields: Sequence[str],
        values: Sequence[object] = (),
    ) -> None:
        self.entity_type = entity_type
        self.key_fields = tuple(key_fields)
        self.total = len(values)
        self.values = tuple(values[:SAMPLE_SIZE])
        message = f"{self.reason}: {entity_type}.{list(self.key_fields)}"
        if values:
            message = f"{message}={describe_sample(values)}"
        super().__init__(message)


class MissingKeyError(ReconciliationError):
    """Raised when key-based lookup is impossible because key values are unset."""

    reason = "Key values are missing"


class DuplicateKeyError(ReconciliationError):
    """Raised when ADD meets entities that already exist."""

    reason = "Tried to add existing elements as new insert"


class MissingEntityError(ReconciliationError):
    """Raised when UPDATE or REMOVE meets entities that do not exist."""

    reason = "Tried to modify non-existing elements"


class MissingLabelFieldsError(ReconciliationError):
    """Raised when a field merge is requested for a type without label fields."""

    reason = "Entity type declares no label fields to merge by; pass key_identity=True"
