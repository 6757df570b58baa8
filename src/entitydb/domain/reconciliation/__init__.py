"""Key-based reconciliation of entity batches against stored rows.

Flow of one call:
1) build the composite-key index of the candidates
2) query stored rows matching any candidate key (batched)
3) partition into existing and new
4) merge incoming values into existing entities (update actions)
5) add/update/remove per DatabaseAction inside one private transaction
"""

from __future__ import annotations

from .engine import ReconciliationEngine
from .keys import KEY_SEPARATOR, KeyIndex, composite_key
from .plan import ReconciliationPlan, ReconciliationResult

__all__ = [
    "KEY_SEPARATOR",
    "KeyIndex",
    "ReconciliationEngine",
    "ReconciliationPlan",
    "ReconciliationResult",
    "composite_key",
]
