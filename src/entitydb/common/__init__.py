from __future__ import annotations

from .batching import DEFAULT_BATCH_SIZE, chunked
from .logging import configure_logging
from .reporting import report_exception

__all__ = [
    "DEFAULT_BATCH_SIZE",
    "chunked",
    "configure_logging",
    "report_exception",
]
