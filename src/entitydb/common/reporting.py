"""Uniform reporting of fatal errors for command-line tooling."""

from __future__ import annotations

import logging


def iter_causes(exc: BaseException) -> list[BaseException]:
    """Return the chain of causes below ``exc``, stopping at cycles."""

    causes: list[BaseException] = []
    seen = {id(exc)}
    cause = exc.__cause__ or exc.__context__
    while cause is not None and id(cause) not in seen:
        causes.append(cause)
        seen.add(id(cause))
        cause = cause.__cause__ or cause.__context__
    return causes


def report_exception(exc: BaseException, logger: logging.Logger) -> None:
    """Log ``exc`` with its causes indented one level deeper each.

    The process keeps running; whether to exit is the caller's decision.
    """

    logger.error("%s: %s", type(exc).__name__, exc)
    for depth, cause in enumerate(iter_causes(exc), start=1):
        logger.error("%sCause: %s", "\t" * depth, cause)
    logger.debug("Detailed stack trace:", exc_info=exc)
